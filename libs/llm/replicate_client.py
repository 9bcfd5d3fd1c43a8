from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import replicate

from libs.core.settings import Settings, get_settings
from .llm_client import LLMClient, LLMClientError


def _output_to_text(out: Any) -> str:
    """Normalize the many shapes Replicate returns into plain text."""
    if out is None:
        return ""
    if isinstance(out, str):
        return out
    if isinstance(out, dict):
        # Replicate may return a dict with keys like 'json_output' and 'text'
        if "json_output" in out:
            jo = out.get("json_output")
            if isinstance(jo, str):
                return jo
            try:
                return json.dumps(jo, ensure_ascii=False)
            except (TypeError, ValueError):
                return str(jo)
        if isinstance(out.get("text"), str):
            return out["text"]
        try:
            return json.dumps(out, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(out)
    # Many models stream an iterator of string chunks
    try:
        chunks = list(out)
    except TypeError as exc:
        raise LLMClientError("Unexpected streaming output from Replicate") from exc
    return "".join(str(c) for c in chunks)


class ReplicateLLMClient(LLMClient):
    """Oracle powered by a chat model hosted on Replicate."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: Optional[replicate.Client] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(__name__)

        # Fall back to sensible defaults if custom Settings class is used in tests
        self.model: str = str(getattr(self.settings, "llm_model", "openai/gpt-5-nano"))
        self._log_payloads: bool = bool(getattr(self.settings, "llm_log_payloads", False))
        self._max_completion_tokens: int = int(
            getattr(self.settings, "llm_max_completion_tokens", 1024)
        )

        token = getattr(self.settings, "replicate_api_token", "")
        if client is None and token:
            client = replicate.Client(api_token=token)
        self._client = client
        if self._client is None:
            self.logger.warning("REPLICATE_API_TOKEN not set; oracle features disabled")

    def is_available(self) -> bool:
        return self._client is not None

    def _run(self, payload: Dict[str, Any]) -> str:
        assert self._client is not None
        out = self._client.run(self.model, input=payload)
        text = _output_to_text(out)
        _lvl = logging.INFO if self._log_payloads else logging.DEBUG
        self.logger.log(_lvl, "Replicate raw response | model=%s | raw=%s", self.model, text)
        return text

    def complete(self, prompt: str, image_url: Optional[str] = None) -> str:
        if self._client is None:
            raise LLMClientError("Replicate client is not configured")
        payload: Dict[str, Any] = {
            "reasoning_effort": "minimal",
            "verbosity": "low",
            "prompt": prompt,
            "max_completion_tokens": self._max_completion_tokens,
        }
        if image_url:
            payload["image_input"] = [image_url]

        _lvl = logging.INFO if self._log_payloads else logging.DEBUG
        self.logger.log(
            _lvl,
            "Replicate request | model=%s | input=%s",
            self.model,
            json.dumps(payload, ensure_ascii=False, default=str),
        )
        try:
            text = self._run(payload)
            if not text.strip():
                # Single retry with a higher cap; reasoning models sometimes
                # burn the whole budget before emitting anything.
                prev = self._max_completion_tokens
                new_cap = min(max(prev * 2, 2048), 4096)
                if new_cap > prev:
                    self.logger.info(
                        "Replicate empty output; retry with max_completion_tokens=%s (prev=%s)",
                        new_cap,
                        prev,
                    )
                    payload["max_completion_tokens"] = new_cap
                    text = self._run(payload)
            return text
        except LLMClientError:
            raise
        except Exception as exc:
            self.logger.exception("Replicate request failed: %s", exc)
            raise LLMClientError(f"Replicate request failed: {exc}") from exc


__all__ = ["ReplicateLLMClient", "LLMClientError"]
