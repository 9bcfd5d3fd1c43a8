from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict

import yaml

from libs.core.settings import get_settings

from .llm_client import LLMClientError

logger = logging.getLogger(__name__)


class PromptBook:
    """Prompt templates loaded from a YAML file of ``section -> key -> text``."""

    def __init__(self, prompts_path: str | Path | None = None) -> None:
        self.prompts_path = (
            Path(prompts_path)
            if prompts_path is not None
            else Path(get_settings().prompts_path)
        )
        try:
            with self.prompts_path.open("r", encoding="utf-8") as fh:
                self.prompts: Dict[str, Dict[str, str]] = yaml.safe_load(fh) or {}
            logger.debug("Prompts loaded from: %s", str(self.prompts_path))
        except FileNotFoundError as exc:
            raise LLMClientError(
                f"Prompts file not found: {self.prompts_path}"
            ) from exc
        except yaml.YAMLError as exc:
            raise LLMClientError("Failed to parse prompts file") from exc

    def get(self, section: str, key: str) -> str:
        try:
            return self.prompts[section][key]
        except (KeyError, TypeError) as exc:
            raise LLMClientError(
                f"Prompt '{section}.{key}' not found in {self.prompts_path}"
            ) from exc

    def render(self, section: str, key: str, **values: str) -> str:
        # Templates use {name} placeholders; literal braces are doubled.
        return self.get(section, key).format(**values)


@lru_cache
def get_prompt_book() -> PromptBook:
    """Process-wide prompt catalogue, read from disk on first use."""
    return PromptBook()


__all__ = ["PromptBook", "get_prompt_book"]
