"""Helpers for pulling a JSON object out of free-form model output."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

_decoder = json.JSONDecoder()


def strip_code_fences(text: str) -> str:
    """Drop a leading Markdown code fence (```json ... ```) if present."""
    s = text.strip()
    if not s.startswith("```"):
        return s
    parts = s.splitlines()
    try:
        end_idx = next(
            i for i, line in enumerate(parts[1:], start=1) if line.strip().startswith("```")
        )
    except StopIteration:
        # No closing fence; keep everything after the opening line
        return "\n".join(parts[1:]).strip()
    return "\n".join(parts[1:end_idx]).strip()


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the first well-formed ``{...}`` object found in ``text``.

    Models like to wrap JSON in explanations ("Here is the result: {...}
    Hope this helps"). Each ``{`` is tried in turn as the start of a JSON
    document and the first one that decodes to an object wins. Returns
    ``None`` when nothing decodes.
    """
    if not text:
        return None
    s = strip_code_fences(text)
    start = s.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(s, start)
        except json.JSONDecodeError:
            start = s.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = s.find("{", start + 1)
    return None


__all__ = ["strip_code_fences", "extract_json_object"]
