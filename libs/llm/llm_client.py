from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class LLMClientError(Exception):
    """Raised when interaction with LLM fails."""


class LLMClient(ABC):
    """Abstract interface for the language model oracle.

    The oracle takes a text prompt (optionally with an image) and returns
    free-form text that is expected, but not guaranteed, to contain a JSON
    object. Callers own parsing and must tolerate prose around the JSON or no
    JSON at all.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Return True when the oracle is configured and worth calling."""

    @abstractmethod
    def complete(self, prompt: str, image_url: Optional[str] = None) -> str:
        """Return the raw model output for ``prompt``.

        Raises :class:`LLMClientError` when the oracle cannot be reached.
        """
