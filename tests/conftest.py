import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional, Union

import pytest

# Ensure project root on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from libs.core.models import SavedItem
from libs.core.settings import Settings
from libs.db.memory_repository import InMemoryItemRepo
from libs.llm import LLMClient, LLMClientError
from libs.llm.embeddings_provider import EmbeddingsProvider

NOW = datetime(2024, 11, 10, 12, 0, tzinfo=timezone.utc)

Reply = Union[str, Exception, Callable[[str], str]]


class CannedLLM(LLMClient):
    """Oracle double returning scripted replies and recording prompts."""

    def __init__(self, *replies: Reply, available: bool = True) -> None:
        self.replies: List[Reply] = list(replies)
        self.available = available
        self.prompts: List[str] = []
        self.image_urls: List[Optional[str]] = []

    def is_available(self) -> bool:
        return self.available

    def complete(self, prompt: str, image_url: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        self.image_urls.append(image_url)
        if not self.replies:
            raise LLMClientError("no scripted reply left")
        reply = self.replies[0] if len(self.replies) == 1 else self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt)
        return reply


def make_item(owner: str = "alice", title: str = "Untitled", **fields) -> SavedItem:
    fields.setdefault("created_at", NOW - timedelta(hours=1))
    return SavedItem(owner_key=owner, title=title, **fields)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        replicate_api_token="",
        auth_secret="test-secret",
        llm_timeout=2.0,
        embedding_dim=8,
    )


@pytest.fixture()
def degraded_embeddings() -> EmbeddingsProvider:
    provider = EmbeddingsProvider(embedding_dim=8, api_token="")
    provider.init()
    return provider


@pytest.fixture()
def store() -> InMemoryItemRepo:
    return InMemoryItemRepo()
