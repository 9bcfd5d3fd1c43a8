from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from functools import lru_cache
from typing import Any, Dict, List, Optional

import numpy as np
import replicate

from libs.core.settings import get_settings

logger = logging.getLogger(__name__)


class EmbeddingsError(Exception):
    """Raised when the embeddings backend returns unusable output."""


def _hash_string(text: str) -> int:
    """32-bit signed rolling hash (h * 31 + code point), stable across runs."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def _normalize(vec: np.ndarray) -> List[float]:
    norm = float(np.linalg.norm(vec))
    if norm == 0.0:
        return vec.astype(float).tolist()
    return (vec / norm).astype(float).tolist()


def pseudo_embedding(text: str, dim: int) -> List[float]:
    """Deterministic stand-in vector used when no real model is reachable.

    Cosine similarity stays well-defined on these vectors but carries no
    semantic signal, so ranking degrades to roughly arbitrary order and the
    lexical scoring paths do the real work.
    """
    seed = _hash_string(text)
    vec = np.sin(seed + np.arange(dim, dtype=np.float64)) * 0.1
    return _normalize(vec)


class EmbeddingsProvider:
    """Fetch text embeddings from a Replicate model with a hash fallback.

    The Replicate client is created once by :meth:`init`; concurrent first
    calls serialize on a lock so only one of them builds it. When no client
    can be built, or a call fails, texts get :func:`pseudo_embedding`
    vectors instead and :attr:`degraded` is set.
    """

    def __init__(
        self,
        model: str | None = None,
        *,
        embedding_dim: int | None = None,
        batch_size: int = 32,
        enable_cache: bool = True,
        cache_size: int = 2048,
        client: Optional[Any] = None,
        api_token: str | None = None,
    ) -> None:
        settings = get_settings()
        # Allow overriding via args; otherwise pull from settings with sane defaults
        self.model = model or getattr(
            settings, "embeddings_model", "nomic-ai/nomic-embed-text-v1.5"
        )
        self.embedding_dim = (
            embedding_dim if embedding_dim is not None else getattr(settings, "embedding_dim", 768)
        )
        self.batch_size = batch_size
        self.enable_cache = enable_cache
        self._api_token = api_token if api_token is not None else settings.replicate_api_token
        self._client = client
        self.cache_size = cache_size
        # LRU: most recently used texts at the end
        self._cache: "OrderedDict[str, List[float]]" = OrderedDict()
        self._cache_lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._initialized = False
        self.degraded = False

    # Lifecycle ---------------------------------------------------------
    def init(self) -> None:
        """Build the model handle once; later calls are no-ops."""
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            if self._client is None:
                if not self._api_token:
                    self._enter_degraded("REPLICATE_API_TOKEN is not set")
                else:
                    try:
                        self._client = replicate.Client(api_token=self._api_token)
                    except Exception as exc:
                        self._enter_degraded(f"client init failed: {exc}")
            if self._client is not None:
                logger.info("Embeddings model ready: %s (dim=%d)", self.model, self.embedding_dim)
            self._initialized = True

    def ready(self) -> bool:
        """True once initialized with a real model behind it."""
        return self._initialized and self._client is not None

    def _cached(self, text: str) -> Optional[List[float]]:
        with self._cache_lock:
            emb = self._cache.get(text)
            if emb is not None:
                self._cache.move_to_end(text)
            return emb

    def _remember(self, text: str, emb: List[float]) -> None:
        with self._cache_lock:
            self._cache[text] = emb
            self._cache.move_to_end(text)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def _leave_degraded(self) -> None:
        if self.degraded:
            logger.info("Embeddings backend recovered", extra={"embeddings_model": self.model})
        self.degraded = False

    def _enter_degraded(self, reason: str) -> None:
        if not self.degraded:
            logger.warning(
                "Embeddings running in degraded mode (hash pseudo-embeddings): %s",
                reason,
                extra={"embeddings_model": self.model},
            )
        self.degraded = True

    # Embedding ---------------------------------------------------------
    def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        output = self._client.run(self.model, input={"texts": texts})
        if isinstance(output, dict) and "embeddings" in output:
            embeddings = output["embeddings"]
        else:
            embeddings = output
        embeddings = list(embeddings or [])
        if len(embeddings) != len(texts):
            raise EmbeddingsError(
                f"Expected {len(texts)} embeddings, got {len(embeddings)}"
            )
        vectors: List[List[float]] = []
        for emb in embeddings:
            if len(emb) != self.embedding_dim:
                raise EmbeddingsError(
                    f"Embedding size {len(emb)} does not match expected {self.embedding_dim}"
                )
            vectors.append(_normalize(np.asarray(emb, dtype=np.float64)))
        return vectors

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        self.init()
        results: List[List[float] | None] = [None] * len(texts)
        text_to_indices: Dict[str, List[int]] = {}

        for idx, text in enumerate(texts):
            cached = self._cached(text) if self.enable_cache else None
            if cached is not None:
                results[idx] = cached
            else:
                text_to_indices.setdefault(text, []).append(idx)

        uncached = list(text_to_indices.keys())

        for i in range(0, len(uncached), self.batch_size):
            batch = uncached[i : i + self.batch_size]
            embeddings: List[List[float]] | None = None
            if self._client is not None:
                try:
                    embeddings = self._embed_batch(batch)
                    self._leave_degraded()
                except Exception as exc:
                    self._enter_degraded(f"embedding call failed: {exc}")
            for pos, text in enumerate(batch):
                if embeddings is not None:
                    emb = embeddings[pos]
                    if self.enable_cache:
                        self._remember(text, emb)
                else:
                    # Fallback vectors are not cached so a recovered backend
                    # gets a chance on the next call.
                    emb = pseudo_embedding(text, self.embedding_dim)
                for idx in text_to_indices[text]:
                    results[idx] = emb

        return [emb for emb in results if emb is not None]

    def embed(self, text: str) -> List[float]:
        return self.embed_texts([text])[0]


@lru_cache
def get_embeddings_provider() -> EmbeddingsProvider:
    """Return the process-wide embeddings provider."""
    return EmbeddingsProvider()


__all__ = [
    "EmbeddingsProvider",
    "EmbeddingsError",
    "pseudo_embedding",
    "get_embeddings_provider",
]
