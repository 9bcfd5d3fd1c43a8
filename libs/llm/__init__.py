"""LLM oracle and embeddings abstractions and implementations."""

from .llm_client import LLMClient, LLMClientError
from .replicate_client import ReplicateLLMClient
from .embeddings_provider import (
    EmbeddingsError,
    EmbeddingsProvider,
    get_embeddings_provider,
    pseudo_embedding,
)
from .json_output import extract_json_object
from .prompts import PromptBook, get_prompt_book

__all__ = [
    "LLMClient",
    "LLMClientError",
    "ReplicateLLMClient",
    "EmbeddingsProvider",
    "EmbeddingsError",
    "get_embeddings_provider",
    "pseudo_embedding",
    "extract_json_object",
    "PromptBook",
    "get_prompt_book",
]
