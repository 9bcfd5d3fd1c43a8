from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from libs.llm.prompts import PromptBook, get_prompt_book
from libs.llm.replicate_client import LLMClientError, ReplicateLLMClient


# Stub settings with fake token
class DummySettings(SimpleNamespace):
    replicate_api_token: str = "token"
    llm_model: str = "openai/gpt-5-nano"
    llm_max_completion_tokens: int = 512


def make_client(output=None, side_effect=None) -> tuple[ReplicateLLMClient, MagicMock]:
    replicate_client = MagicMock()
    replicate_client.run.return_value = output
    replicate_client.run.side_effect = side_effect
    return ReplicateLLMClient(settings=DummySettings(), client=replicate_client), replicate_client


def test_complete_joins_streamed_chunks():
    client, raw = make_client(output=iter(['{"type": ', '"video"}']))
    assert client.complete("prompt") == '{"type": "video"}'
    payload = raw.run.call_args.kwargs["input"]
    assert payload["prompt"] == "prompt"
    assert payload["max_completion_tokens"] == 512
    assert "image_input" not in payload


def test_complete_passes_image_url():
    client, raw = make_client(output="ok")
    client.complete("describe", image_url="https://cdn.example.com/cat.png")
    payload = raw.run.call_args.kwargs["input"]
    assert payload["image_input"] == ["https://cdn.example.com/cat.png"]


def test_complete_reads_json_output_dict():
    client, _ = make_client(output={"json_output": {"type": "note"}})
    assert client.complete("p") == '{"type": "note"}'


def test_empty_output_retries_with_higher_cap():
    client, raw = make_client(side_effect=["", "later"])
    assert client.complete("p") == "later"
    assert raw.run.call_count == 2
    assert raw.run.call_args.kwargs["input"]["max_completion_tokens"] == 2048


def test_failure_is_wrapped():
    client, _ = make_client(side_effect=TimeoutError("slow"))
    with pytest.raises(LLMClientError):
        client.complete("p")


def test_unconfigured_client_is_unavailable():
    client = ReplicateLLMClient(settings=SimpleNamespace(replicate_api_token=""))
    assert client.is_available() is False
    with pytest.raises(LLMClientError):
        client.complete("p")


def test_prompt_book_renders_templates():
    book = PromptBook()
    text = book.render("filters", "user", query="cheap shoes", today="2024-11-10")
    assert '"cheap shoes"' in text
    assert "(2024-11-10)" in text
    assert '"dateRange": {' in text


def test_prompt_book_missing_file(tmp_path):
    with pytest.raises(LLMClientError):
        PromptBook(tmp_path / "nope.yaml")


def test_prompt_book_is_shared():
    assert get_prompt_book() is get_prompt_book()
