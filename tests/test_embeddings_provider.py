import math
import threading
from unittest.mock import MagicMock, patch

from libs.llm.embeddings_provider import EmbeddingsProvider, pseudo_embedding


def _norm(vec):
    return math.sqrt(sum(x * x for x in vec))


def test_embed_texts_with_cache_and_batches():
    client = MagicMock()
    client.run.return_value = {"embeddings": [[3.0, 0.0, 4.0], [0.0, 2.0, 0.0]]}
    provider = EmbeddingsProvider(batch_size=2, embedding_dim=3, client=client)

    result = provider.embed_texts(["foo", "bar", "foo"])

    assert result[0] == [0.6, 0.0, 0.8]
    assert result[1] == [0.0, 1.0, 0.0]
    assert result[2] == result[0]
    assert client.run.call_count == 1

    # Second call served from the cache
    provider.embed_texts(["bar"])
    assert client.run.call_count == 1


def test_no_token_enters_degraded_mode():
    provider = EmbeddingsProvider(embedding_dim=16, api_token="")
    provider.init()

    assert provider.degraded is True
    assert provider.ready() is False
    vec = provider.embed("hello world")
    assert len(vec) == 16
    assert math.isclose(_norm(vec), 1.0, rel_tol=1e-6)
    assert vec == pseudo_embedding("hello world", 16)


def test_pseudo_embedding_is_deterministic_and_text_sensitive():
    a1 = pseudo_embedding("running shoes", 32)
    a2 = pseudo_embedding("running shoes", 32)
    b = pseudo_embedding("budget laptop", 32)

    assert a1 == a2
    assert a1 != b
    assert math.isclose(_norm(a1), 1.0, rel_tol=1e-6)


def test_call_failure_falls_back_without_caching():
    client = MagicMock()
    client.run.side_effect = RuntimeError("boom")
    provider = EmbeddingsProvider(embedding_dim=4, client=client)

    vec = provider.embed("x")
    assert vec == pseudo_embedding("x", 4)
    assert provider.degraded is True

    client.run.side_effect = None
    client.run.return_value = [[1.0, 0.0, 0.0, 0.0]]
    assert provider.embed("x") == [1.0, 0.0, 0.0, 0.0]


def test_wrong_dimension_is_rejected():
    client = MagicMock()
    client.run.return_value = [[1.0, 0.0]]
    provider = EmbeddingsProvider(embedding_dim=4, client=client)

    assert provider.embed("x") == pseudo_embedding("x", 4)
    assert provider.degraded is True


def test_init_builds_client_once_under_concurrency():
    provider = EmbeddingsProvider(embedding_dim=4, api_token="token")
    with patch("libs.llm.embeddings_provider.replicate.Client") as client_cls:
        threads = [threading.Thread(target=provider.init) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    assert client_cls.call_count == 1
    assert provider.ready() is True
    assert provider.degraded is False


def test_cache_evicts_least_recently_used():
    client = MagicMock()
    client.run.side_effect = lambda model, input: [[1.0, 0.0] for _ in input["texts"]]
    provider = EmbeddingsProvider(embedding_dim=2, cache_size=2, client=client)

    provider.embed_texts(["a", "b"])
    provider.embed_texts(["a"])  # touch "a" so "b" is the oldest
    provider.embed_texts(["c"])
    assert client.run.call_count == 2

    provider.embed_texts(["a"])
    assert client.run.call_count == 2

    provider.embed_texts(["b"])
    assert client.run.call_count == 3
    assert client.run.call_args.kwargs["input"] == {"texts": ["b"]}


def test_successful_call_clears_degraded_flag():
    client = MagicMock()
    client.run.side_effect = RuntimeError("boom")
    provider = EmbeddingsProvider(embedding_dim=4, client=client)

    provider.embed("x")
    assert provider.degraded is True

    client.run.side_effect = None
    client.run.return_value = [[0.0, 1.0, 0.0, 0.0]]
    assert provider.embed("y") == [0.0, 1.0, 0.0, 0.0]
    assert provider.degraded is False
