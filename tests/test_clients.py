"""
Unit tests for project_finder.clients

Provider SDK / HTTP calls are mocked; no network access.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from project_finder.clients import (
    EmbeddingClient,
    EmbeddingConfigError,
    create_embedding_client,
)
from project_finder.clients.ollama import OllamaEmbeddingClient
from project_finder.clients.openai_client import OpenAIEmbeddingClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _FlakyClient(EmbeddingClient):
    name = "Flaky"

    def __init__(self, failures, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.calls: list[list[str]] = []

    async def _embed(self, texts):
        self.calls.append(list(texts))
        if len(self.calls) <= self.failures:
            raise ConnectionError("HTTP 429 Too Many Requests")
        return [[float(len(t))] for t in texts]


def _config(**overrides):
    values = dict(
        EMBEDDING_PROVIDER="openai",
        EMBEDDING_MODEL="text-embedding-3-large",
        EMBEDDING_DIMENSIONS=1536,
        EMBEDDING_MAX_RETRIES=2,
        EMBEDDING_RETRY_DELAY=0.0,
        OPENAI_API_KEY="sk-test",
        OPENAI_BASE_URL="https://api.openai.com/v1",
        OLLAMA_BASE_URL="http://localhost:11434",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


# ---------------------------------------------------------------------------
# Tests: EmbeddingClient base behaviour
# ---------------------------------------------------------------------------

class TestEmbeddingClientBase:
    def test_empty_input(self):
        client = _FlakyClient(failures=0)
        assert asyncio.run(client([])) == []
        assert client.calls == []

    def test_blank_texts_not_sent(self):
        client = _FlakyClient(failures=0)
        result = asyncio.run(client(["ab", "  ", "", "xyz"]))
        assert client.calls == [["ab", "xyz"]]
        assert result == [[2.0], None, None, [3.0]]

    def test_texts_sent_unchanged(self):
        client = _FlakyClient(failures=0)
        result = asyncio.run(client([" Finance Platform "]))
        assert client.calls == [[" Finance Platform "]]
        assert result == [[18.0]]

    def test_all_blank(self):
        client = _FlakyClient(failures=0)
        assert asyncio.run(client(["", " "])) == [None, None]
        assert client.calls == []

    def test_retries_then_succeeds(self):
        client = _FlakyClient(failures=2, max_retries=3, retry_delay=0)
        assert asyncio.run(client(["abc"])) == [[3.0]]
        assert len(client.calls) == 3

    def test_gives_up_with_nulls(self):
        client = _FlakyClient(failures=10, max_retries=2, retry_delay=0)
        assert asyncio.run(client(["a", "b"])) == [None, None]
        assert len(client.calls) == 2

    def test_max_retries_at_least_one(self):
        assert _FlakyClient(failures=0, max_retries=0).max_retries == 1


# ---------------------------------------------------------------------------
# Tests: OpenAIEmbeddingClient
# ---------------------------------------------------------------------------

class TestOpenAIEmbeddingClient:
    def test_missing_api_key(self):
        with pytest.raises(EmbeddingConfigError):
            OpenAIEmbeddingClient(api_key="")

    def test_embed_maps_by_index(self):
        response = SimpleNamespace(data=[
            SimpleNamespace(index=1, embedding=[0.2]),
            SimpleNamespace(index=0, embedding=[0.1]),
        ])
        sdk = MagicMock()
        sdk.embeddings.create = AsyncMock(return_value=response)

        with patch("openai.AsyncOpenAI", return_value=sdk) as ctor:
            client = OpenAIEmbeddingClient(api_key="sk-test", model="m", dimensions=256)
            result = asyncio.run(client(["first", "second"]))

        ctor.assert_called_once_with(api_key="sk-test", base_url=None)
        assert result == [[0.1], [0.2]]
        kwargs = sdk.embeddings.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["input"] == ["first", "second"]
        assert kwargs["dimensions"] == 256

    def test_dimensions_omitted_when_unset(self):
        response = SimpleNamespace(data=[SimpleNamespace(index=0, embedding=[1.0])])
        sdk = MagicMock()
        sdk.embeddings.create = AsyncMock(return_value=response)

        with patch("openai.AsyncOpenAI", return_value=sdk):
            client = OpenAIEmbeddingClient(api_key="sk-test", dimensions=None)
            asyncio.run(client(["x"]))

        assert "dimensions" not in sdk.embeddings.create.call_args.kwargs

    def test_missing_items_become_none(self):
        response = SimpleNamespace(data=[SimpleNamespace(index=0, embedding=[1.0])])
        sdk = MagicMock()
        sdk.embeddings.create = AsyncMock(return_value=response)

        with patch("openai.AsyncOpenAI", return_value=sdk):
            client = OpenAIEmbeddingClient(api_key="sk-test")
            assert asyncio.run(client(["a", "b"])) == [[1.0], None]


# ---------------------------------------------------------------------------
# Tests: OllamaEmbeddingClient
# ---------------------------------------------------------------------------

class TestOllamaEmbeddingClient:
    @pytest.mark.parametrize("base_url", [
        "http://localhost:11434",
        "http://localhost:11434/",
        "http://localhost:11434/api/generate",
    ])
    def test_api_root(self, base_url):
        client = OllamaEmbeddingClient(base_url)
        assert client._api_root == "http://localhost:11434"

    @patch("project_finder.clients.ollama.requests.post")
    def test_embed(self, mock_post):
        response = MagicMock()
        response.json.return_value = {"embeddings": [[0.1, 0.2], [0.3, 0.4]]}
        mock_post.return_value = response

        client = OllamaEmbeddingClient("http://localhost:11434", model="nomic-embed-text")
        result = asyncio.run(client(["a", "b"]))

        assert result == [[0.1, 0.2], [0.3, 0.4]]
        args, kwargs = mock_post.call_args
        assert args[0] == "http://localhost:11434/api/embed"
        assert kwargs["json"] == {"model": "nomic-embed-text", "input": ["a", "b"]}
        response.raise_for_status.assert_called_once()

    @patch("project_finder.clients.ollama.requests.post")
    def test_short_response_padded(self, mock_post):
        mock_post.return_value.json.return_value = {"embeddings": [[1.0]]}
        client = OllamaEmbeddingClient("http://localhost:11434")
        assert asyncio.run(client(["a", "b"])) == [[1.0], None]

    @patch("project_finder.clients.ollama.requests.post")
    def test_http_error_yields_nulls(self, mock_post):
        mock_post.side_effect = ConnectionError("refused")
        client = OllamaEmbeddingClient("http://localhost:11434", max_retries=2, retry_delay=0)
        assert asyncio.run(client(["a"])) == [None]
        assert mock_post.call_count == 2


# ---------------------------------------------------------------------------
# Tests: factory
# ---------------------------------------------------------------------------

class TestCreateEmbeddingClient:
    def test_none_provider(self):
        assert create_embedding_client(_config(EMBEDDING_PROVIDER="none")) is None

    def test_openai(self):
        with patch("openai.AsyncOpenAI"):
            client = create_embedding_client(_config())
        assert isinstance(client, OpenAIEmbeddingClient)
        assert client.max_retries == 2

    def test_openai_without_key(self):
        with pytest.raises(EmbeddingConfigError):
            create_embedding_client(_config(OPENAI_API_KEY=""))

    def test_ollama_uses_its_default_model(self):
        client = create_embedding_client(_config(EMBEDDING_PROVIDER="ollama"))
        assert isinstance(client, OllamaEmbeddingClient)
        assert client.model == "nomic-embed-text"

    def test_ollama_custom_model(self):
        client = create_embedding_client(
            _config(EMBEDDING_PROVIDER="Ollama", EMBEDDING_MODEL="mxbai-embed-large")
        )
        assert client.model == "mxbai-embed-large"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_embedding_client(_config(EMBEDDING_PROVIDER="cohere"))
