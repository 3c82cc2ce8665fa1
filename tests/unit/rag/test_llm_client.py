"""Tests for the LiteLLM client wrapper."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from codelens.errors import EmbeddingError, GenerationError
from codelens.rag.llm_client import (
    embed_text,
    embed_texts,
    provider_of,
    stream_completion,
    validate_api_key,
)


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o-mini")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o-mini")  # should not raise


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/llama3")


def test_provider_of_defaults_to_openai():
    assert provider_of("gpt-4o") == "openai"
    assert provider_of("Anthropic/claude") == "anthropic"


# ------------------------------------------------------------------
# Embeddings
# ------------------------------------------------------------------


def _embedding_response(vectors, shuffle=False):
    items = [{"index": i, "embedding": v} for i, v in enumerate(vectors)]
    if shuffle:
        items.reverse()
    return SimpleNamespace(data=items)


@pytest.mark.asyncio
async def test_embed_texts_returns_vectors_in_input_order():
    response = _embedding_response([[1.0], [2.0], [3.0]], shuffle=True)
    with patch("codelens.rag.llm_client.litellm.aembedding", AsyncMock(return_value=response)):
        vectors = await embed_texts("openai/text-embedding-3-small", ["a", "b", "c"])
    assert vectors == [[1.0], [2.0], [3.0]]


@pytest.mark.asyncio
async def test_embed_texts_passes_model_and_retries():
    mock = AsyncMock(return_value=_embedding_response([[0.1]]))
    with patch("codelens.rag.llm_client.litellm.aembedding", mock):
        await embed_texts("openai/text-embedding-3-small", ["a"], num_retries=5)
    kwargs = mock.call_args.kwargs
    assert kwargs["model"] == "openai/text-embedding-3-small"
    assert kwargs["input"] == ["a"]
    assert kwargs["num_retries"] == 5


@pytest.mark.asyncio
async def test_embed_texts_wraps_provider_error():
    mock = AsyncMock(side_effect=RuntimeError("503 upstream"))
    with patch("codelens.rag.llm_client.litellm.aembedding", mock):
        with pytest.raises(EmbeddingError, match="503 upstream"):
            await embed_texts("openai/text-embedding-3-small", ["a"])


@pytest.mark.asyncio
async def test_embed_texts_rejects_short_response():
    mock = AsyncMock(return_value=_embedding_response([[0.1]]))
    with patch("codelens.rag.llm_client.litellm.aembedding", mock):
        with pytest.raises(EmbeddingError, match="1 vectors for 2 inputs"):
            await embed_texts("openai/text-embedding-3-small", ["a", "b"])


@pytest.mark.asyncio
async def test_embed_text_single():
    mock = AsyncMock(return_value=_embedding_response([[0.5, 0.5]]))
    with patch("codelens.rag.llm_client.litellm.aembedding", mock):
        assert await embed_text("openai/text-embedding-3-small", "q") == [0.5, 0.5]


# ------------------------------------------------------------------
# Streaming completion
# ------------------------------------------------------------------


def _part(content):
    part = MagicMock()
    part.choices[0].delta.content = content
    return part


class _FakeStream:
    def __init__(self, parts, fail_after=None):
        self._parts = parts
        self._fail_after = fail_after

    def __aiter__(self):
        return self._gen()

    async def _gen(self):
        for i, part in enumerate(self._parts):
            if self._fail_after is not None and i == self._fail_after:
                raise ConnectionError("connection reset")
            yield part


async def _collect(stream):
    return [fragment async for fragment in stream]


@pytest.mark.asyncio
async def test_stream_completion_yields_deltas():
    stream = _FakeStream([_part("Hel"), _part(None), _part("lo")])
    mock = AsyncMock(return_value=stream)
    with patch("codelens.rag.llm_client.litellm.acompletion", mock):
        fragments = await _collect(
            stream_completion("openai/gpt-4o-mini", [{"role": "user", "content": "hi"}])
        )
    assert fragments == ["Hel", "lo"]
    assert mock.call_args.kwargs["stream"] is True


@pytest.mark.asyncio
async def test_stream_completion_skips_parts_without_choices():
    empty = MagicMock()
    empty.choices = []
    mock = AsyncMock(return_value=_FakeStream([empty, _part("ok")]))
    with patch("codelens.rag.llm_client.litellm.acompletion", mock):
        assert await _collect(stream_completion("m", [])) == ["ok"]


@pytest.mark.asyncio
async def test_stream_completion_request_failure():
    mock = AsyncMock(side_effect=RuntimeError("401 invalid key"))
    with patch("codelens.rag.llm_client.litellm.acompletion", mock):
        with pytest.raises(GenerationError, match="401 invalid key"):
            await _collect(stream_completion("m", []))


@pytest.mark.asyncio
async def test_stream_completion_mid_stream_failure():
    mock = AsyncMock(return_value=_FakeStream([_part("a"), _part("b")], fail_after=1))
    received = []
    with patch("codelens.rag.llm_client.litellm.acompletion", mock):
        with pytest.raises(GenerationError, match="interrupted"):
            async for fragment in stream_completion("m", []):
                received.append(fragment)
    assert received == ["a"]
