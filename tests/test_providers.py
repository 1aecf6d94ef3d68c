"""Tests for embedding and completion providers."""

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from search_libs.common.config import SearchConfig
from search_libs.common.errors import CompletionProviderError, EmbeddingProviderError
from search_libs.providers.completion import OpenAICompletionProvider, create_completion_provider
from search_libs.providers.embedding import (
    EmbeddingServiceProvider,
    OpenAIEmbeddingProvider,
    create_embedding_provider,
)
from search_libs.providers.text_cleaner import clean_text


class FakeOpenAIClient:
    """Mimics the parts of ``openai.AsyncOpenAI`` the providers use."""

    def __init__(self, embedding=None, reply=None, error=None):
        self.error = error
        self.requests = []
        self.closed = False
        self._embedding = embedding or [0.1, 0.2]
        self._reply = reply
        self.embeddings = SimpleNamespace(create=self._create_embedding)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_completion))

    async def _create_embedding(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=[SimpleNamespace(embedding=self._embedding)])

    async def _create_completion(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        if self._reply is None:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self._reply))])

    async def close(self):
        self.closed = True


def test_clean_text():
    """Test text cleaning before embedding."""
    text = '[Image "chart.png"] Read [the report](https://x.com/r) at https://example.com/page now \U0001F600☀'
    assert clean_text(text).split() == ["Read", "the", "report", "at", "now"]
    assert clean_text(None) == ""
    assert clean_text("plain text") == "plain text"


@pytest.mark.asyncio
async def test_openai_embedding_cleans_input():
    """Test OpenAI embedding sends cleaned text."""
    client = FakeOpenAIClient(embedding=[0.5, 0.25])
    provider = OpenAIEmbeddingProvider(model="text-embedding-3-small", client=client)

    vector = await provider.embed("series a https://example.com")

    assert vector == [0.5, 0.25]
    assert client.requests == [{"input": "series a", "model": "text-embedding-3-small"}]
    await provider.close()
    assert client.closed


@pytest.mark.asyncio
async def test_openai_embedding_errors():
    """Test OpenAI embedding failures."""
    provider = OpenAIEmbeddingProvider(client=FakeOpenAIClient(error=openai.OpenAIError("quota")))
    with pytest.raises(EmbeddingProviderError):
        await provider.embed("series a")

    empty = FakeOpenAIClient()
    with pytest.raises(EmbeddingProviderError):
        await OpenAIEmbeddingProvider(client=empty).embed("https://example.com")
    assert empty.requests == []


@pytest.mark.asyncio
async def test_embedding_service_provider():
    """Test embedding service request shape."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"vectors": [[0.1, 0.2, 0.3]], "model": "default"})

    provider = EmbeddingServiceProvider("http://embed:9006/", transport=httpx.MockTransport(handler))
    vector = await provider.embed("hello world")

    assert vector == [0.1, 0.2, 0.3]
    assert seen["path"] == "/api/v1/embed"
    assert seen["body"] == {"items": [{"text": "hello world"}], "model": "default"}


@pytest.mark.asyncio
async def test_embedding_service_errors():
    """Test embedding service failures."""
    failing = EmbeddingServiceProvider(
        "http://embed:9006", transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )
    with pytest.raises(EmbeddingProviderError):
        await failing.embed("hello")

    empty = EmbeddingServiceProvider(
        "http://embed:9006", transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"vectors": []}))
    )
    with pytest.raises(EmbeddingProviderError):
        await empty.embed("hello")


@pytest.mark.asyncio
async def test_openai_completion():
    """Test OpenAI completion."""
    client = FakeOpenAIClient(reply='{"a": 1}')
    provider = OpenAICompletionProvider(model="gpt-4o-mini", client=client)

    assert await provider.complete("prompt") == '{"a": 1}'
    assert client.requests[0]["messages"] == [{"role": "user", "content": "prompt"}]
    assert await OpenAICompletionProvider(client=FakeOpenAIClient(reply=None)).complete("p") == ""


@pytest.mark.asyncio
async def test_openai_completion_error():
    """Test OpenAI completion failures."""
    provider = OpenAICompletionProvider(client=FakeOpenAIClient(error=openai.OpenAIError("down")))
    with pytest.raises(CompletionProviderError):
        await provider.complete("prompt")


def test_provider_factories():
    """Test provider selection from config."""
    config = SearchConfig(openai_api_key="test-key", search_embedding_backend="service")
    assert isinstance(create_embedding_provider(config), EmbeddingServiceProvider)
    assert isinstance(create_completion_provider(config), OpenAICompletionProvider)

    with pytest.raises(ValueError):
        create_embedding_provider(SearchConfig(openai_api_key="test-key", search_embedding_backend="bogus"))
