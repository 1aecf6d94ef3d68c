"""Tests for the URL search manager."""

from datetime import datetime, timezone

import pytest

from search_libs.common.config import SearchConfig
from search_service.hybrid.search_manager import UrlSearchManager, create_url_search_manager
from search_service.intelligence.query_optimizer import QueryOptimizer
from search_service.intelligence.reranker import Reranker
from search_service.ranking.fusion import Signal, weighted_mean
from search_service.schemas import UrlSearchRequest, UrlWeights
from tests.fakes import FakeCompletion, FakeEmbedder, FakeSearchIndex

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def url_index():
    return FakeSearchIndex(hits={
        "title_vector_score": [
            {"url_id": "u2", "url": "https://example.com/about", "page_title": "About us", "title_vector_score": "0.1"},
            {
                "url_id": "u1",
                "url": "https://example.com/series-a-canada",
                "page_title": "Series A rounds in Canada",
                "title_vector_score": "0.3",
            },
        ],
        "url_vector_score": [
            {"url_id": "u1", "url_vector_score": "0.4"},
        ],
    })


def build_manager(index, completion=None):
    completion = completion or FakeCompletion("{}")
    return UrlSearchManager(
        session_factory=index.session_factory(),
        embedder=FakeEmbedder(),
        optimizer=QueryOptimizer(completion),
        reranker=Reranker(completion),
        clock=lambda: NOW,
    )


@pytest.mark.asyncio
async def test_url_search_ranks_and_scores():
    """Test URL search scoring and ranking."""
    index = url_index()
    response = await build_manager(index).search(UrlSearchRequest(query="series a rounds"))

    assert [c.url_id for c in response.results] == ["u1", "u2"]
    by_id = {c.url_id: c for c in response.results}
    assert by_id["u1"].url_vector_score == pytest.approx(0.4)
    assert by_id["u2"].url_vector_score == 0.0
    assert by_id["u1"].fuzzy_score >= 0.8

    for candidate in response.results:
        expected = (candidate.title_vector_score + candidate.url_vector_score + 1.5 * candidate.fuzzy_score) / 3.5
        assert candidate.overall_score == pytest.approx(expected)
        assert candidate.weighted_score == pytest.approx(
            weighted_mean(candidate.signal_scores(), UrlWeights.defaults().signal_weights())
        )

    assert response.metadata.recency_bias is None
    assert index.closed

    indexes = {call["index_name"] for call in index.calls}
    assert indexes == {"idx:urls"}
    secondary = [call for call in index.calls if call["sort_field"] == "url_vector_score"][0]
    assert secondary["k"] == 10


@pytest.mark.asyncio
async def test_url_reranking_uses_url_body():
    """Test URL reranking."""
    completion = FakeCompletion('{"u2": 1.0}')
    response = await build_manager(url_index(), completion=completion).search(
        UrlSearchRequest(query="about", use_llm_reranking=True)
    )

    by_id = {c.url_id: c for c in response.results}
    assert by_id["u2"].rerank_score == 1.0
    assert by_id["u1"].rerank_score == 0.5
    assert by_id["u2"].weighted_score == pytest.approx(
        weighted_mean(by_id["u2"].signal_scores(), UrlWeights.defaults().signal_weights(rerank_applied=True))
    )
    assert Signal.RECENCY not in by_id["u2"].signal_scores()
    assert "https://example.com/about" in completion.prompts[0]


@pytest.mark.asyncio
async def test_url_weights_from_request():
    """Test URL weights from a camelCase request."""
    request = UrlSearchRequest.model_validate({"query": "about", "weights": {"urlWeight": 1.0}})
    response = await build_manager(url_index()).search(request)

    assert [c.url_id for c in response.results] == ["u1", "u2"]
    assert response.results[0].weighted_score == pytest.approx(0.4)
    assert response.results[1].weighted_score == 0.0


@pytest.mark.asyncio
async def test_url_response_serialization():
    """Test URL responses serialize with camelCase keys."""
    response = await build_manager(url_index()).search(UrlSearchRequest(query="series"))
    payload = response.model_dump(by_alias=True)
    assert payload["results"][0]["urlId"] == "u1"
    assert "urlVectorScore" in payload["results"][0]


@pytest.mark.asyncio
async def test_url_factory_wiring():
    """Test the URL manager factory wiring."""
    manager = create_url_search_manager(SearchConfig(openai_api_key="test-key", search_urls_index="idx:pages"))
    assert manager.gateway.urls_index == "idx:pages"
    assert manager.variant == "urls"
    await manager.close()
