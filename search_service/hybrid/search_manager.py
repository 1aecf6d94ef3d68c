"""Search managers for hybrid lexical, vector and LLM-assisted search.

A search call runs through fixed stages: optional query rewriting, query
embedding, retrieval (primary and secondary queries issued concurrently
inside one scoped index session), local scoring, optional LLM reranking,
score fusion and a stable descending sort.

Embedding and index failures are fatal and propagate. Optimizer and
reranker failures degrade to neutral fallbacks and the search completes.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

import structlog

from search_libs.common.config import SearchConfig
from search_libs.common.logging import log_performance, search_context
from search_libs.providers.completion import create_completion_provider
from search_libs.providers.embedding import EmbeddingProvider, create_embedding_provider
from search_libs.search_index.base import SearchIndex
from search_libs.search_index.factory import IndexSessionFactory, create_index_session_factory

from ..intelligence.outcome import FallbackReason, StepOutcome
from ..intelligence.query_optimizer import OptimizedQuery, QueryOptimizer
from ..intelligence.reranker import NEUTRAL_RERANK_SCORE, Reranker
from ..ranking.fusion import (
    DOCUMENT_OVERALL_DIVISOR,
    DOCUMENT_SIGNALS,
    URL_OVERALL_DIVISOR,
    URL_SIGNALS,
    Signal,
    overall_score,
    weighted_mean,
)
from ..ranking.scoring import lexical_score, recency_score
from ..retrievers.gateway import RetrievalGateway
from ..runtime.metrics import MetricsCollector
from ..schemas import (
    Candidate,
    DocumentCandidate,
    DocumentSearchRequest,
    DocumentSearchResponse,
    ExecutionMetadata,
    SearchRequest,
    SearchResponse,
    UrlCandidate,
    UrlSearchRequest,
    UrlSearchResponse,
)

logger = structlog.get_logger("search_service.search_manager")

RequestT = TypeVar("RequestT", bound=SearchRequest)
CandidateT = TypeVar("CandidateT", bound=Candidate)


@dataclass(frozen=True)
class QueryPlan:
    """Resolved queries for one search call."""
    lexical_query: str
    vector_query: str
    recency_bias: float
    optimizer_ran: bool = False
    optimizer_fallback: Optional[FallbackReason] = None


async def gather_or_cancel(*aws: Awaitable) -> List:
    """``asyncio.gather`` that cancels and awaits the remaining awaitables on first failure."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except Exception:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class HybridSearchManager(Generic[RequestT, CandidateT]):
    """Shared search pipeline; variants supply retrieval and local scoring.

    Parameters
    - session_factory: Zero-argument callable returning an async context
      manager that yields a ``SearchIndex`` and releases it on exit
    - embedder: Query embedding provider
    - gateway: Index query builder / hit mapper
    - optimizer: Used when a request sets ``ai_enhanced``
    - reranker: Used when a request sets ``use_llm_reranking``
    - metrics: Optional collector; nothing is recorded when absent
    - timeout_seconds: Optional bound on the whole search call
    - clock: Returns the current time (UTC); used for recency and metadata
    """

    variant: str = ""
    signals: Tuple[Signal, ...] = ()
    overall_divisor: float = 1.0
    uses_recency: bool = False
    response_model = SearchResponse

    def __init__(
        self,
        session_factory: IndexSessionFactory,
        embedder: EmbeddingProvider,
        gateway: Optional[RetrievalGateway] = None,
        optimizer: Optional[QueryOptimizer] = None,
        reranker: Optional[Reranker] = None,
        metrics: Optional[MetricsCollector] = None,
        timeout_seconds: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory
        self.embedder = embedder
        self.gateway = gateway or RetrievalGateway()
        self.optimizer = optimizer
        self.reranker = reranker
        self.metrics = metrics
        self.timeout_seconds = timeout_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def search(self, request: RequestT) -> SearchResponse[CandidateT]:
        """Run a hybrid search.

        Returns
        - Candidates sorted by weighted score (overall score when no
          weighted score exists), plus execution metadata.

        Raises
        - ``EmbeddingProviderError`` / ``SearchIndexError`` on fatal stages
        - ``asyncio.TimeoutError`` when ``timeout_seconds`` elapses
        """
        with search_context(variant=self.variant, search_id=uuid.uuid4().hex[:12]):
            start_time = time.time()
            try:
                if self.timeout_seconds:
                    response = await asyncio.wait_for(self._execute(request), timeout=self.timeout_seconds)
                else:
                    response = await self._execute(request)
            except asyncio.TimeoutError:
                logger.error("Search timed out", query=request.query, timeout=self.timeout_seconds)
                self._record_search(time.time() - start_time, 0, status="timeout")
                raise
            except Exception as e:
                logger.error("Search failed", query=request.query, error=str(e))
                self._record_search(time.time() - start_time, 0, status="error")
                raise

            duration = time.time() - start_time
            self._record_search(duration, response.count)
            log_performance(f"{self.variant}_search", duration * 1000, results_count=response.count)
            logger.info(
                "Search completed",
                query=request.query,
                results_count=response.count,
                ai_enhanced=response.metadata.ai_enhanced,
                rerank_applied=response.metadata.rerank_applied,
            )
            return response

    async def _execute(self, request: RequestT) -> SearchResponse[CandidateT]:
        plan = await self._prepare_query(request)
        vector = await self._embed(plan.vector_query)

        async with self.session_factory() as index:
            candidates = await self._retrieve(index, request, plan, vector)

        now = self.clock()
        for candidate in candidates:
            self._score_candidate(candidate, plan, now)

        rerank_outcome = await self._rerank(request, candidates)
        rerank_applied = any(candidate.rerank_score is not None for candidate in candidates)

        weights = request.resolved_weights().signal_weights(rerank_applied=rerank_applied)
        for candidate in candidates:
            scores = candidate.signal_scores()
            candidate.overall_score = overall_score(scores, self.signals, self.overall_divisor)
            candidate.weighted_score = weighted_mean(scores, weights)

        # list.sort is stable: ties keep retrieval order.
        candidates.sort(key=lambda candidate: candidate.sort_score, reverse=True)

        metadata = ExecutionMetadata(
            ai_enhanced=plan.optimizer_ran,
            use_llm_reranking=rerank_outcome is not None,
            timestamp=now,
            result_count=len(candidates),
            lexical_query=plan.lexical_query,
            vector_query=plan.vector_query,
            recency_bias=plan.recency_bias if self.uses_recency else None,
            optimizer_fallback=plan.optimizer_fallback.value if plan.optimizer_fallback else None,
            rerank_applied=rerank_applied,
            rerank_fallback=(
                rerank_outcome.fallback_reason.value
                if rerank_outcome is not None and not rerank_outcome.succeeded
                else None
            ),
        )
        return self.response_model(results=candidates, metadata=metadata)

    async def _prepare_query(self, request: RequestT) -> QueryPlan:
        default = QueryPlan(
            lexical_query=request.effective_fuzzy_value,
            vector_query=request.query,
            recency_bias=OptimizedQuery.passthrough(request.query).recency_bias,
        )
        if not request.ai_enhanced:
            return default
        if self.optimizer is None:
            logger.warning("AI enhancement requested but no optimizer is configured")
            return default

        outcome = await self.optimizer.optimize(request.query)
        if not outcome.succeeded:
            self._record_fallback("optimizer", outcome)

        optimized = outcome.value
        return QueryPlan(
            lexical_query=optimized.lexical_query,
            vector_query=optimized.vector_query,
            recency_bias=optimized.recency_bias,
            optimizer_ran=True,
            optimizer_fallback=None if outcome.succeeded else outcome.fallback_reason,
        )

    async def _embed(self, text: str) -> List[float]:
        start_time = time.time()
        vector = await self.embedder.embed(text)
        if self.metrics:
            self.metrics.record_embedding(time.time() - start_time)
        return vector

    async def _rerank(self, request: RequestT, candidates: List[CandidateT]) -> Optional[StepOutcome[Dict[str, float]]]:
        if not request.use_llm_reranking or not candidates:
            return None
        if self.reranker is None:
            logger.warning("LLM reranking requested but no reranker is configured")
            return None

        try:
            outcome = await self.reranker.rerank(request.query, candidates)
        except Exception as e:
            # Candidates keep no rerank score, so rerank drops out of fusion.
            logger.warning("Reranking aborted", error=str(e))
            outcome = StepOutcome.fallback({}, FallbackReason.PROVIDER_ERROR, str(e))
            self._record_fallback("reranker", outcome)
            return outcome

        if not outcome.succeeded:
            self._record_fallback("reranker", outcome)

        for candidate in candidates:
            candidate.rerank_score = outcome.value.get(candidate.candidate_id, NEUTRAL_RERANK_SCORE)
        return outcome

    def _record_fallback(self, step: str, outcome: StepOutcome) -> None:
        logger.info("AI step fell back", step=step, reason=outcome.fallback_reason.value)
        if self.metrics:
            self.metrics.record_ai_fallback(step, outcome.fallback_reason.value)

    def _record_search(self, duration: float, results_count: int, status: str = "ok") -> None:
        if self.metrics:
            self.metrics.record_search(self.variant, duration, results_count, status=status)

    async def _retrieve(
        self,
        index: SearchIndex,
        request: RequestT,
        plan: QueryPlan,
        vector: Sequence[float],
    ) -> List[CandidateT]:
        raise NotImplementedError

    def _score_candidate(self, candidate: CandidateT, plan: QueryPlan, now: datetime) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        """Release provider clients held by this manager."""
        await self.embedder.close()
        closed = set()
        for step in (self.optimizer, self.reranker):
            provider = getattr(step, "completion_provider", None)
            if provider is not None and id(provider) not in closed:
                closed.add(id(provider))
                await provider.close()


class DocumentSearchManager(HybridSearchManager[DocumentSearchRequest, DocumentCandidate]):
    """Document search: title KNN, chunk KNN, fuzzy title/content and recency."""

    variant = "documents"
    signals = DOCUMENT_SIGNALS
    overall_divisor = DOCUMENT_OVERALL_DIVISOR
    uses_recency = True
    response_model = DocumentSearchResponse

    async def _retrieve(
        self,
        index: SearchIndex,
        request: DocumentSearchRequest,
        plan: QueryPlan,
        vector: Sequence[float],
    ) -> List[DocumentCandidate]:
        candidates, chunk_scores = await gather_or_cancel(
            self.gateway.retrieve_documents(index, plan.lexical_query, vector, request.k, request.filters),
            self.gateway.retrieve_chunk_scores(index, vector, request.k),
        )
        for candidate in candidates:
            candidate.avg_chunk_score = chunk_scores.get(candidate.doc_id, 0.0)

        logger.debug(
            "Documents retrieved",
            documents=len(candidates),
            chunk_parents=len(chunk_scores),
        )
        return candidates

    def _score_candidate(self, candidate: DocumentCandidate, plan: QueryPlan, now: datetime) -> None:
        candidate.fuzzy_score = max(
            lexical_score(candidate.title, plan.lexical_query),
            lexical_score(candidate.content, plan.lexical_query),
        )
        candidate.recency_score = recency_score(candidate.published_date, plan.recency_bias, now=now)


class UrlSearchManager(HybridSearchManager[UrlSearchRequest, UrlCandidate]):
    """URL search: page-title KNN, URL-embedding KNN and fuzzy url/page title."""

    variant = "urls"
    signals = URL_SIGNALS
    overall_divisor = URL_OVERALL_DIVISOR
    response_model = UrlSearchResponse

    async def _retrieve(
        self,
        index: SearchIndex,
        request: UrlSearchRequest,
        plan: QueryPlan,
        vector: Sequence[float],
    ) -> List[UrlCandidate]:
        candidates, url_scores = await gather_or_cancel(
            self.gateway.retrieve_urls(index, plan.lexical_query, vector, request.k, request.filters),
            self.gateway.retrieve_url_vector_scores(index, vector, request.k),
        )
        for candidate in candidates:
            candidate.url_vector_score = url_scores.get(candidate.url_id, 0.0)

        logger.debug("URLs retrieved", urls=len(candidates), url_vectors=len(url_scores))
        return candidates

    def _score_candidate(self, candidate: UrlCandidate, plan: QueryPlan, now: datetime) -> None:
        candidate.fuzzy_score = max(
            lexical_score(candidate.url, plan.lexical_query),
            lexical_score(candidate.title, plan.lexical_query),
        )


def _build_components(config: SearchConfig):
    completion = create_completion_provider(config)
    return dict(
        session_factory=create_index_session_factory(config),
        embedder=create_embedding_provider(config),
        gateway=RetrievalGateway(
            docs_index=config.search_docs_index,
            chunks_index=config.search_chunks_index,
            urls_index=config.search_urls_index,
        ),
        optimizer=QueryOptimizer(completion),
        reranker=Reranker(completion, content_chars=config.search_rerank_content_chars),
        timeout_seconds=config.search_timeout_seconds,
    )


def create_document_search_manager(
    config: SearchConfig,
    metrics: Optional[MetricsCollector] = None,
) -> DocumentSearchManager:
    """Wire a document search manager from configuration."""
    return DocumentSearchManager(metrics=metrics, **_build_components(config))


def create_url_search_manager(
    config: SearchConfig,
    metrics: Optional[MetricsCollector] = None,
) -> UrlSearchManager:
    """Wire a URL search manager from configuration."""
    return UrlSearchManager(metrics=metrics, **_build_components(config))
