"""Retrieval gateway over the vector index.

Issues the primary (lexical + vector) and secondary (vector only) queries
for each search variant and turns raw index hits into candidates and
per-candidate score maps. Scores are the index's raw KNN values and are
not re-normalized here.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from search_libs.search_index.base import IndexHit, SearchIndex

from ..ranking.scoring import parse_timestamp
from ..schemas import DocumentCandidate, SearchFilters, UrlCandidate
from .filters import (
    DOCUMENT_TEXT_FIELDS,
    URL_TEXT_FIELDS,
    document_filter_expression,
    fuzzy_clause,
    url_filter_expression,
)

logger = structlog.get_logger("retrieval_gateway")

DOCUMENT_RETURN_FIELDS = (
    "doc_id", "title", "content", "signalUrl", "publishedDate", "classification", "title_vector_score",
)
CHUNK_RETURN_FIELDS = ("parent_id", "chunk_vector_score")
URL_RETURN_FIELDS = ("url_id", "url", "page_title", "title_vector_score")
URL_VECTOR_RETURN_FIELDS = ("url_id", "url_vector_score")

# Chunks are over-fetched relative to documents.
CHUNK_FANOUT = 3


def parse_score(value) -> float:
    """Parse a raw index score; unparseable values count as 0."""
    if value is None:
        return 0.0
    try:
        score = float(value)
    except (TypeError, ValueError):
        logger.warning("Unparseable index score", value=value)
        return 0.0
    if not math.isfinite(score):
        logger.warning("Non-finite index score", value=value)
        return 0.0
    return score


def average_chunk_scores(hits: Iterable[IndexHit]) -> Dict[str, float]:
    """Arithmetic mean of chunk scores per parent document."""
    grouped: Dict[str, List[float]] = defaultdict(list)
    for hit in hits:
        parent_id = hit.get("parent_id")
        if not parent_id:
            continue
        grouped[str(parent_id)].append(parse_score(hit.get("chunk_vector_score")))

    return {parent_id: sum(scores) / len(scores) for parent_id, scores in grouped.items()}


class RetrievalGateway:
    """Query builder and hit mapper for the document and URL indexes."""

    def __init__(
        self,
        docs_index: str = "idx:docs",
        chunks_index: str = "idx:chunks",
        urls_index: str = "idx:urls",
    ):
        self.docs_index = docs_index
        self.chunks_index = chunks_index
        self.urls_index = urls_index

    # Document variant --------------------------------------------------------

    async def retrieve_documents(
        self,
        index: SearchIndex,
        lexical_query: str,
        vector: Sequence[float],
        k: int,
        filters: Optional[SearchFilters] = None,
    ) -> List[DocumentCandidate]:
        """Fuzzy title/content match intersected with filters, ranked by title-vector KNN."""
        hits = await index.filtered_search(
            index_name=self.docs_index,
            query_expression=fuzzy_clause(lexical_query, DOCUMENT_TEXT_FIELDS),
            vector=vector,
            k=k,
            vector_field="title_embedding",
            return_fields=DOCUMENT_RETURN_FIELDS,
            sort_field="title_vector_score",
            filter_expression=document_filter_expression(filters),
        )

        candidates = []
        for hit in hits:
            doc_id = hit.get("doc_id")
            if not doc_id:
                logger.warning("Skipping document hit without doc_id")
                continue
            candidates.append(
                DocumentCandidate(
                    doc_id=str(doc_id),
                    title=hit.get("title") or "",
                    content=hit.get("content") or "",
                    signal_url=hit.get("signalUrl") or "",
                    published_date=parse_timestamp(hit.get("publishedDate")),
                    classification=hit.get("classification") or "",
                    title_vector_score=parse_score(hit.get("title_vector_score")),
                )
            )
        return candidates

    async def retrieve_chunk_scores(
        self,
        index: SearchIndex,
        vector: Sequence[float],
        k: int,
    ) -> Dict[str, float]:
        """Chunk KNN (``3k`` neighbors) averaged per parent document."""
        hits = await index.knn_search(
            index_name=self.chunks_index,
            query_expression="*",
            vector=vector,
            k=k * CHUNK_FANOUT,
            vector_field="chunk_embedding",
            return_fields=CHUNK_RETURN_FIELDS,
            sort_field="chunk_vector_score",
        )
        return average_chunk_scores(hits)

    # URL variant -------------------------------------------------------------

    async def retrieve_urls(
        self,
        index: SearchIndex,
        lexical_query: str,
        vector: Sequence[float],
        k: int,
        filters: Optional[SearchFilters] = None,
    ) -> List[UrlCandidate]:
        """Fuzzy url/page-title match ranked by page-title KNN."""
        hits = await index.filtered_search(
            index_name=self.urls_index,
            query_expression=fuzzy_clause(lexical_query, URL_TEXT_FIELDS),
            vector=vector,
            k=k,
            vector_field="title_embedding",
            return_fields=URL_RETURN_FIELDS,
            sort_field="title_vector_score",
            filter_expression=url_filter_expression(filters),
        )

        candidates = []
        for hit in hits:
            url_id = hit.get("url_id")
            if not url_id:
                logger.warning("Skipping URL hit without url_id")
                continue
            candidates.append(
                UrlCandidate(
                    url_id=str(url_id),
                    url=hit.get("url") or "",
                    title=hit.get("page_title") or "",
                    title_vector_score=parse_score(hit.get("title_vector_score")),
                )
            )
        return candidates

    async def retrieve_url_vector_scores(
        self,
        index: SearchIndex,
        vector: Sequence[float],
        k: int,
    ) -> Dict[str, float]:
        """URL-embedding KNN with exactly ``k`` neighbors."""
        hits = await index.knn_search(
            index_name=self.urls_index,
            query_expression="*",
            vector=vector,
            k=k,
            vector_field="url_embedding",
            return_fields=URL_VECTOR_RETURN_FIELDS,
            sort_field="url_vector_score",
        )
        return {
            str(hit["url_id"]): parse_score(hit.get("url_vector_score"))
            for hit in hits
            if hit.get("url_id")
        }
