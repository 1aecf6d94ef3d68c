"""Request, candidate and response models for hybrid search.

Requests are immutable per call. Candidates are mutable: each scoring
stage attaches its partial score in place, and the candidate is discarded
once the response is serialized. Models serialize with camelCase aliases
(``model_dump(by_alias=True)``) and accept either naming on input.
"""

from datetime import datetime
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .ranking.fusion import RERANK_WEIGHT, Signal


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    """Immutable camelCase model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# Filters ---------------------------------------------------------------------


class DateRange(FrozenCamelModel):
    """Inclusive publication date bounds; either end may be open."""
    start: Optional[datetime] = Field(None, description="Earliest publication date")
    end: Optional[datetime] = Field(None, description="Latest publication date")


class SearchFilters(FrozenCamelModel):
    """Structured filters intersected with every primary query."""
    date_range: Optional[DateRange] = Field(None, description="Publication date bounds")
    classification: List[str] = Field(default_factory=list, description="Allowed classifications (OR'd)")
    exclude_terms: List[str] = Field(default_factory=list, description="Terms negated on every text field")


# Weights ---------------------------------------------------------------------


class DocumentWeights(FrozenCamelModel):
    """Per-signal multipliers for document search.

    An unset weight excludes its signal from fusion. ``rerank_weight`` is
    accepted for compatibility but the fixed rerank weight always applies.
    """
    title_weight: Optional[float] = Field(None, ge=0)
    chunk_weight: Optional[float] = Field(None, ge=0)
    fuzzy_weight: Optional[float] = Field(None, ge=0)
    recency_weight: Optional[float] = Field(None, ge=0)
    rerank_weight: Optional[float] = Field(None, ge=0)

    @classmethod
    def defaults(cls) -> "DocumentWeights":
        return cls(title_weight=1.0, chunk_weight=1.0, fuzzy_weight=1.5, recency_weight=1.0)

    def signal_weights(self, rerank_applied: bool = False) -> Dict[Signal, Optional[float]]:
        return {
            Signal.TITLE_VECTOR: self.title_weight,
            Signal.AVG_CHUNK_VECTOR: self.chunk_weight,
            Signal.FUZZY: self.fuzzy_weight,
            Signal.RECENCY: self.recency_weight,
            Signal.RERANK: RERANK_WEIGHT if rerank_applied else None,
        }


class UrlWeights(FrozenCamelModel):
    """Per-signal multipliers for URL search."""
    title_weight: Optional[float] = Field(None, ge=0)
    url_weight: Optional[float] = Field(None, ge=0)
    fuzzy_weight: Optional[float] = Field(None, ge=0)
    rerank_weight: Optional[float] = Field(None, ge=0)

    @classmethod
    def defaults(cls) -> "UrlWeights":
        return cls(title_weight=1.0, url_weight=1.0, fuzzy_weight=1.5)

    def signal_weights(self, rerank_applied: bool = False) -> Dict[Signal, Optional[float]]:
        return {
            Signal.TITLE_VECTOR: self.title_weight,
            Signal.URL_VECTOR: self.url_weight,
            Signal.FUZZY: self.fuzzy_weight,
            Signal.RERANK: RERANK_WEIGHT if rerank_applied else None,
        }


# Requests --------------------------------------------------------------------


class SearchRequest(FrozenCamelModel):
    """Common request fields for both search variants."""
    query: str = Field(..., min_length=1, description="Search query")
    fuzzy_value: Optional[str] = Field(None, description="Lexical match phrase; defaults to the query")
    k: int = Field(10, ge=1, description="Number of primary results")
    filters: SearchFilters = Field(default_factory=SearchFilters)
    ai_enhanced: bool = Field(False, description="Rewrite the query with a language model")
    use_llm_reranking: bool = Field(False, description="Rerank candidates with a language model")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value

    @property
    def effective_fuzzy_value(self) -> str:
        return self.fuzzy_value or self.query


class DocumentSearchRequest(SearchRequest):
    weights: Optional[DocumentWeights] = Field(None, description="Omit to use the default weights")

    def resolved_weights(self) -> DocumentWeights:
        return self.weights if self.weights is not None else DocumentWeights.defaults()


class UrlSearchRequest(SearchRequest):
    weights: Optional[UrlWeights] = Field(None, description="Omit to use the default weights")

    def resolved_weights(self) -> UrlWeights:
        return self.weights if self.weights is not None else UrlWeights.defaults()


# Candidates ------------------------------------------------------------------


class Candidate(CamelModel):
    """A retrieval hit undergoing multi-signal scoring."""
    title: str = ""
    title_vector_score: float = 0.0
    fuzzy_score: float = 0.0
    rerank_score: Optional[float] = None
    overall_score: float = 0.0
    weighted_score: Optional[float] = None

    @property
    def candidate_id(self) -> str:
        raise NotImplementedError

    @property
    def rerank_body(self) -> str:
        raise NotImplementedError

    def signal_scores(self) -> Dict[Signal, Optional[float]]:
        raise NotImplementedError

    @property
    def sort_score(self) -> float:
        return self.weighted_score if self.weighted_score is not None else self.overall_score


class DocumentCandidate(Candidate):
    doc_id: str
    content: str = ""
    signal_url: str = ""
    published_date: Optional[datetime] = None
    classification: str = ""
    avg_chunk_score: float = 0.0
    recency_score: Optional[float] = None

    @property
    def candidate_id(self) -> str:
        return self.doc_id

    @property
    def rerank_body(self) -> str:
        return self.content

    def signal_scores(self) -> Dict[Signal, Optional[float]]:
        return {
            Signal.TITLE_VECTOR: self.title_vector_score,
            Signal.AVG_CHUNK_VECTOR: self.avg_chunk_score,
            Signal.FUZZY: self.fuzzy_score,
            Signal.RECENCY: self.recency_score,
            Signal.RERANK: self.rerank_score,
        }


class UrlCandidate(Candidate):
    url_id: str
    url: str = ""
    url_vector_score: float = 0.0

    @property
    def candidate_id(self) -> str:
        return self.url_id

    @property
    def rerank_body(self) -> str:
        return self.url

    def signal_scores(self) -> Dict[Signal, Optional[float]]:
        return {
            Signal.TITLE_VECTOR: self.title_vector_score,
            Signal.URL_VECTOR: self.url_vector_score,
            Signal.FUZZY: self.fuzzy_score,
            Signal.RERANK: self.rerank_score,
        }


# Responses -------------------------------------------------------------------

CandidateT = TypeVar("CandidateT", bound=Candidate)


class ExecutionMetadata(CamelModel):
    """What a search call actually did."""
    ai_enhanced: bool
    use_llm_reranking: bool
    timestamp: datetime
    result_count: int
    lexical_query: str
    vector_query: str
    recency_bias: Optional[float] = None
    optimizer_fallback: Optional[str] = Field(None, description="Reason the optimizer fell back, if it did")
    rerank_applied: bool = False
    rerank_fallback: Optional[str] = Field(None, description="Reason the reranker fell back, if it did")


class SearchResponse(CamelModel, Generic[CandidateT]):
    """Ranked results plus execution metadata."""
    results: List[CandidateT]
    metadata: ExecutionMetadata

    @property
    def count(self) -> int:
        return len(self.results)


DocumentSearchResponse = SearchResponse[DocumentCandidate]
UrlSearchResponse = SearchResponse[UrlCandidate]
