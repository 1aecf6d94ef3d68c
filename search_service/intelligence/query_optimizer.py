"""LLM-driven query rewriting for hybrid search."""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

from search_libs.common.errors import LLMResponseParseError
from search_libs.providers.completion import CompletionProvider

from .llm_json import parse_llm_json
from .outcome import FallbackReason, StepOutcome

logger = structlog.get_logger("query_optimizer")

NEUTRAL_RECENCY_BIAS = 0.5
RECENCY_BIAS_STEP = 0.05

OPTIMIZER_PROMPT = """# Search Query Optimizer

You optimize search queries for a content research system. Turn the user's query into parameters for three search mechanisms: exact/fuzzy text matching, semantic vector search, and a recency bias indicator.

## Input
A natural language query a content researcher might use when looking for sources for business and technology articles.

## Output
Return a JSON object with three fields:
- `exact_search`: a concise phrase for exact/fuzzy matching with filler words removed.
- `vector_search`: a complete phrase for semantic vector search that keeps the full context and meaning.
- `recency_bias`: a number from 0.0 to 1.0 (rounded to the nearest 0.05) saying how much recent information matters.

Return only the JSON object, without markdown formatting:

{{
"exact_search": "",
"vector_search": "",
"recency_bias": 0.0
}}

## Recency bias guide
- 0.0: historical or timeless information
- 0.1-0.3: information that changes slowly
- 0.4-0.6: information with moderate ongoing developments
- 0.7-0.9: information that changes often or is time-sensitive
- 1.0: only the very latest sources are relevant

## Examples

Input: "What is the biggest dinosaur?"
Output:
{{
"exact_search": "biggest dinosaur",
"vector_search": "What is the biggest dinosaur by size or weight",
"recency_bias": 0.1
}}

Input: "Recent Series A's in Canada"
Output:
{{
"exact_search": "Series A Canada",
"vector_search": "Recent companies that raised Series A funding in Canada",
"recency_bias": 1.0
}}

Input: "Best practices for remote team management"
Output:
{{
"exact_search": "remote team management best practices",
"vector_search": "Effective strategies and best practices for managing remote or distributed teams",
"recency_bias": 0.6
}}

Work out the core intent, the essential keywords and the time sensitivity of each query before answering.

## Current input
Input: "{query}"
"""


@dataclass(frozen=True)
class OptimizedQuery:
    """Query parameters after (optional) rewriting."""
    lexical_query: str
    vector_query: str
    recency_bias: float

    @classmethod
    def passthrough(cls, raw_query: str) -> "OptimizedQuery":
        return cls(lexical_query=raw_query, vector_query=raw_query, recency_bias=NEUTRAL_RECENCY_BIAS)


def normalize_recency_bias(value: Any) -> Optional[float]:
    """Coerce a model-supplied bias into ``[0, 1]`` on a 0.05 grid."""
    if isinstance(value, bool):
        return None
    try:
        bias = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(bias):
        return None

    bias = min(max(bias, 0.0), 1.0)
    return round(round(bias / RECENCY_BIAS_STEP) * RECENCY_BIAS_STEP, 2)


class QueryOptimizer:
    """Rewrites raw queries into lexical and vector forms plus a recency bias.

    Never raises: any failure yields the raw query for both forms and a
    neutral bias of 0.5.
    """

    def __init__(self, completion_provider: CompletionProvider):
        self.completion_provider = completion_provider

    def build_prompt(self, raw_query: str) -> str:
        return OPTIMIZER_PROMPT.format(query=raw_query)

    async def optimize(self, raw_query: str) -> StepOutcome[OptimizedQuery]:
        fallback = OptimizedQuery.passthrough(raw_query)

        try:
            response = await self.completion_provider.complete(self.build_prompt(raw_query))
        except Exception as e:
            logger.warning("Query optimization failed", error=str(e))
            return StepOutcome.fallback(fallback, FallbackReason.PROVIDER_ERROR, str(e))

        if not response or not response.strip():
            logger.warning("Query optimizer returned an empty response")
            return StepOutcome.fallback(fallback, FallbackReason.EMPTY_RESPONSE)

        try:
            payload = parse_llm_json(response)
        except LLMResponseParseError as e:
            logger.warning("Query optimizer returned malformed JSON", error=str(e))
            return StepOutcome.fallback(fallback, FallbackReason.MALFORMED_JSON, str(e))

        optimized = self._from_payload(payload)
        if optimized is None:
            logger.warning("Query optimizer response is missing fields", keys=sorted(payload))
            return StepOutcome.fallback(fallback, FallbackReason.INVALID_RESPONSE)

        logger.debug(
            "Query optimized",
            lexical_query=optimized.lexical_query,
            vector_query=optimized.vector_query,
            recency_bias=optimized.recency_bias,
        )
        return StepOutcome.ok(optimized)

    @staticmethod
    def _from_payload(payload: Dict[str, Any]) -> Optional[OptimizedQuery]:
        exact = payload.get("exact_search")
        vector = payload.get("vector_search")
        if not isinstance(exact, str) or not exact.strip():
            return None
        if not isinstance(vector, str) or not vector.strip():
            return None

        bias = normalize_recency_bias(payload.get("recency_bias"))
        if bias is None:
            return None

        return OptimizedQuery(lexical_query=exact.strip(), vector_query=vector.strip(), recency_bias=bias)
