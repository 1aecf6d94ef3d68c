"""LLM relevance reranking of retrieved candidates."""

import json
import math
from typing import Any, Dict, List, Optional, Sequence

import structlog

from search_libs.common.errors import LLMResponseParseError
from search_libs.providers.completion import CompletionProvider

from ..schemas import Candidate
from .llm_json import parse_llm_json
from .outcome import FallbackReason, StepOutcome

logger = structlog.get_logger("reranker")

NEUTRAL_RERANK_SCORE = 0.5
DEFAULT_CONTENT_CHARS = 200

RERANKER_PROMPT = """# Search Result Reranker

You rerank search results. Judge how relevant each document is to the user's query and give it a relevance score.

## Query
"{query}"

## Documents
{documents}

## Instructions
Score every document from 0.0 to 1.0:
- 1.0: perfectly relevant, directly answers the query
- 0.8-0.9: highly relevant, has most of the information needed
- 0.5-0.7: moderately relevant, has some useful information
- 0.2-0.4: slightly relevant, only tangentially related
- 0.0-0.1: not relevant

Take into account:
1. How directly the document addresses the query
2. How much relevant information it provides
3. The specificity and depth of the content
4. The credibility of the source, if apparent

## Output
Return a JSON object mapping document IDs to relevance scores:

{{
  "doc_id_1": 0.95,
  "doc_id_2": 0.7
}}

Return only the JSON object without any additional text.
"""


def truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def coerce_score(value: Any) -> Optional[float]:
    """Clamp a model-supplied score into ``[0, 1]``; ``None`` if not numeric."""
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(score):
        return None
    return min(max(score, 0.0), 1.0)


class Reranker:
    """Asks a language model to grade candidate relevance.

    Returns a mapping of candidate id to score. Ids the model leaves out are
    simply absent; callers decide their default. On any failure every
    candidate gets the neutral score 0.5.
    """

    def __init__(self, completion_provider: CompletionProvider, content_chars: int = DEFAULT_CONTENT_CHARS):
        self.completion_provider = completion_provider
        self.content_chars = content_chars

    def build_prompt(self, query: str, candidates: Sequence[Candidate]) -> str:
        documents: List[Dict[str, str]] = [
            {
                "id": candidate.candidate_id,
                "title": candidate.title,
                "content": truncate(candidate.rerank_body or "", self.content_chars),
            }
            for candidate in candidates
        ]
        return RERANKER_PROMPT.format(query=query, documents=json.dumps(documents, indent=2))

    async def rerank(self, query: str, candidates: Sequence[Candidate]) -> StepOutcome[Dict[str, float]]:
        fallback = {candidate.candidate_id: NEUTRAL_RERANK_SCORE for candidate in candidates}
        if not candidates:
            return StepOutcome.ok({})

        try:
            response = await self.completion_provider.complete(self.build_prompt(query, candidates))
        except Exception as e:
            logger.warning("Reranking failed", error=str(e), candidates=len(candidates))
            return StepOutcome.fallback(fallback, FallbackReason.PROVIDER_ERROR, str(e))

        if not response or not response.strip():
            logger.warning("Reranker returned an empty response")
            return StepOutcome.fallback(fallback, FallbackReason.EMPTY_RESPONSE)

        try:
            payload = parse_llm_json(response)
        except LLMResponseParseError as e:
            logger.warning("Reranker returned malformed JSON", error=str(e))
            return StepOutcome.fallback(fallback, FallbackReason.MALFORMED_JSON, str(e))

        scores: Dict[str, float] = {}
        for candidate_id, raw_score in payload.items():
            score = coerce_score(raw_score)
            if score is not None:
                scores[str(candidate_id)] = score

        logger.debug("Candidates reranked", scored=len(scores), candidates=len(candidates))
        return StepOutcome.ok(scores)
