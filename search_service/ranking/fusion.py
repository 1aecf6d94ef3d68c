"""Score fusion for hybrid search.

Each search variant scores candidates on a closed set of named signals.
Fusion is a weighted mean over the signals that carry both a score and a
weight; a signal without a weight is left out rather than counted as zero.
"""

from enum import Enum
from typing import Mapping, Optional, Tuple


class Signal(str, Enum):
    """Partial scores a candidate can carry."""
    TITLE_VECTOR = "title_vector"
    AVG_CHUNK_VECTOR = "avg_chunk_vector"
    URL_VECTOR = "url_vector"
    FUZZY = "fuzzy"
    RECENCY = "recency"
    RERANK = "rerank"


DOCUMENT_SIGNALS: Tuple[Signal, ...] = (
    Signal.TITLE_VECTOR,
    Signal.AVG_CHUNK_VECTOR,
    Signal.FUZZY,
    Signal.RECENCY,
    Signal.RERANK,
)

URL_SIGNALS: Tuple[Signal, ...] = (
    Signal.TITLE_VECTOR,
    Signal.URL_VECTOR,
    Signal.FUZZY,
    Signal.RERANK,
)

# Fixed rerank weight injected whenever rerank scores were attached.
RERANK_WEIGHT = 2.0

# The unweighted overall score pre-multiplies the fuzzy term and divides by
# a fixed term count, whether or not every signal was available.
FUZZY_OVERALL_MULTIPLIER = 1.5
DOCUMENT_OVERALL_DIVISOR = 4.0
URL_OVERALL_DIVISOR = 3.5


def weighted_mean(
    scores: Mapping[Signal, Optional[float]],
    weights: Mapping[Signal, Optional[float]],
) -> float:
    """Fuse partial scores into a single weighted mean.

    Only signals present in both mappings with non-``None`` values take
    part. A total weight of zero yields exactly ``0.0``.
    """
    total_score = 0.0
    total_weight = 0.0

    for signal, score in scores.items():
        weight = weights.get(signal)
        if score is None or weight is None:
            continue
        total_score += score * weight
        total_weight += weight

    if total_weight == 0:
        return 0.0

    return total_score / total_weight


def overall_score(
    scores: Mapping[Signal, Optional[float]],
    signals: Tuple[Signal, ...],
    divisor: float,
) -> float:
    """Unweighted aggregate used when no weighted score is available.

    Sums the available non-rerank signals of the variant, with the fuzzy
    term pre-multiplied, and divides by the variant's fixed term count.
    """
    total = 0.0
    for signal in signals:
        if signal == Signal.RERANK:
            continue
        score = scores.get(signal)
        if score is None:
            continue
        if signal == Signal.FUZZY:
            score *= FUZZY_OVERALL_MULTIPLIER
        total += score

    return total / divisor
