"""Local scorers: lexical match and recency.

Both are pure functions returning values in ``[0, 1]``. They run on every
retrieved candidate, so they never touch the network.
"""

import math
from datetime import datetime, timezone
from typing import Optional, Union

Timestamp = Union[datetime, int, float, str, None]

# Exact or substring matches always score at least this much.
SUBSTRING_BASE_SCORE = 0.8
SUBSTRING_RATIO_SPAN = 0.2
# Token-overlap matches are capped below substring matches.
TOKEN_MATCH_CAP = 0.7
PROXIMITY_BOOST = 0.2
PROXIMITY_GAP_HORIZON = 10.0

NEUTRAL_RECENCY_SCORE = 0.5
RECENCY_HORIZON_DAYS = 365
RECENCY_DECAY_SCALE = 5.0
SECONDS_PER_DAY = 86400


def lexical_score(text: Optional[str], query: Optional[str]) -> float:
    """Score how well ``text`` matches ``query`` (case-insensitive).

    - Full-string match scores 1.0.
    - Substring containment scores in ``[0.8, 1.0]``, higher as the query
      covers more of the text.
    - Otherwise the share of query tokens found in the text, plus a boost
      when matched tokens sit close together, capped at 0.7.
    """
    if not text or not query:
        return 0.0

    text = text.lower()
    query = query.lower()

    if query == text:
        return 1.0

    if query in text:
        length_ratio = len(query) / len(text)
        return min(1.0, SUBSTRING_BASE_SCORE + length_ratio * SUBSTRING_RATIO_SPAN)

    text_words = text.split()
    query_tokens = set(query.split())
    if not query_tokens:
        return 0.0

    text_tokens = set(text_words)
    matching = [token for token in query_tokens if token in text_tokens]
    word_score = len(matching) / len(query_tokens)

    boost = 0.0
    if len(matching) > 1:
        positions = sorted(text_words.index(token) for token in matching)
        gaps = [later - earlier for earlier, later in zip(positions, positions[1:])]
        avg_gap = sum(gaps) / len(gaps)
        boost = max(0.0, PROXIMITY_BOOST * (1.0 - min(avg_gap / PROXIMITY_GAP_HORIZON, 1.0)))

    return min(TOKEN_MATCH_CAP, word_score + boost)


def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    """Coerce a stored timestamp into an aware ``datetime``.

    Numbers (and numeric strings) are epoch milliseconds, as written by the
    indexer. ISO-8601 strings are also accepted. Returns ``None`` when the
    value is absent or unparseable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    try:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            try:
                value = float(value)
            except ValueError:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

        if isinstance(value, (int, float)) and math.isfinite(value):
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None

    return None


def recency_score(timestamp: Timestamp, recency_bias: float, now: Optional[datetime] = None) -> float:
    """Exponentially decaying freshness score.

    ``recency_bias`` in ``[0, 1]`` sets how hard older items are penalized:
    ``exp(-5 * bias * age)`` with age normalized over a one-year horizon.
    A bias of 0 disables the penalty (1.0). Missing or unparseable
    timestamps score 0.5.
    """
    published = parse_timestamp(timestamp)
    if published is None:
        return NEUTRAL_RECENCY_SCORE

    if recency_bias == 0:
        return 1.0

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    days_since = math.floor((now - published).total_seconds() / SECONDS_PER_DAY)
    normalized_age = min(max(days_since, 0) / RECENCY_HORIZON_DAYS, 1.0)

    k = RECENCY_DECAY_SCALE * recency_bias
    return math.exp(-k * normalized_age)
