"""RediSearch query clause construction.

Builds the fuzzy lexical pre-filter and the structured filter expression
that are intersected with every primary KNN query.
"""

import re
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..schemas import SearchFilters

# Characters with meaning in the RediSearch query syntax.
SPECIAL_CHARACTERS = re.compile(r"([,.<>{}\[\]\"':;!@#$%^&*()\-+=~|/\\\s])")
TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)

DOCUMENT_TEXT_FIELDS = ("title", "content")
URL_TEXT_FIELDS = ("url", "page_title")


def escape_value(value: str) -> str:
    """Escape a literal value for use after ``@field:``."""
    return SPECIAL_CHARACTERS.sub(r"\\\1", value.strip())


def lexical_tokens(text: Optional[str]) -> List[str]:
    """Split a lexical query into word tokens, dropping punctuation."""
    if not text:
        return []
    return TOKEN_PATTERN.findall(text)


def fuzzy_clause(text: Optional[str], fields: Sequence[str]) -> str:
    """Fuzzy (edit distance 2) match of every token, OR'd across ``fields``.

    ``"series a"`` over ``title, content`` becomes
    ``(@title:(%%series%% %%a%%)|@content:(%%series%% %%a%%))``. A query with
    no word tokens matches everything (``*``).
    """
    tokens = lexical_tokens(text)
    if not tokens:
        return "*"

    terms = " ".join(f"%%{token}%%" for token in tokens)
    return "(" + "|".join(f"@{field}:({terms})" for field in fields) + ")"


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def exclusion_clauses(terms: Sequence[str], fields: Sequence[str]) -> List[str]:
    clauses = []
    for term in terms:
        escaped = escape_value(term)
        if not escaped:
            continue
        clauses.extend(f"-@{field}:{escaped}" for field in fields)
    return clauses


def document_filter_expression(filters: Optional[SearchFilters]) -> Optional[str]:
    """Date-range, classification allow-list and exclusion clauses for documents.

    Absent filter fields contribute nothing; ``None`` means no filter.
    """
    if filters is None:
        return None

    parts: List[str] = []

    if filters.date_range is not None:
        if filters.date_range.start is not None:
            parts.append(f"@publishedDate:[{to_epoch_ms(filters.date_range.start)} +inf]")
        if filters.date_range.end is not None:
            parts.append(f"@publishedDate:[-inf {to_epoch_ms(filters.date_range.end)}]")

    classes = [escape_value(c) for c in filters.classification if c and c.strip()]
    if classes:
        parts.append("(" + "|".join(f"@classification:{c}" for c in classes) + ")")

    parts.extend(exclusion_clauses(filters.exclude_terms, DOCUMENT_TEXT_FIELDS))

    return " ".join(parts) if parts else None


def url_filter_expression(filters: Optional[SearchFilters]) -> Optional[str]:
    """Exclusion clauses for URL search.

    The URL index carries no date or classification fields, so only
    excluded terms apply.
    """
    if filters is None:
        return None
    parts = exclusion_clauses(filters.exclude_terms, URL_TEXT_FIELDS)
    return " ".join(parts) if parts else None
