"""Exception taxonomy for search operations.

Errors fall into two families:

- Fatal: the index or the embedding provider failed. These propagate to
  the caller with context and abort the search call.
- Degradable: a completion provider or a malformed AI response. These are
  absorbed at the component boundary and replaced by a neutral fallback.
"""


class SearchError(Exception):
    """Base exception for search operations."""
    pass


class SearchIndexError(SearchError):
    """Base exception for index operations."""
    pass


class SearchIndexConnectionError(SearchIndexError):
    """The index backend could not be reached."""
    pass


class SearchIndexQueryError(SearchIndexError):
    """The index backend rejected or failed a query."""
    pass


class ProviderError(SearchError):
    """Base exception for external model providers."""
    pass


class EmbeddingProviderError(ProviderError):
    """The embedding provider failed to return a vector."""
    pass


class CompletionProviderError(ProviderError):
    """The completion provider failed to return text."""
    pass


class LLMResponseParseError(SearchError, ValueError):
    """A language model response could not be parsed as a JSON object."""
    pass
