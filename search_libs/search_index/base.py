"""Base search index interface.

Defines the retrieval contract the search managers depend on, independent
of the backing implementation (RediSearch today).

All methods are asynchronous so a search call can suspend on the index
while the event loop serves other requests.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

IndexHit = Dict[str, Any]


class SearchIndex(ABC):
    """Abstract base class for vector-capable search indexes.

    Implementations return hits ordered by ``sort_field`` ascending. The
    KNN distance is exposed under ``sort_field`` as a raw "lower is better"
    value; callers decide how to interpret it.
    """

    async def knn_search(
        self,
        index_name: str,
        query_expression: str,
        vector: Sequence[float],
        k: int,
        vector_field: str,
        return_fields: Sequence[str],
        sort_field: str,
    ) -> List[IndexHit]:
        """Nearest-neighbor search restricted by ``query_expression``."""
        return await self.filtered_search(
            index_name=index_name,
            query_expression=query_expression,
            vector=vector,
            k=k,
            vector_field=vector_field,
            return_fields=return_fields,
            sort_field=sort_field,
            filter_expression=None,
        )

    @abstractmethod
    async def filtered_search(
        self,
        index_name: str,
        query_expression: str,
        vector: Sequence[float],
        k: int,
        vector_field: str,
        return_fields: Sequence[str],
        sort_field: str,
        filter_expression: Optional[str] = None,
    ) -> List[IndexHit]:
        """Nearest-neighbor search intersected with a boolean filter expression.

        Returns
        - Up to ``k`` hits, each a mapping of ``return_fields`` to values.

        Raises
        - ``SearchIndexError`` when the backend is unreachable or rejects
          the query.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the index backend is reachable."""
        pass

    async def close(self) -> None:
        """Release connections held by this index handle."""
        return None


def vector_to_bytes(vector: Sequence[float]) -> bytes:
    """Encode a vector as little-endian FLOAT32 bytes for query parameters."""
    return np.asarray(vector, dtype=np.float32).tobytes()
