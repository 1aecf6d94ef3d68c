"""RediSearch index implementation."""

from typing import List, Optional, Sequence

import redis.asyncio as redis
from redis.commands.search.query import Query
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError
import structlog

from ..common.errors import SearchIndexConnectionError, SearchIndexQueryError
from .base import IndexHit, SearchIndex, vector_to_bytes

logger = structlog.get_logger("search_index.redis")

QUERY_DIALECT = 2
VECTOR_PARAM = "vector"


def build_knn_expression(
    query_expression: str,
    k: int,
    vector_field: str,
    score_alias: str,
    filter_expression: Optional[str] = None,
) -> str:
    """Compose a hybrid RediSearch expression.

    The pre-filter is the lexical expression intersected with the optional
    filter; an empty or ``*`` lexical part leaves only the filter.
    """
    base = (query_expression or "").strip() or "*"
    if filter_expression:
        base = filter_expression if base == "*" else f"{base} {filter_expression}"

    knn = f"=>[KNN {k} @{vector_field} ${VECTOR_PARAM} AS {score_alias}]"
    if base == "*":
        return f"*{knn}"
    return f"({base}){knn}"


class RedisSearchIndex(SearchIndex):
    """RediSearch-backed index handle.

    Wraps one ``redis.asyncio`` client; hybrid queries run with DIALECT 2,
    sorted ascending by the KNN distance alias.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str, **kwargs) -> "RedisSearchIndex":
        """Create an index handle with its own connection pool."""
        return cls(redis.from_url(redis_url, decode_responses=True, **kwargs))

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
        """Run a KNN query against ``index_name`` and return the hit fields."""
        expression = build_knn_expression(
            query_expression, k, vector_field, sort_field, filter_expression
        )
        query = (
            Query(expression)
            .return_fields(*return_fields)
            .sort_by(sort_field, asc=True)
            .paging(0, k)
            .dialect(QUERY_DIALECT)
        )

        try:
            result = await self.client.ft(index_name).search(
                query, query_params={VECTOR_PARAM: vector_to_bytes(vector)}
            )
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error("Index unreachable", index=index_name, error=str(e))
            raise SearchIndexConnectionError(f"Index {index_name} unreachable: {e}") from e
        except ResponseError as e:
            logger.error("Index rejected query", index=index_name, expression=expression, error=str(e))
            raise SearchIndexQueryError(f"Index {index_name} rejected query: {e}") from e
        except RedisError as e:
            logger.error("Index search failed", index=index_name, error=str(e))
            raise SearchIndexQueryError(f"Index {index_name} search failed: {e}") from e

        hits = [
            {field: getattr(doc, field, None) for field in return_fields}
            for doc in result.docs
        ]

        logger.debug(
            "Index search completed",
            index=index_name,
            results_count=len(hits),
            total=result.total
        )
        return hits

    async def health_check(self) -> bool:
        """Ping the Redis server."""
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error("Index health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self.client.aclose()
        logger.debug("Redis index connection closed")
