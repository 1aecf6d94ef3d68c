"""Search index factory and scoped sessions.

Centralizes creation of concrete ``SearchIndex`` backends so callers don't
depend on implementation details. Each search call opens its own session
and the session is released on every exit path, including errors and
cancellation.
"""

from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncContextManager, AsyncIterator, Callable

import structlog

from ..common.config import BaseConfig
from .base import SearchIndex
from .redis_index import RedisSearchIndex

logger = structlog.get_logger("search_index.factory")

IndexSessionFactory = Callable[[], AsyncContextManager[SearchIndex]]


class SearchIndexType(Enum):
    """Supported index backends."""
    REDIS = "redis"


def create_search_index(store_type: str, config: BaseConfig) -> SearchIndex:
    """Create an index handle for ``store_type`` from configuration."""
    try:
        store_type_enum = SearchIndexType(store_type)
    except ValueError:
        raise ValueError(f"Unsupported search index type: {store_type}")

    if store_type_enum == SearchIndexType.REDIS:
        return RedisSearchIndex.from_url(
            config.search_redis_url,
            socket_timeout=config.search_provider_timeout,
        )

    raise ValueError(f"Unsupported search index type: {store_type}")


@asynccontextmanager
async def index_session(create: Callable[[], SearchIndex]) -> AsyncIterator[SearchIndex]:
    """Open an index handle and guarantee it is closed afterwards."""
    index = create()
    try:
        yield index
    finally:
        try:
            await index.close()
        except Exception as e:
            logger.warning("Failed to close index session", error=str(e))


def create_index_session_factory(config: BaseConfig, store_type: str = "redis") -> IndexSessionFactory:
    """Build a zero-argument callable returning a fresh scoped index session.

    Parameters
    - config: Source of the backend URL and timeouts
    - store_type: A ``SearchIndexType`` value
    """
    # Validate eagerly so misconfiguration fails at wiring time.
    SearchIndexType(store_type)

    def factory() -> AsyncContextManager[SearchIndex]:
        return index_session(lambda: create_search_index(store_type, config))

    return factory
