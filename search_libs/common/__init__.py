"""Common utilities shared across search components.

Includes:
- ``config``: Pydantic-based configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.
- ``errors``: exception taxonomy separating fatal from degradable failures.

Import pattern:
- from search_libs.common.config import SearchConfig
- from search_libs.common.logging import configure_logging
"""
