"""Search index adapters and utilities.

Primary components:
- ``base``: abstract ``SearchIndex`` retrieval interface.
- ``redis_index``: RediSearch implementation of the interface.
- ``factory``: helpers to construct an index and open scoped sessions.

Guidance:
- Prefer ``factory.create_index_session_factory`` so search managers own a
  connection only for the duration of one call.
"""
