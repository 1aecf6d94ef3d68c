"""Shared libraries for the signal search platform.

Subpackages:
- ``search_libs.common``: configuration, logging, metrics, and errors.
- ``search_libs.search_index``: index retrieval interface and the RediSearch backend.
- ``search_libs.providers``: embedding and text-completion provider clients.

Notes:
- Avoid ranking logic here; keep modules cohesive and broadly useful.
"""
