"""Hybrid search service package.

Layout:
- ``hybrid``: search orchestration for the document and URL variants.
- ``ranking``: local scorers and score fusion.
- ``intelligence``: LLM query rewriting and reranking.
- ``retrievers``: index query construction and hit mapping.
- ``runtime``: service-local metrics helpers.
"""
