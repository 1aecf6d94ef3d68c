"""Hybrid search components for lexical + vector ranking.

Includes the document and URL search managers, which coordinate retrieval,
scoring, optional LLM steps and fusion for one search call.
"""
