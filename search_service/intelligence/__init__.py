"""LLM-assisted query rewriting and result reranking."""
