"""External model providers consumed by search.

- ``embedding``: text to vector (OpenAI or the internal embedding service).
- ``completion``: prompt to text (OpenAI chat completions).
- ``text_cleaner``: normalization applied before embedding.
"""
