"""Search retrievers.

Retrievers encapsulate how candidates are fetched from the index before
ranking. Splitting retrieval from ranking keeps pipelines testable.
"""
