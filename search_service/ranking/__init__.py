"""Search ranking and score fusion components.

Contents
- ``scoring``: lexical and recency scorers
- ``fusion``: signal set, weighted fusion and the unweighted overall score
"""
