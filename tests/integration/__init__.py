"""Integration test suite.

Exercises the search managers against a live Redis Stack instance; tests
skip when Redis or the search module is unavailable.
"""
