"""Tests for the hybrid search components.

Unit tests run against in-memory fakes of the index, embedding and
completion interfaces (see ``fakes``). Tests marked ``integration`` need a
live Redis Stack instance.
"""
