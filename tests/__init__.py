"""
Test suite for the ReliefHub backend.

Run tests:
    python -m pytest tests/
"""
