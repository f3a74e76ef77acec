"""lcsgrid test suite.

Run with:
    pytest
"""
