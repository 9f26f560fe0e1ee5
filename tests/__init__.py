#!/usr/bin/env python3
"""
Test suite.

Every test runs against an in-memory SQLite database built from the real
models, so no external services are needed:

    python -m pytest tests/ -v

    # Using unittest
    python -m unittest discover tests -v
"""
