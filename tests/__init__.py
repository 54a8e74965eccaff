"""Tests for s1-agent-helper.

Test Structure:
    tests/
    ├── conftest.py          # Shared pytest fixtures
    ├── unit/                # Unit tests (no network, no root)
    └── mocks/               # Mock console and command runner
        └── mock_console.py

Usage:
    # Run all tests
    pytest

    # Run only unit tests
    pytest -m unit

    # Run with verbose output
    pytest -v
"""
