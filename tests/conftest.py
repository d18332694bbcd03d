"""
Pytest configuration and shared fixtures for Nostalgia tests.

Provides:
- Logging configuration
- Signer and fake relay fixtures (``tests.fixtures.relays``)
"""

import logging

import pytest


pytest_plugins = ["tests.fixtures.relays"]


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)
