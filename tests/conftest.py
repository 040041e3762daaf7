"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import os
import pytest


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring database (deselect with '-m \"not db\"')"
    )


@pytest.fixture(autouse=True)
def _no_dry_run(monkeypatch):
    """Channels under test must not short-circuit through dry-run mode."""
    monkeypatch.delenv("NOTIFICATION_DRY_RUN", raising=False)
    yield
