"""
Pytest configuration.

Adds the project root to the Python path so tests can import domain,
repositories and services, and provides an in-memory Supabase double for
service and API tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fake_supabase import FakeSupabase  # noqa: E402


@pytest.fixture
def fake_store(monkeypatch) -> FakeSupabase:
    """Route every repository call to a fresh in-memory store."""

    from repositories import client

    store = FakeSupabase()
    monkeypatch.setattr(client, "get_supabase", lambda: store)
    return store
