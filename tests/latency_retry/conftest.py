"""Shared fixtures for the retry orchestrator tests."""

from __future__ import annotations

import pytest

from LatencyRetry.oracle import KeyedOracle


@pytest.fixture
def by_server() -> KeyedOracle:
    """Oracle treating connections to the same server name as one backend."""
    return KeyedOracle(lambda conn: conn.server)
