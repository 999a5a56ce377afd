"""
Pytest Configuration

Makes the ``src`` tree and the repository root importable so the suite runs
from a plain checkout as well as from an editable install, and registers a
deterministic Hypothesis profile for the property-based tests.

Usage:
    pytest tests/latency_retry
"""

from __future__ import annotations

import sys
from pathlib import Path

from hypothesis import HealthCheck, settings

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"

for path in (SRC_PATH, ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

settings.register_profile(
    "latency-retry",
    derandomize=True,
    deadline=None,
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile("latency-retry")
