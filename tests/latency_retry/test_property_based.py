"""Property-based tests for the retry orchestrator budgets and cleanup guarantees."""

from __future__ import annotations

from typing import List, Optional

import pytest
from hypothesis import given
from hypothesis import strategies as st

from LatencyRetry.errors import NoResourceAvailableError
from LatencyRetry.oracle import KeyedOracle
from LatencyRetry.orchestrator import execute
from tests.latency_retry.fakes import NotOnExpectedServer, Recorder, always_fail, value_on

servers = st.sampled_from(["A", "B", "C", "D", "E"])


def _collapse(labels: List[str]) -> List[str]:
    """Drop consecutive repeats (attempts rerun on the same handle)."""
    collapsed: List[str] = []
    for label in labels:
        if not collapsed or collapsed[-1] != label:
            collapsed.append(label)
    return collapsed


@given(
    sequence=st.lists(st.one_of(st.none(), servers), min_size=1, max_size=30),
    unique=st.integers(min_value=1, max_value=5),
    attempts=st.integers(min_value=1, max_value=6),
    target=servers,
)
def test_budgets_and_cleanup_hold_for_any_factory(
    sequence: List[Optional[str]], unique: int, attempts: int, target: str
) -> None:
    rec = Recorder(*sequence)
    oracle = KeyedOracle(lambda conn: conn.server)

    try:
        result = execute(
            rec.factory,
            rec.cleaner,
            rec.action(value_on(target, "hit")),
            unique,
            attempts,
            oracle=oracle,
        )
    except NotOnExpectedServer:
        assert rec.used[-1].server != target
    except NoResourceAvailableError:
        assert sequence[0] is None
        assert rec.used == []
    else:
        assert result == "hit"
        assert rec.used[-1].server == target

    used = [conn.server for conn in rec.used]
    assert len(set(used)) <= unique
    assert len(rec.used) <= unique
    assert len(_collapse(used)) == len(set(used))
    rec.assert_cleaned_exactly_once()


@given(n=st.integers(min_value=1, max_value=6), data=st.data())
def test_success_on_kth_distinct_backend(n: int, data) -> None:
    k = data.draw(st.integers(min_value=1, max_value=n))
    labels = [f"S{index}" for index in range(1, n + 1)]
    rec = Recorder(*labels)

    assert execute(rec.factory, rec.cleaner, rec.action(value_on(labels[k - 1], k)), n) == k

    assert rec.calls == k
    assert len(rec.cleaned) == k
    assert rec.cleaned[-1] is rec.created[-1]
    rec.assert_cleaned_exactly_once()


@given(n=st.integers(min_value=1, max_value=6))
def test_failure_everywhere_surfaces_last_error(n: int) -> None:
    labels = [f"S{index}" for index in range(1, n + 1)]
    rec = Recorder(*labels)

    with pytest.raises(NotOnExpectedServer, match=f"fail on S{n}$"):
        execute(rec.factory, rec.cleaner, rec.action(always_fail), n)

    assert [conn.server for conn in rec.used] == labels
    rec.assert_cleaned_exactly_once()
