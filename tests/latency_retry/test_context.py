"""Tests for the per-execution context and its handle ownership rules."""

from __future__ import annotations

import logging

import pytest
from tenacity import Future

from LatencyRetry.context import ExecutionContext
from LatencyRetry.errors import NoResourceAvailableError
from LatencyRetry.outcome import Failure, Success, outcome_from_future
from LatencyRetry.visited import VisitedSet
from tests.latency_retry.fakes import FakeConn, Recorder


def _context(rec: Recorder, cleaner=None) -> ExecutionContext:
    return ExecutionContext(
        factory=rec.factory,
        cleaner=cleaner or rec.cleaner,
        visited=VisitedSet(),
        max_unique_expected=3,
        max_acquisition_attempts=0,
        logger=logging.getLogger("tests.latency_retry.context"),
    )


def test_require_current_fails_fast_without_handle() -> None:
    ctx = _context(Recorder("A"))

    with pytest.raises(NoResourceAvailableError):
        ctx.require_current()


def test_install_cleans_previous_after_new_handle_is_current() -> None:
    rec = Recorder("A")
    observed = []
    ctx = _context(rec)

    def cleaner(conn):
        observed.append((conn, ctx.current))
        rec.cleaner(conn)

    ctx.cleaner = cleaner
    old, new = FakeConn("A"), FakeConn("B")
    ctx.current = old

    ctx.install(new)

    assert observed == [(old, new)]
    assert ctx.current is new
    assert ctx.swaps == 1


def test_release_cleans_once() -> None:
    rec = Recorder("A")
    ctx = _context(rec)
    ctx.current = rec.factory()

    ctx.release()
    ctx.release()

    rec.assert_cleaned_exactly_once()
    assert ctx.current is None


def test_outcome_from_future() -> None:
    ok = Future(1)
    ok.set_result("value")
    failed = Future(2)
    error = RuntimeError("boom")
    failed.set_exception(error)

    assert outcome_from_future(ok) == Success("value")
    assert outcome_from_future(failed) == Failure(error)
