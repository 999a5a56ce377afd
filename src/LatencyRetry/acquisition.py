"""Bounded search for a resource handle that has not been attempted yet.

The search is purely sequential: each acquisition attempt calls the factory
once, discards duplicates immediately through the cleaner, and stops at the
first handle whose backend is not in the visited set.  Two independent budgets
bound it:

- the uniqueness budget (``max_unique_expected``): once that many distinct
  backends were visited there is nothing left to find;
- the attempt budget (``max_acquisition_attempts``, ``0`` = unlimited): the
  number of factory calls spent in this search, duplicates and empty results
  included.

With an unlimited attempt budget only the uniqueness budget stops the loop, so
the factory must be able to reach ``max_unique_expected`` distinct backends.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from .cancellation import CancellationToken
from .config import LoggerLike
from .visited import VisitedSet

__all__ = ["acquire_unique"]

LOGGER = logging.getLogger(__name__)

R = TypeVar("R")


def acquire_unique(
    factory: Callable[[], Optional[R]],
    cleaner: Callable[[R], None],
    visited: VisitedSet,
    *,
    max_acquisition_attempts: int,
    max_unique_expected: int,
    current: Optional[R] = None,
    cancellation_token: Optional[CancellationToken] = None,
    logger: Optional[LoggerLike] = None,
) -> Optional[R]:
    """Return a handle whose backend is not in ``visited``, or ``None``.

    Args:
        factory: Produces a new handle; may return ``None``, which spends one
            attempt.
        cleaner: Releases a handle.  Called on every duplicate before the next
            attempt.
        visited: Backends already attempted in this execution.  Not modified.
        max_acquisition_attempts: Factory-call budget, ``0`` for unlimited.
        max_unique_expected: Uniqueness budget.
        current: Handle still in use by the caller.  If the factory hands it
            out again it spends an attempt but is not cleaned.
        cancellation_token: Checked before every factory call.
        logger: Diagnostics sink, defaults to this module's logger.

    Returns:
        The accepted handle (owned by the caller from then on) or ``None`` when
        a budget ran out.

    Raises:
        OperationCancelledError: The token was cancelled during the search.
        Exception: Whatever the factory, cleaner, or oracle raise.  A candidate
            handle is cleaned before an oracle error propagates.
    """

    log = logger if logger is not None else LOGGER
    attempt = 0
    while True:
        if visited.count() >= max_unique_expected:
            log.info(
                "Uniqueness budget exhausted: %d distinct resources already visited",
                visited.count(),
            )
            return None
        if max_acquisition_attempts != 0 and attempt >= max_acquisition_attempts:
            log.info(
                "Acquisition budget exhausted after %d attempts without a new resource",
                attempt,
            )
            return None
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()

        attempt += 1
        candidate = factory()
        if candidate is None:
            log.debug("Acquisition attempt %d: factory returned no resource", attempt)
            continue
        if current is not None and candidate is current:
            log.debug("Acquisition attempt %d: factory returned the handle in use", attempt)
            continue

        try:
            duplicate = visited.contains(candidate)
        except BaseException:
            cleaner(candidate)
            raise

        if duplicate:
            log.debug("Acquisition attempt %d: discarding already visited %r", attempt, candidate)
            cleaner(candidate)
            continue

        log.debug("Acquisition attempt %d: accepted %r", attempt, candidate)
        return candidate
