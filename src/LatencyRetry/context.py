"""Per-execution mutable state shared by the orchestrator and its retry hook."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

from .cancellation import CancellationToken
from .config import LoggerLike
from .errors import NoResourceAvailableError
from .visited import VisitedSet

__all__ = ["ExecutionContext"]

R = TypeVar("R")


@dataclass
class ExecutionContext(Generic[R]):
    """State owned by one ``execute`` call.

    The context exclusively owns ``current``.  Handles leave it through
    :meth:`install` (the superseded handle is cleaned after the new one is in
    place) or :meth:`release` (the final cleanup), so each handle is cleaned
    exactly once.
    """

    factory: Callable[[], Optional[R]]
    cleaner: Callable[[R], None]
    visited: VisitedSet
    max_unique_expected: int
    max_acquisition_attempts: int
    logger: LoggerLike
    cancellation_token: Optional[CancellationToken] = None
    current: Optional[R] = None
    swaps: int = field(default=0)

    def require_current(self) -> R:
        """Return the current handle, failing fast when there is none."""
        if self.current is None:
            raise NoResourceAvailableError("no resource handle is available for the action")
        return self.current

    def install(self, handle: R) -> None:
        """Make ``handle`` current, then clean the handle it supersedes."""
        previous, self.current = self.current, handle
        self.swaps += 1
        if previous is not None and previous is not handle:
            self.cleaner(previous)

    def release(self, pending: Optional[BaseException] = None) -> None:
        """Clean the current handle once and forget it.

        Args:
            pending: Error already propagating, if any.  A cleaner error raised
                on top of it supersedes it; the event is logged and Python keeps
                ``pending`` reachable as the new error's ``__context__``.
        """
        handle, self.current = self.current, None
        if handle is None:
            return
        try:
            self.cleaner(handle)
        except Exception as exc:
            if pending is not None:
                self.logger.warning(
                    "Cleanup of %r raised %s while %s was propagating; the cleanup error supersedes it",
                    handle,
                    type(exc).__name__,
                    type(pending).__name__,
                )
            raise
