"""Cooperative cancellation primitives and cancellation classification.

An execution can be stopped from another thread through a
:class:`CancellationToken`.  The orchestrator checks the token between
attempts rather than interrupting running collaborators, so the scoped
cleanup of the current resource always runs.  :func:`is_cancellation`
decides which errors count as cancellation signals; those are terminal and
never retried by the default classification predicate.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent import futures

from .errors import OperationCancelledError

__all__ = [
    "CancellationToken",
    "is_cancellation",
    "retry_unless_cancelled",
]

_CANCELLATION_TYPES = (
    OperationCancelledError,
    asyncio.CancelledError,
    futures.CancelledError,
    KeyboardInterrupt,
)


def is_cancellation(error: BaseException) -> bool:
    """Return ``True`` when ``error`` signals cancellation rather than failure."""

    return isinstance(error, _CANCELLATION_TYPES)


def retry_unless_cancelled(error: BaseException) -> bool:
    """Default classification: retry any ordinary error that is not a cancellation.

    ``BaseException`` subclasses outside :class:`Exception` (``SystemExit``,
    ``GeneratorExit``) are terminal as well.
    """

    return isinstance(error, Exception) and not is_cancellation(error)


class CancellationToken:
    """Thread-safe cancellation token checked between attempts.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        LatencyRetry.errors.OperationCancelledError: operation cancelled
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        with self._lock:
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` once :meth:`cancel` was called."""
        if self._is_cancelled.is_set():
            raise OperationCancelledError("operation cancelled")

    def reset(self) -> None:
        """Reset the token to its initial state.

        Only meant for tests or for reusing a token in controlled scenarios.
        """
        with self._lock:
            self._is_cancelled.clear()

# === NAVMAP v1 ===
# {
#   "module": "LatencyRetry.cancellation",
#   "purpose": "Provide cooperative cancellation tokens and the default cancellation-aware retry predicate",
#   "sections": [
#     {"id": "classify", "name": "Cancellation Classification", "anchor": "CLS", "kind": "api"},
#     {"id": "token", "name": "CancellationToken", "anchor": "TOK", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
