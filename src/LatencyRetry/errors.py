"""Exception hierarchy for the unique-resource retry orchestrator.

Failures raised by caller-supplied collaborators (the action, the factory, the
cleaner, the uniqueness oracle) are never wrapped: they surface to the caller
as their own types.  The classes below only cover the conditions the
orchestrator itself detects, grouped so callers can catch the package-level
base class when they do not care about the specific reason.
"""

from __future__ import annotations

__all__ = [
    "LatencyRetryError",
    "ConfigurationError",
    "NoResourceAvailableError",
    "OperationCancelledError",
]


class LatencyRetryError(RuntimeError):
    """Base exception for failures detected by the orchestrator itself."""


class ConfigurationError(LatencyRetryError, ValueError):
    """Raised when budgets or configuration inputs are invalid."""


class NoResourceAvailableError(LatencyRetryError):
    """Raised when an action would be invoked without a current resource handle.

    This is an internal invariant violation and is never classified as a
    retryable failure, whatever predicate the caller supplied.
    """


class OperationCancelledError(LatencyRetryError):
    """Raised when a cancellation token was triggered during an execution."""
# === NAVMAP v1 ===
# {
#   "module": "LatencyRetry.errors",
#   "purpose": "Define the exception hierarchy raised by the unique-resource retry orchestrator",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "configuration", "name": "Configuration Errors", "anchor": "CFG", "kind": "api"},
#     {"id": "resources", "name": "Resource & Cancellation Errors", "anchor": "RES", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
