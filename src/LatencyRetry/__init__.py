# === NAVMAP v1 ===
# {
#   "module": "LatencyRetry",
#   "purpose": "Public facade for the unique-resource retry orchestrator",
#   "sections": [
#     {"id": "exports", "name": "Public Exports", "anchor": "EXP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Retry operations across distinct backends to route around replication latency.

An operation issued against one replica of a replicated service can fail only
because that replica has not observed a prior write yet.  Waiting does not
help much; asking another replica does.  :func:`execute` runs an action
against a resource handle and, on a retryable failure, swaps in a handle bound
to a backend that was not attempted yet, cleaning every handle it creates
exactly once.

Example:
    >>> from LatencyRetry import execute, directory_host_oracle
    >>> execute(pool.acquire, pool.release, lambda conn: conn.search(dn),
    ...         max_unique_expected=3, max_acquisition_attempts=20,
    ...         oracle=directory_host_oracle())  # doctest: +SKIP
"""

from .acquisition import acquire_unique
from .cancellation import (
    CancellationToken,
    is_cancellation,
    retry_unless_cancelled,
)
from .config import ResolvedPolicy, RetryConfig, load_retry_config, resolve_policy
from .context import ExecutionContext
from .errors import (
    ConfigurationError,
    LatencyRetryError,
    NoResourceAvailableError,
    OperationCancelledError,
)
from .oracle import (
    IdentityOracle,
    KeyedOracle,
    PredicateOracle,
    UniquenessOracle,
    as_oracle,
    directory_host_oracle,
    identity_oracle,
)
from .orchestrator import Retrier, build_retrying, execute, execute_action
from .outcome import Failure, Outcome, Success
from .visited import VisitedSet

__all__ = [
    "CancellationToken",
    "ConfigurationError",
    "ExecutionContext",
    "Failure",
    "IdentityOracle",
    "KeyedOracle",
    "LatencyRetryError",
    "NoResourceAvailableError",
    "OperationCancelledError",
    "Outcome",
    "PredicateOracle",
    "ResolvedPolicy",
    "Retrier",
    "RetryConfig",
    "Success",
    "UniquenessOracle",
    "VisitedSet",
    "acquire_unique",
    "as_oracle",
    "build_retrying",
    "directory_host_oracle",
    "execute",
    "execute_action",
    "identity_oracle",
    "is_cancellation",
    "load_retry_config",
    "resolve_policy",
    "retry_unless_cancelled",
]

__version__ = "0.1.0"
