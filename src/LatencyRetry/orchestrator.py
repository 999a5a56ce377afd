"""Unique-resource retry orchestrator built on Tenacity.

Replicated backends (directory servers, for example) do not all observe a
write at the same time.  An operation failing on one replica because it has
not caught up yet will usually succeed on another one, so instead of waiting
and retrying against the same replica, the orchestrator retries immediately
against a *different* backend:

1. a handle is acquired eagerly and the action runs against it;
2. on a failure the classification predicate accepts, Tenacity calls the
   pre-retry hook, which marks the current backend as visited and searches
   for one that was not attempted yet (:func:`~LatencyRetry.acquisition.acquire_unique`);
3. a replacement is installed before the superseded handle is cleaned;
4. whatever handle is current when the execution ends is cleaned exactly
   once, on success, terminal failure, exhaustion, or cancellation alike.

Tenacity is configured with ``max_unique_expected`` attempts, no wait, and
``reraise=True`` so the last action error surfaces unwrapped.  With
``max_unique_expected == 1`` no retry controller is built at all.

Example:
    >>> from LatencyRetry.orchestrator import execute
    >>> result = execute(
    ...     factory=pool.acquire,
    ...     cleaner=pool.release,
    ...     action=lambda conn: conn.search("cn=alice,dc=example,dc=org"),
    ...     max_unique_expected=3,
    ...     max_acquisition_attempts=20,
    ...     oracle=directory_host_oracle(),
    ... )  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_none
from tenacity.retry import retry_base

from .acquisition import acquire_unique
from .cancellation import CancellationToken
from .config import LoggerLike, ResolvedPolicy, RetryConfig, load_retry_config, resolve_policy
from .context import ExecutionContext
from .errors import NoResourceAvailableError
from .outcome import outcome_from_future
from .visited import VisitedSet

__all__ = ["Retrier", "build_retrying", "execute", "execute_action"]

LOGGER = logging.getLogger(__name__)

R = TypeVar("R")
T = TypeVar("T")


# ============================================================================
# Tenacity plumbing
# ============================================================================


class retry_if_outcome(retry_base):
    """Tenacity retry strategy delegating to :meth:`ResolvedPolicy.should_handle`."""

    def __init__(self, policy: ResolvedPolicy) -> None:
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> bool:
        if retry_state.outcome is None:
            raise RuntimeError("retry strategy consulted before the attempt completed")
        return self.policy.should_handle(outcome_from_future(retry_state.outcome))


def _no_sleep(seconds: float) -> None:
    """Zero-delay sleep: the next attempt starts immediately."""


def _swap_resource(retry_state: RetryCallState) -> None:
    """Pre-retry hook: replace the current handle with one not attempted yet."""

    ctx: ExecutionContext[Any] = retry_state.args[0]
    ctx.logger.debug("Retry %d / %d", retry_state.attempt_number, ctx.max_unique_expected - 1)

    current = ctx.require_current()
    ctx.visited.try_add(current)

    replacement = acquire_unique(
        ctx.factory,
        ctx.cleaner,
        ctx.visited,
        max_acquisition_attempts=ctx.max_acquisition_attempts,
        max_unique_expected=ctx.max_unique_expected,
        current=current,
        cancellation_token=ctx.cancellation_token,
        logger=ctx.logger,
    )
    if replacement is None:
        ctx.logger.debug("No unattempted resource found, next attempt reuses %r", current)
        return
    ctx.install(replacement)


def build_retrying(config: RetryConfig, policy: ResolvedPolicy) -> Retrying:
    """Build the Tenacity controller for one execution.

    The controller must be called as ``retrying(fn, ctx, ...)``: the hook
    reads the :class:`ExecutionContext` from the first positional argument.
    """
    return Retrying(
        stop=stop_after_attempt(config.max_unique_expected),
        wait=wait_none(),
        sleep=_no_sleep,
        retry=retry_if_outcome(policy),
        before_sleep=_swap_resource,
        reraise=True,
    )


# ============================================================================
# Execution
# ============================================================================


def _attempt(ctx: ExecutionContext[R], action: Callable[[R], T]) -> T:
    if ctx.cancellation_token is not None:
        ctx.cancellation_token.raise_if_cancelled()
    return action(ctx.require_current())


def _run(
    factory: Callable[[], Optional[R]],
    cleaner: Callable[[R], None],
    action: Callable[[R], T],
    config: RetryConfig,
    policy: ResolvedPolicy,
    cancellation_token: Optional[CancellationToken],
) -> T:
    if cancellation_token is not None:
        cancellation_token.raise_if_cancelled()

    ctx: ExecutionContext[R] = ExecutionContext(
        factory=factory,
        cleaner=cleaner,
        visited=VisitedSet(policy.oracle),
        max_unique_expected=config.max_unique_expected,
        max_acquisition_attempts=config.max_acquisition_attempts,
        logger=policy.logger,
        cancellation_token=cancellation_token,
    )
    initial = factory()
    if initial is None:
        raise NoResourceAvailableError("resource factory returned no initial resource")
    ctx.current = initial

    try:
        if config.max_retries <= 0:
            result = _attempt(ctx, action)
        else:
            result = build_retrying(config, policy)(_attempt, ctx, action)
    except BaseException as exc:
        ctx.release(pending=exc)
        raise
    ctx.release()
    return result


def execute(
    factory: Callable[[], Optional[R]],
    cleaner: Callable[[R], None],
    action: Callable[[R], T],
    max_unique_expected: int,
    max_acquisition_attempts: int = 0,
    *,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    oracle: Any = None,
    logger: Optional[LoggerLike] = None,
    cancellation_token: Optional[CancellationToken] = None,
) -> T:
    """Run ``action`` against successive distinct resources until it succeeds.

    Args:
        factory: Creates a resource handle; ``None`` means "nothing this time".
        cleaner: Releases a handle created by ``factory``.  Called exactly once
            per created handle.
        action: Operation to perform against the current handle.
        max_unique_expected: Number of distinct backends to try, at least 1.
            ``1`` runs the action exactly once without any retry logic.
        max_acquisition_attempts: Factory calls allowed per swap while looking
            for an unattempted backend, ``0`` for unlimited.
        should_retry: Classifies an action error as retryable.  Replaces the
            default, which retries everything except cancellation signals.
        oracle: :class:`~LatencyRetry.oracle.UniquenessOracle` or binary
            predicate deciding whether two handles reach the same backend.
            Defaults to object identity.
        logger: Receives retry diagnostics, defaults to this module's logger.
        cancellation_token: Checked before every attempt and acquisition.

    Returns:
        The value returned by the first successful ``action`` call.

    Raises:
        ConfigurationError: Budgets out of range; nothing was created.
        NoResourceAvailableError: The factory produced no initial handle.
        OperationCancelledError: ``cancellation_token`` was cancelled.
        Exception: The error of the last attempt once it is classified as
            terminal or the budgets are spent, or an error raised by the
            factory, cleaner, or oracle.
    """
    config = RetryConfig(
        max_unique_expected=max_unique_expected,
        max_acquisition_attempts=max_acquisition_attempts,
    )
    policy = resolve_policy(
        should_retry=should_retry, oracle=oracle, logger=logger, default_logger=LOGGER
    )
    return _run(factory, cleaner, action, config, policy, cancellation_token)


def execute_action(
    factory: Callable[[], Optional[R]],
    cleaner: Callable[[R], None],
    action: Callable[[R], Any],
    max_unique_expected: int,
    max_acquisition_attempts: int = 0,
    *,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    oracle: Any = None,
    logger: Optional[LoggerLike] = None,
    cancellation_token: Optional[CancellationToken] = None,
) -> None:
    """Same as :func:`execute` but discards the action's return value."""
    execute(
        factory,
        cleaner,
        action,
        max_unique_expected,
        max_acquisition_attempts,
        should_retry=should_retry,
        oracle=oracle,
        logger=logger,
        cancellation_token=cancellation_token,
    )


class Retrier(Generic[R]):
    """Reusable binding of a resource factory, its cleaner, and retry budgets.

    Collaborators are resolved once at construction.  The instance keeps no
    per-call state, so concurrent calls are independent as long as the
    factory, cleaner, and oracle tolerate concurrent use.
    """

    def __init__(
        self,
        factory: Callable[[], Optional[R]],
        cleaner: Callable[[R], None],
        config: Optional[RetryConfig] = None,
        *,
        should_retry: Optional[Callable[[BaseException], bool]] = None,
        oracle: Any = None,
        logger: Optional[LoggerLike] = None,
    ) -> None:
        self._factory = factory
        self._cleaner = cleaner
        self._config = config if config is not None else RetryConfig()
        self._policy = resolve_policy(
            should_retry=should_retry, oracle=oracle, logger=logger, default_logger=LOGGER
        )

    @classmethod
    def from_env(
        cls,
        factory: Callable[[], Optional[R]],
        cleaner: Callable[[R], None],
        *,
        mapping: Optional[Mapping[str, Any]] = None,
        env: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> "Retrier[R]":
        """Build a retrier whose budgets come from :func:`load_retry_config`."""
        return cls(factory, cleaner, load_retry_config(mapping, env=env), **kwargs)

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def policy(self) -> ResolvedPolicy:
        return self._policy

    def execute(
        self,
        action: Callable[[R], T],
        *,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> T:
        return _run(
            self._factory, self._cleaner, action, self._config, self._policy, cancellation_token
        )

    def execute_action(
        self,
        action: Callable[[R], Any],
        *,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> None:
        self.execute(action, cancellation_token=cancellation_token)
