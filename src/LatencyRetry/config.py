# === NAVMAP v1 ===
# {
#   "module": "LatencyRetry.config",
#   "purpose": "Retry budget configuration loading and one-shot policy resolution.",
#   "sections": [
#     {
#       "id": "retryconfig",
#       "name": "RetryConfig",
#       "anchor": "class-retryconfig",
#       "kind": "class"
#     },
#     {
#       "id": "load-retry-config",
#       "name": "load_retry_config",
#       "anchor": "function-load-retry-config",
#       "kind": "function"
#     },
#     {
#       "id": "resolvedpolicy",
#       "name": "ResolvedPolicy",
#       "anchor": "class-resolvedpolicy",
#       "kind": "class"
#     },
#     {
#       "id": "resolve-policy",
#       "name": "resolve_policy",
#       "anchor": "function-resolve-policy",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Retry budget configuration loading and policy resolution.

Provides:
- Validated budgets (uniqueness budget and acquisition-attempt budget)
- Environment variable and CLI argument overrides
- One-shot resolution of optional collaborators (predicate, oracle, logger)
  into a fully-populated :class:`ResolvedPolicy` before any attempt runs
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .cancellation import retry_unless_cancelled
from .errors import ConfigurationError, NoResourceAvailableError
from .oracle import UniquenessOracle, as_oracle
from .outcome import Failure, Outcome

__all__ = [
    "ENV_PREFIX",
    "RetryConfig",
    "ResolvedPolicy",
    "load_retry_config",
    "resolve_policy",
]

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "LATENCYRETRY_"

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


@dataclass(frozen=True)
class RetryConfig:
    """Budgets bounding one execution."""

    max_unique_expected: int = 3  # distinct backends to try, initial one included
    max_acquisition_attempts: int = 0  # factory calls per swap, 0 = unlimited

    def __post_init__(self) -> None:
        """Validate configuration."""
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{item.name} must be an integer, got {value!r}")
        if self.max_unique_expected < 1:
            raise ConfigurationError(
                f"max_unique_expected must be >= 1, got {self.max_unique_expected}"
            )
        if self.max_acquisition_attempts < 0:
            raise ConfigurationError(
                f"max_acquisition_attempts must be >= 0, got {self.max_acquisition_attempts}"
            )

    @property
    def max_retries(self) -> int:
        """Retries allowed after the first attempt."""
        return self.max_unique_expected - 1

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _env_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def load_retry_config(
    mapping: Optional[Mapping[str, Any]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    cli_overrides: Optional[Mapping[str, Any]] = None,
) -> RetryConfig:
    """Load retry budgets from a mapping, the environment, and CLI overrides.

    Precedence (highest to lowest):
    1. CLI argument overrides (``None`` values are ignored)
    2. Environment variables (``LATENCYRETRY_MAX_UNIQUE_EXPECTED``,
       ``LATENCYRETRY_MAX_ACQUISITION_ATTEMPTS``)
    3. ``mapping`` (for example a parsed configuration file section)
    4. Built-in defaults

    Args:
        mapping: Configuration values keyed by field name
        env: Environment variables (default: ``os.environ``)
        cli_overrides: CLI argument overrides keyed by field name

    Returns:
        Validated RetryConfig instance

    Raises:
        ConfigurationError: Unknown keys, non-integer values, or budgets out
            of range.
    """
    if env is None:
        env = os.environ

    known = {item.name for item in fields(RetryConfig)}
    config_dict: Dict[str, Any] = dict(mapping or {})

    unknown = sorted(set(config_dict) - known)
    if unknown:
        raise ConfigurationError(f"Unknown retry configuration keys: {', '.join(unknown)}")

    for name in sorted(known):
        value = _env_int(env, f"{ENV_PREFIX}{name.upper()}")
        if value is not None:
            config_dict[name] = value

    if cli_overrides:
        unknown = sorted(set(cli_overrides) - known)
        if unknown:
            raise ConfigurationError(f"Unknown retry configuration keys: {', '.join(unknown)}")
        config_dict.update({k: v for k, v in cli_overrides.items() if v is not None})

    config = RetryConfig(**config_dict)
    LOGGER.debug(
        "Retry configuration loaded: max_unique_expected=%d, max_acquisition_attempts=%d",
        config.max_unique_expected,
        config.max_acquisition_attempts,
    )
    return config


@dataclass(frozen=True)
class ResolvedPolicy:
    """Fully-populated collaborators for one execution."""

    should_retry: Callable[[BaseException], bool]
    oracle: UniquenessOracle
    logger: LoggerLike

    def should_handle(self, outcome: Outcome) -> bool:
        """Decide whether ``outcome`` triggers a resource swap and a new attempt."""
        if not isinstance(outcome, Failure):
            return False
        if isinstance(outcome.error, NoResourceAvailableError):
            return False
        return bool(self.should_retry(outcome.error))


def resolve_policy(
    *,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    oracle: Any = None,
    logger: Optional[LoggerLike] = None,
    default_logger: LoggerLike = LOGGER,
) -> ResolvedPolicy:
    """Resolve optional collaborators to concrete values.

    A caller-supplied ``should_retry`` replaces the default cancellation-aware
    predicate entirely.
    """
    return ResolvedPolicy(
        should_retry=should_retry if should_retry is not None else retry_unless_cancelled,
        oracle=as_oracle(oracle),
        logger=logger if logger is not None else default_logger,
    )
