"""Explicit two-variant outcome of one action attempt.

The retry decision is taken on an :data:`Outcome` value rather than inside an
``except`` clause, which keeps classification a plain function of its input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union, cast

from tenacity import Future

__all__ = ["Success", "Failure", "Outcome", "outcome_from_future"]

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """The action returned ``value``."""

    value: T


@dataclass(frozen=True)
class Failure:
    """The action raised ``error``."""

    error: BaseException


Outcome = Union[Success[Any], Failure]


def outcome_from_future(future: Future) -> Outcome:
    """Convert a settled tenacity attempt future into an :data:`Outcome`."""

    if future.failed:
        return Failure(cast(BaseException, future.exception()))
    return Success(future.result())
