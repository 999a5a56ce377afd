"""Uniqueness oracles: equivalence relations over resource handles.

Two handles are "the same backend" when the oracle says so.  The default,
:data:`identity_oracle`, only treats a handle as equal to itself.  Replicated
services usually need a derived identity instead (the server host name behind
a connection), which :class:`KeyedOracle` provides.  Looking that identity up
can be expensive, so :class:`KeyedOracle` accepts a caller-owned memo mapping;
the oracle never caches behind the caller's back.

Oracles expose ``equal(a, b)`` and a ``hash(handle)`` consistent with it so
that :class:`~LatencyRetry.visited.VisitedSet` can bucket handles.  A plain
binary predicate can be used too (see :func:`as_oracle`), at the price of
linear membership checks.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, MutableMapping, Optional, Protocol, runtime_checkable

__all__ = [
    "UniquenessOracle",
    "IdentityOracle",
    "PredicateOracle",
    "KeyedOracle",
    "identity_oracle",
    "directory_host_oracle",
    "as_oracle",
]


@runtime_checkable
class UniquenessOracle(Protocol):
    """Equivalence relation over resource handles with a consistent hash."""

    def equal(self, a: Any, b: Any) -> bool: ...

    def hash(self, handle: Any) -> int: ...


class IdentityOracle:
    """Treat two handles as the same backend only when they are the same object."""

    def equal(self, a: Any, b: Any) -> bool:
        return a is b

    def hash(self, handle: Any) -> int:
        return id(handle)

    def __repr__(self) -> str:
        return "IdentityOracle()"


class PredicateOracle:
    """Adapt a plain ``(a, b) -> bool`` predicate into an oracle.

    No hash can be derived from an arbitrary predicate, so every handle lands
    in the same bucket and membership degrades to a linear scan.
    """

    def __init__(self, equal: Callable[[Any, Any], bool]) -> None:
        self._equal = equal

    def equal(self, a: Any, b: Any) -> bool:
        return bool(self._equal(a, b))

    def hash(self, handle: Any) -> int:
        return 0

    def __repr__(self) -> str:
        return f"PredicateOracle({self._equal!r})"


class KeyedOracle:
    """Compare handles through an identity key derived from each handle.

    Args:
        key: Function returning a hashable identity for a handle, such as the
            host name of the server a connection is bound to.  Errors raised
            by ``key`` propagate unchanged and abort the execution.
        memo: Optional caller-owned mapping from handle to its computed key.
            When given, ``key`` runs at most once per handle for as long as the
            caller keeps the mapping; a ``weakref.WeakKeyDictionary`` bounds
            the cache to live handles.  ``None`` disables memoization.
        casefold: Compare string keys case-insensitively.
    """

    def __init__(
        self,
        key: Callable[[Any], Hashable],
        *,
        memo: Optional[MutableMapping[Any, Hashable]] = None,
        casefold: bool = False,
    ) -> None:
        self._key = key
        self._memo = memo
        self._casefold = casefold

    def identity(self, handle: Any) -> Hashable:
        """Return the (normalised) identity key of ``handle``."""

        memo = self._memo
        if memo is not None and handle in memo:
            value = memo[handle]
        else:
            value = self._key(handle)
            if memo is not None:
                memo[handle] = value
        if self._casefold and isinstance(value, str):
            return value.casefold()
        return value

    def equal(self, a: Any, b: Any) -> bool:
        if a is b:
            return True
        return self.identity(a) == self.identity(b)

    def hash(self, handle: Any) -> int:
        return hash(self.identity(handle))

    def __repr__(self) -> str:
        return f"KeyedOracle(key={self._key!r}, casefold={self._casefold})"


identity_oracle = IdentityOracle()


def directory_host_oracle(
    attribute: str = "dnsHostName",
    *,
    memo: Optional[MutableMapping[Any, Hashable]] = None,
) -> KeyedOracle:
    """Build an oracle that identifies directory connections by a root attribute.

    Each handle must provide ``read_root_attribute(name) -> str`` returning the
    value of ``name`` on the root entry of the server it is connected to
    (for LDAP, the RootDSE).  Host names are compared case-insensitively.
    """

    def _read(handle: Any) -> Hashable:
        return handle.read_root_attribute(attribute)

    return KeyedOracle(_read, memo=memo, casefold=True)


def as_oracle(candidate: Any) -> UniquenessOracle:
    """Normalise ``None``, an oracle, or a binary predicate into an oracle."""

    if candidate is None:
        return identity_oracle
    if isinstance(candidate, UniquenessOracle):
        return candidate
    if callable(candidate):
        return PredicateOracle(candidate)
    raise TypeError(f"Expected a uniqueness oracle or a callable, got {type(candidate).__name__}")
