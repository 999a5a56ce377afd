"""Bookkeeping of the backends already attempted within one execution."""

from __future__ import annotations

from typing import Any, Dict, List

from .oracle import UniquenessOracle, identity_oracle

__all__ = ["VisitedSet"]


class VisitedSet:
    """Set of resource handles whose membership is decided by a uniqueness oracle.

    Handles are bucketed by ``oracle.hash`` and compared with ``oracle.equal``
    inside a bucket, the same way a hash set uses ``__hash__``/``__eq__``.  The
    set only grows; it holds a reference to every added handle so that later
    comparisons can still consult it, but it never cleans anything.

    Errors raised by the oracle propagate to the caller untouched.
    """

    def __init__(self, oracle: UniquenessOracle = identity_oracle) -> None:
        self._oracle = oracle
        self._buckets: Dict[int, List[Any]] = {}
        self._count = 0

    @property
    def oracle(self) -> UniquenessOracle:
        return self._oracle

    def contains(self, handle: Any) -> bool:
        """Return ``True`` when an oracle-equal handle was already added."""
        bucket = self._buckets.get(self._oracle.hash(handle))
        if not bucket:
            return False
        return any(self._oracle.equal(member, handle) for member in bucket)

    def try_add(self, handle: Any) -> bool:
        """Add ``handle`` unless an oracle-equal handle is present.

        Returns:
            ``True`` when the handle was added, ``False`` for a duplicate.
        """
        key = self._oracle.hash(handle)
        bucket = self._buckets.setdefault(key, [])
        if any(self._oracle.equal(member, handle) for member in bucket):
            return False
        bucket.append(handle)
        self._count += 1
        return True

    def count(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count

    def __contains__(self, handle: object) -> bool:
        return self.contains(handle)

    def __repr__(self) -> str:
        return f"VisitedSet(count={self._count}, oracle={self._oracle!r})"
