"""In-memory replicated directory used to exercise the orchestrator.

The model is deliberately small: a write lands on a single server and only
becomes visible on the others after :meth:`ReplicatedDirectory.replicate`.
Reading right after writing therefore fails on every replica except the one
that took the write, which is exactly the replication-latency failure mode the
orchestrator routes around.

:class:`ConnectionPool` hands out connections to randomly chosen servers, so
the same server can come back several times in a row (the coupon-collector
behaviour that makes duplicate detection and the acquisition budget matter).
It tracks connections in use to detect leaks.
"""

from __future__ import annotations

import itertools
import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set

__all__ = [
    "EntryNotFoundError",
    "DirectoryServer",
    "ReplicatedDirectory",
    "DirectoryConnection",
    "ConnectionPool",
]

LOGGER = logging.getLogger(__name__)


class EntryNotFoundError(LookupError):
    """Raised when an entry is not (yet) visible on the queried server."""

    def __init__(self, dn: str, server: str) -> None:
        super().__init__(f"{dn} not found on {server}")
        self.dn = dn
        self.server = server


@dataclass
class DirectoryServer:
    """One replica: a host name and the entries it has observed so far."""

    host: str
    entries: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def root_attributes(self) -> Dict[str, str]:
        return {"dnsHostName": self.host}


class ReplicatedDirectory:
    """A set of replicas sharing a naming context with lazy replication."""

    def __init__(self, hosts: Sequence[str]) -> None:
        if not hosts:
            raise ValueError("a replicated directory needs at least one server")
        if len(set(host.casefold() for host in hosts)) != len(hosts):
            raise ValueError("server host names must be unique")
        self._servers = {host: DirectoryServer(host) for host in hosts}
        self._pending: List[tuple[str, Dict[str, str]]] = []
        self._lock = threading.Lock()

    @classmethod
    def with_servers(cls, count: int, domain: str = "example.org") -> "ReplicatedDirectory":
        """Build ``count`` replicas named ``dc1.<domain>``, ``dc2.<domain>``, ..."""
        return cls([f"dc{index}.{domain}" for index in range(1, count + 1)])

    @property
    def hosts(self) -> List[str]:
        return list(self._servers)

    def server(self, host: str) -> DirectoryServer:
        return self._servers[host]

    def write(self, dn: str, attributes: Mapping[str, str], host: Optional[str] = None) -> str:
        """Store an entry on ``host`` (first server by default) and queue replication.

        Returns:
            The host that accepted the write.
        """
        target = host if host is not None else self.hosts[0]
        with self._lock:
            self._servers[target].entries[dn] = dict(attributes)
            self._pending.append((dn, dict(attributes)))
        LOGGER.debug("Wrote %s on %s", dn, target)
        return target

    def replicate(self) -> int:
        """Propagate all pending writes to every replica.

        Returns:
            The number of writes propagated.
        """
        with self._lock:
            pending, self._pending = self._pending, []
            for dn, attributes in pending:
                for server in self._servers.values():
                    server.entries[dn] = dict(attributes)
        return len(pending)

    def connect(self, host: str) -> "DirectoryConnection":
        return DirectoryConnection(self._servers[host])


class DirectoryConnection:
    """Connection handle bound to one replica."""

    _ids = itertools.count(1)

    def __init__(self, server: DirectoryServer) -> None:
        self._server = server
        self.id = next(self._ids)
        self.closed = False
        self.searches = 0

    @property
    def host(self) -> str:
        return self._server.host

    def read_root_attribute(self, name: str) -> str:
        """Return ``name`` from the server's root entry."""
        self._ensure_open()
        try:
            return self._server.root_attributes[name]
        except KeyError:
            raise EntryNotFoundError(f"root attribute {name}", self.host) from None

    def search(self, dn: str) -> Dict[str, str]:
        """Return the attributes of ``dn`` as seen by this replica."""
        self._ensure_open()
        self.searches += 1
        entry = self._server.entries.get(dn)
        if entry is None:
            raise EntryNotFoundError(dn, self.host)
        return dict(entry)

    def close(self) -> None:
        self.closed = True

    def _ensure_open(self) -> None:
        if self.closed:
            raise RuntimeError(f"connection {self.id} to {self.host} is closed")

    def __repr__(self) -> str:
        return f"DirectoryConnection(id={self.id}, host={self.host!r})"


class ConnectionPool:
    """Hands out connections to random replicas and tracks the ones in use."""

    def __init__(self, directory: ReplicatedDirectory, rng: Optional[random.Random] = None) -> None:
        self._directory = directory
        self._rng = rng if rng is not None else random.Random()
        self._in_use: Set[DirectoryConnection] = set()
        self._lock = threading.Lock()
        self.created = 0
        self.released = 0

    def acquire(self) -> DirectoryConnection:
        host = self._rng.choice(self._directory.hosts)
        connection = self._directory.connect(host)
        with self._lock:
            self._in_use.add(connection)
            self.created += 1
        return connection

    def release(self, connection: DirectoryConnection) -> None:
        """Close ``connection`` and return it to the pool.

        Raises:
            ValueError: The connection is not in use (double release).
        """
        with self._lock:
            if connection not in self._in_use:
                raise ValueError(f"{connection!r} is not in use")
            self._in_use.remove(connection)
            self.released += 1
        connection.close()

    @property
    def in_use(self) -> int:
        with self._lock:
            return len(self._in_use)
