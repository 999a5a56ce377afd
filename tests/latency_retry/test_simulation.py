"""Integration tests against the simulated replicated directory."""

from __future__ import annotations

import random
import weakref

import pytest

from LatencyRetry.oracle import directory_host_oracle
from LatencyRetry.orchestrator import execute, execute_action
from LatencyRetry.simulation import ConnectionPool, EntryNotFoundError, ReplicatedDirectory

REPLICAS = 3
DN = "cn=alice,dc=example,dc=org"


@pytest.fixture
def directory() -> ReplicatedDirectory:
    return ReplicatedDirectory.with_servers(REPLICAS)


@pytest.fixture
def pool(directory: ReplicatedDirectory) -> ConnectionPool:
    return ConnectionPool(directory, rng=random.Random(1234))


def test_write_is_invisible_on_other_replicas_until_replicated(directory: ReplicatedDirectory) -> None:
    writer, reader = directory.hosts[0], directory.hosts[1]
    directory.write(DN, {"cn": "alice"}, host=writer)

    assert directory.connect(writer).search(DN) == {"cn": "alice"}
    with pytest.raises(EntryNotFoundError):
        directory.connect(reader).search(DN)

    assert directory.replicate() == 1
    assert directory.connect(reader).search(DN) == {"cn": "alice"}


def test_directory_rejects_duplicate_hosts() -> None:
    with pytest.raises(ValueError):
        ReplicatedDirectory(["dc1", "DC1"])
    with pytest.raises(ValueError):
        ReplicatedDirectory([])


def test_pool_tracks_connections_and_rejects_double_release(pool: ConnectionPool) -> None:
    connection = pool.acquire()
    assert pool.in_use == 1

    pool.release(connection)
    assert pool.in_use == 0
    assert connection.closed
    with pytest.raises(ValueError):
        pool.release(connection)
    with pytest.raises(RuntimeError):
        connection.search(DN)


def test_exhausting_all_replicas_raises_last_error(pool: ConnectionPool) -> None:
    tries = []

    def action(connection):
        tries.append(connection.host)
        raise RuntimeError("exception")

    with pytest.raises(RuntimeError, match="exception"):
        execute_action(
            pool.acquire,
            pool.release,
            action,
            REPLICAS,
            20,
            oracle=directory_host_oracle(),
        )

    assert len(tries) == REPLICAS
    assert pool.in_use == 0


def test_result_is_returned_and_pool_is_empty(pool: ConnectionPool) -> None:
    result = execute(
        pool.acquire,
        pool.release,
        lambda connection: object(),
        REPLICAS,
        20,
        oracle=directory_host_oracle(),
    )

    assert result is not None
    assert pool.in_use == 0


@pytest.mark.parametrize("seed", range(10))
def test_read_after_write_finds_the_writer(directory: ReplicatedDirectory, seed: int) -> None:
    rng = random.Random(seed)
    pool = ConnectionPool(directory, rng=rng)
    writer = directory.write(DN, {"cn": "alice"}, host=rng.choice(directory.hosts))
    memo: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()
    hosts = []

    def lookup(connection):
        hosts.append(connection.host)
        return connection.search(DN)

    entry = execute(
        pool.acquire,
        pool.release,
        lookup,
        REPLICAS,
        0,
        should_retry=lambda error: isinstance(error, EntryNotFoundError),
        oracle=directory_host_oracle(memo=memo),
    )

    assert entry == {"cn": "alice"}
    assert hosts[-1] == writer
    assert len(set(hosts)) == len(hosts)
    assert pool.in_use == 0
    assert pool.created == pool.released
