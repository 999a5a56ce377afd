"""Command line entry point: ``latency-retry``.

Provides:
- latency-retry simulate - Run write-then-read lookups against a simulated
  replicated directory and report how the orchestrator routed them
- latency-retry config show - Print the effective retry budgets
"""

from __future__ import annotations

import json
import logging
import random
import weakref
from typing import Any, Dict, Optional

import typer

from .config import RetryConfig, load_retry_config
from .errors import ConfigurationError
from .logging_utils import setup_logging
from .oracle import directory_host_oracle
from .orchestrator import execute
from .simulation import ConnectionPool, DirectoryConnection, EntryNotFoundError, ReplicatedDirectory

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="latency-retry",
    help="Retry operations across distinct replicas to route around replication latency",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Inspect retry configuration", no_args_is_help=True)
app.add_typer(config_app, name="config")


def _load_config(overrides: Dict[str, Any]) -> RetryConfig:
    try:
        return load_retry_config(cli_overrides=overrides)
    except ConfigurationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2)


@app.command()
def simulate(
    servers: int = typer.Option(3, min=1, help="Number of replicas in the directory"),
    lookups: int = typer.Option(100, min=0, help="Write-then-read lookups to perform"),
    seed: Optional[int] = typer.Option(None, help="Seed for replica selection"),
    max_unique_expected: Optional[int] = typer.Option(
        None, help="Distinct replicas to try per lookup (defaults to --servers)"
    ),
    max_acquisition_attempts: Optional[int] = typer.Option(
        None, help="Connections to open per swap, 0 for unlimited"
    ),
    log_level: str = typer.Option("WARNING", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
) -> None:
    """Write an entry on a random replica, then read it back through the orchestrator."""

    setup_logging(level=log_level, json_logs=json_logs)
    config = _load_config(
        {
            "max_unique_expected": max_unique_expected if max_unique_expected is not None else servers,
            "max_acquisition_attempts": max_acquisition_attempts,
        }
    )
    if config.max_acquisition_attempts == 0 and config.max_unique_expected > servers:
        typer.echo(
            "max_unique_expected cannot exceed --servers without an acquisition budget",
            err=True,
        )
        raise typer.Exit(code=2)

    rng = random.Random(seed)
    directory = ReplicatedDirectory.with_servers(servers)
    pool = ConnectionPool(directory, rng=rng)
    memo: "weakref.WeakKeyDictionary[DirectoryConnection, Any]" = weakref.WeakKeyDictionary()
    oracle = directory_host_oracle(memo=memo)

    succeeded = failed = attempts = 0
    for index in range(lookups):
        dn = f"cn=user{index},dc=example,dc=org"
        directory.write(dn, {"cn": f"user{index}"}, host=rng.choice(directory.hosts))

        def lookup(connection: DirectoryConnection, dn: str = dn) -> Dict[str, str]:
            nonlocal attempts
            attempts += 1
            return connection.search(dn)

        try:
            execute(
                pool.acquire,
                pool.release,
                lookup,
                config.max_unique_expected,
                config.max_acquisition_attempts,
                should_retry=lambda error: isinstance(error, EntryNotFoundError),
                oracle=oracle,
                logger=logger,
            )
            succeeded += 1
        except EntryNotFoundError as exc:
            logger.info("Lookup failed on every attempted replica: %s", exc)
            failed += 1
        directory.replicate()

    summary = {
        "servers": servers,
        "lookups": lookups,
        "succeeded": succeeded,
        "failed": failed,
        "attempts": attempts,
        "connections": pool.created,
        "leaked": pool.in_use,
        **config.to_dict(),
    }
    typer.echo(json.dumps(summary, indent=2, sort_keys=True))
    if pool.in_use:
        raise typer.Exit(code=1)


@config_app.command("show")
def config_show() -> None:
    """Print the effective retry budgets (environment overrides applied)."""

    config = _load_config({})
    typer.echo(json.dumps(config.to_dict(), indent=2, sort_keys=True))


def main() -> None:  # pragma: no cover - console script shim
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
