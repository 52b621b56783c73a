"""Local store commands for the factsync CLI.

Commands:
- init: Configure the remote log and local store
- transact: Author a local transaction
- head: Show local and remote heads
"""

from __future__ import annotations

import json
import uuid

import click

from factsync.client.cli.config import (
    get_store_path,
    load_config,
    require_remote_config,
    save_config,
)
from factsync.core.errors import FactSyncError


@click.command()
@click.option("--server", "server_url", required=True, help="Base URI of the log service.")
@click.option("--namespace", default=None, help="Namespace UUID (default: a new one).")
@click.option("--db", "db_path", type=click.Path(), default=None, help="Local store path.")
def init(server_url: str, namespace: str | None, db_path: str | None) -> None:
    """Configure the remote log and local store."""
    try:
        ns = uuid.UUID(namespace) if namespace else uuid.uuid4()
    except ValueError as e:
        raise click.BadParameter(f"not a UUID: {namespace}", param_hint="--namespace") from e

    config = load_config()
    config["server_url"] = server_url.rstrip("/")
    config["namespace"] = str(ns)
    if db_path:
        config["db_path"] = db_path
    save_config(config)

    click.echo(f"Remote:    {config['server_url']}")
    click.echo(f"Namespace: {ns}")
    click.echo(f"Store:     {get_store_path()}")


@click.command()
@click.argument("facts")
def transact(facts: str) -> None:
    """Author a local transaction from a JSON list of facts.

    Each fact is {"e": ..., "a": ..., "v": ...}; string entities are
    temporary identifiers.

    Example:

        factsync transact '[{"e": "alice", "a": ":person/name", "v": "Alice"}]'
    """
    from factsync.client.state import LocalStore

    try:
        parsed = json.loads(facts)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="FACTS") from e
    if not isinstance(parsed, list) or not all(isinstance(f, dict) for f in parsed):
        raise click.BadParameter("expected a JSON list of objects", param_hint="FACTS")

    store = LocalStore(get_store_path())
    try:
        report = store.transact(parsed)
    except FactSyncError as e:
        raise click.ClickException(f"Transaction failed: {e}") from e
    finally:
        store.close()

    click.echo(f"Transaction {report.tx_id}")
    for tempid, entity in sorted(report.tempids.items()):
        click.echo(f"  {tempid} -> {entity}")


@click.command()
@click.option("--offline", is_flag=True, help="Only show the local head.")
def head(offline: bool) -> None:
    """Show local and remote heads."""
    from factsync.client.api import RemoteLogClient
    from factsync.client.state import LocalStore

    store = LocalStore(get_store_path())
    try:
        click.echo(f"Local head:  {store.current_local_head()}")
        if offline:
            return
        with RemoteLogClient(require_remote_config()) as client:
            click.echo(f"Remote head: {client.head()}")
    except FactSyncError as e:
        raise click.ClickException(str(e)) from e
    finally:
        store.close()
