"""Server commands for the factsync CLI.

Commands:
- server run: Serve the reference log service
"""

from __future__ import annotations

import os

import click


@click.group()
def server() -> None:
    """Log service commands."""


@server.command("run")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port.")
@click.option(
    "--db-path",
    type=click.Path(),
    default=None,
    help="Path to database file (default: FACTSYNC_DB_PATH or ./factsync-log.db).",
)
def run_cmd(host: str, port: int, db_path: str | None) -> None:
    """Serve the log service with uvicorn."""
    import uvicorn

    if db_path:
        os.environ["FACTSYNC_DB_PATH"] = db_path

    click.echo(f"Serving on http://{host}:{port}/api/0.1/{{namespace}}")
    uvicorn.run("factsync.server.app:app_factory", factory=True, host=host, port=port)
