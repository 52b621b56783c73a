"""Configuration utilities for the factsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from factsync.core.config import RemoteConfig


def get_config_dir() -> Path:
    """Get the configuration directory for factsync.

    Returns:
        Path to ~/.factsync or equivalent.
    """
    return Path.home() / ".factsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_store_path() -> Path:
    """Get the local store path.

    Returns:
        Path to the local store (configured or default in the config dir).
    """
    config = load_config()
    if config.get("db_path"):
        return Path(config["db_path"]).expanduser().resolve()
    return get_config_dir() / "store.db"


def require_remote_config() -> RemoteConfig:
    """Build the remote configuration, failing if ``init`` never ran."""
    config = load_config()
    if not config.get("server_url") or not config.get("namespace"):
        raise click.ClickException("Not initialized. Run 'factsync init' first.")
    return RemoteConfig(
        server_url=config["server_url"],
        namespace=config["namespace"],
        timeout=float(config.get("timeout", 30.0)),
    )
