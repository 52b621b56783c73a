"""Shared configuration classes for factsync."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from factsync.core.errors import NotYetImplementedError

SUPPORTED_ENCODINGS = ("json",)


@dataclass
class RemoteConfig:
    """Configuration for connecting to a remote transaction log.

    Attributes:
        server_url: Base URI of the log service (e.g. "https://example.com/api/0.1").
        namespace: Opaque user/store identifier scoping the log.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
        encoding: Chunk payload encoding; only "json" exists.
    """

    server_url: str
    namespace: UUID
    timeout: float = 30.0
    verify_ssl: bool = True
    encoding: str = "json"

    def __post_init__(self) -> None:
        """Normalize server URL and namespace."""
        self.server_url = self.server_url.rstrip("/")
        if not isinstance(self.namespace, UUID):
            self.namespace = UUID(str(self.namespace))
        if self.encoding not in SUPPORTED_ENCODINGS:
            raise NotYetImplementedError(f"{self.encoding} chunk encoding")

    @property
    def bound_base_uri(self) -> str:
        """Base URI scoped to this namespace."""
        return f"{self.server_url}/{self.namespace}"
