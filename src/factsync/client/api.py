"""HTTP client for a remote transaction log.

This module provides:
- RemoteLogClient: TransactionLog implementation over HTTP
- Head, transaction header and chunk operations
- Status code and transport error mapping

Calls are blocking: each one drives its request to completion before
returning, and requests are issued one at a time.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any
from uuid import UUID

import httpx

from factsync.core.config import RemoteConfig
from factsync.core.errors import (
    BadRemoteResponseError,
    BadRemoteStateError,
    DuplicateMetadataError,
    NetworkError,
    SerializationError,
)
from factsync.core.log import check_causal_chain
from factsync.core.types import (
    TransactionHeader,
    TransactionPage,
    Tx,
    TxPart,
    parse_uuid,
)

logger = logging.getLogger(__name__)


class RemoteLogClient:
    """Transaction log backed by a remote HTTP service."""

    def __init__(
        self,
        config: RemoteConfig,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the remote log client.

        Args:
            config: Remote connection configuration.
            http_client: Optional pre-built client (e.g. a test client).
                It is not closed by this object.
        """
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=config.timeout,
            verify=config.verify_ssl,
        )

    @property
    def bound_base_uri(self) -> str:
        """Base URI scoped to the configured namespace."""
        return self._config.bound_base_uri

    def close(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> RemoteLogClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    # === Transport helpers ===

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request and return its response.

        Raises:
            NetworkError: If the request could not be sent or read.
            BadRemoteResponseError: If the response body could not be decoded.
        """
        url = f"{self.bound_base_uri}{path}"
        logger.debug(f"{method} {url}")
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.DecodingError as e:
            logger.debug(f"undecodable response to {method} {url}: {e!r}")
            raise BadRemoteResponseError(f"{method} {url}: undecodable body: {e}") from e
        except httpx.RequestError as e:
            logger.debug(f"error sending {method} request: {e!r}")
            raise NetworkError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _expect(response: httpx.Response, expected: int) -> httpx.Response:
        """Check the response status against the one the protocol requires."""
        if response.status_code != expected:
            logger.debug(f"bad response: {response.status_code}")
            raise BadRemoteResponseError(
                f"expected {expected}, got {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        """Decode a JSON response body."""
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializationError(f"invalid JSON from {response.request.url}: {e}") from e

    def _get_json(self, path: str, missing: str | None = None, **kwargs: Any) -> Any:
        """GET a JSON document.

        Args:
            path: Path relative to the bound base URI.
            missing: If set, a 404 means the remote state is inconsistent;
                this text describes what was missing.
        """
        response = self._send("GET", path, **kwargs)
        if missing is not None and response.status_code == 404:
            raise BadRemoteStateError(missing)
        return self._json(self._expect(response, 200))

    def _put(self, path: str, payload: Any, expected: int) -> httpx.Response:
        """PUT a JSON document and check the status."""
        response = self._send(
            "PUT",
            path,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        if response.status_code == expected:
            return response
        if response.status_code == 409 and path.startswith("/chunks/"):
            raise DuplicateMetadataError(f"chunk {path.rsplit('/', 1)[-1]}")
        return self._expect(response, expected)

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the log service is reachable.

        Returns:
            True if the service answered its health endpoint.
        """
        try:
            response = self._client.get(f"{self._config.server_url}/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Head ===

    def head(self) -> UUID:
        """Get the namespace head."""
        data = self._get_json("/head")
        if not isinstance(data, dict) or "head" not in data:
            raise SerializationError(f"head document missing 'head': {data!r}")
        head = parse_uuid(data["head"], "head")
        logger.debug(f"got head: {head}")
        return head

    def set_head(self, uuid: UUID) -> None:
        """Overwrite the namespace head (last writer wins)."""
        self._put("/head", {"head": str(uuid)}, expected=204)

    # === Transactions ===

    def list_transactions(self, from_uuid: UUID) -> TransactionPage:
        """List one page of transaction UUIDs after ``from_uuid``.

        Raises:
            BadRemoteStateError: If ``from_uuid`` is unknown to the log.
        """
        data = self._get_json(
            "/transactions",
            missing=f"unknown transaction {from_uuid}",
            params={"from": str(from_uuid)},
        )
        page = TransactionPage.from_dict(data)
        logger.debug(f"got transactions: {page.transactions}")
        return page

    def get_transaction_header(self, tx_uuid: UUID) -> TransactionHeader:
        """Get the header (parent and chunk list) of a transaction."""
        data = self._get_json(
            f"/transactions/{tx_uuid}",
            missing=f"missing transaction header {tx_uuid}",
        )
        header = TransactionHeader.from_dict(data)
        if header.id != tx_uuid:
            raise BadRemoteStateError(f"asked for transaction {tx_uuid}, got {header.id}")
        return header

    def transactions_after(self, tx: UUID) -> list[Tx]:
        """Fetch every transaction after ``tx`` with all of its parts.

        Lists UUIDs page by page, then fetches each header and each chunk
        in order. The result is complete or the call fails.
        """
        uuids: list[UUID] = []
        cursor = tx
        while True:
            page = self.list_transactions(cursor)
            uuids.extend(page.transactions)
            if not page.transactions or len(page.transactions) < page.limit:
                break
            cursor = page.transactions[-1]

        tx_list: list[Tx] = []
        for tx_uuid in uuids:
            header = self.get_transaction_header(tx_uuid)
            # All parts are passed along, including the transaction's
            # metadata datom; the applier picks the instant out of them.
            parts = [self.get_chunk(chunk) for chunk in header.chunks]
            tx_list.append(
                Tx(
                    uuid=tx_uuid,
                    parent=header.parent,
                    chunks=list(header.chunks),
                    parts=parts,
                    seq=header.seq,
                )
            )

        check_causal_chain(tx, tx_list)
        logger.debug(f"got {len(tx_list)} transactions after {tx}")
        return tx_list

    def put_transaction(
        self, tx_uuid: UUID, parent_uuid: UUID, chunk_uuids: Sequence[UUID]
    ) -> None:
        """Record a transaction header.

        Callers must have uploaded every chunk beforehand.
        """
        payload = {
            "parent": str(parent_uuid),
            "chunks": [str(c) for c in chunk_uuids],
        }
        logger.debug(f"serialized transaction: {payload}")
        self._put(f"/transactions/{tx_uuid}", payload, expected=201)

    # === Chunks ===

    def get_chunk(self, chunk_uuid: UUID) -> TxPart:
        """Download one chunk."""
        data = self._get_json(f"/chunks/{chunk_uuid}", missing=f"missing chunk {chunk_uuid}")
        return TxPart.from_dict(data)

    def put_chunk(self, chunk_uuid: UUID, payload: TxPart) -> None:
        """Upload one chunk. Re-uploading identical content is accepted."""
        self._put(f"/chunks/{chunk_uuid}", payload.to_dict(), expected=201)
