"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from factsync.server.database import StoredTransaction

# === Head schemas ===


class HeadBody(BaseModel):
    """Head document, used for both GET and PUT."""

    head: UUID


# === Transaction schemas ===


class TransactionListResponse(BaseModel):
    """Response for ``GET /transactions?from=``."""

    model_config = {"populate_by_name": True}

    limit: int
    from_: UUID = Field(alias="from")
    transactions: list[UUID]


class TransactionPutRequest(BaseModel):
    """Request body for ``PUT /transactions/{uuid}``."""

    parent: UUID
    chunks: list[UUID]


class TransactionResponse(BaseModel):
    """Transaction header in responses."""

    parent: UUID
    chunks: list[UUID]
    id: UUID
    seq: int


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    api: str


# === Converters ===


def transaction_to_response(tx: StoredTransaction) -> TransactionResponse:
    """Convert StoredTransaction to response model."""
    return TransactionResponse(parent=tx.parent, chunks=tx.chunks, id=tx.id, seq=tx.seq)
