"""SQLAlchemy models for the factsync log service.

Every row is scoped by ``namespace``, the opaque user/store identifier
that prefixes all API paths.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class Head(Base):
    """Head pointer of one namespace."""

    __tablename__ = "heads"

    namespace: Mapped[str] = mapped_column(String(36), primary_key=True)
    head: Mapped[str] = mapped_column(String(36), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


class TransactionRecord(Base):
    """Transaction header; ``seq`` is assigned on acceptance."""

    __tablename__ = "transactions"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(36), nullable=False)
    uuid: Mapped[str] = mapped_column(String(36), nullable=False)
    parent: Mapped[str] = mapped_column(String(36), nullable=False)
    chunks: Mapped[str] = mapped_column(Text, nullable=False)  # JSON list of UUIDs
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("namespace", "uuid", name="uq_transactions_namespace_uuid"),
        Index("idx_transactions_namespace_seq", "namespace", "seq"),
    )


class ChunkRecord(Base):
    """Write-once chunk payload, stored as canonical JSON."""

    __tablename__ = "chunks"

    namespace: Mapped[str] = mapped_column(String(36), primary_key=True)
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
