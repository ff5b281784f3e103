"""SQLAlchemy ORM models for the catalog database.

Tables:
    products      primary catalog rows; indexed on brand, category, price
    users         principals; unique username
    audit_events  append-only audit trail

Timestamps are written by the application clock, not by the database, so
every backend stamps ``created_at``/``updated_at`` the same way.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# ProductRecord
# ---------------------------------------------------------------------------

class ProductRecord(Base):
    """Persisted catalog entry.

    Maps from :class:`marketplace_catalog.core.models.Product`.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_products_brand", "brand"),
        Index("ix_products_category", "category"),
        Index("ix_products_price", "price"),
    )

    def __repr__(self) -> str:
        return f"<ProductRecord {self.id} {self.name!r} brand={self.brand!r}>"


# ---------------------------------------------------------------------------
# UserRecord
# ---------------------------------------------------------------------------

class UserRecord(Base):
    """Persisted principal. Password is stored as supplied (plain text)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)

    def __repr__(self) -> str:
        return f"<UserRecord {self.id} {self.username!r} {self.role}>"


# ---------------------------------------------------------------------------
# AuditEventRecord
# ---------------------------------------------------------------------------

class AuditEventRecord(Base):
    """One row per audit event. Never updated or deleted."""

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    detail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level: Mapped[str] = mapped_column(String(8), nullable=False)

    __table_args__ = (
        Index("ix_audit_events_timestamp", "timestamp"),
        Index("ix_audit_events_action", "action"),
    )

    def __repr__(self) -> str:
        return f"<AuditEventRecord {self.id} {self.action} {self.level}>"
