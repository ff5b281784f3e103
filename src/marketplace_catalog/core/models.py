"""Core domain models used across the catalog.

These are the canonical "truth models" for the system. Every backend reads
and writes these same types; ORM records and file lines are converted at the
storage boundary.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import AuditLevel, Role


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class Product(BaseModel):
    """A catalog entry.

    ``id``, ``created_at`` and ``updated_at`` are assigned by the store; a
    candidate for creation leaves them unset. Brand and category are free
    text and only normalized for indexing, never rewritten.
    """

    model_config = ConfigDict(strict=True, validate_assignment=True)

    id: int | None = None
    name: str = ""
    brand: str = ""
    category: str = ""
    price: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __str__(self) -> str:
        return f"[{self.id}] {self.name} | {self.brand} | {self.category} | {self.price:.2f}"


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------

class User(BaseModel):
    """A registered principal.

    Frozen: the instance held by a session is a read view of the record the
    user store owns.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    id: int | None = None
    username: str = ""
    password: str = Field(default="", repr=False)  # Plain text, see DESIGN.md
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditEvent(BaseModel):
    """Single entry in the append-only audit trail."""

    model_config = ConfigDict(frozen=True)

    id: int
    timestamp: datetime
    actor_id: int | None = None  # None for anonymous / system events
    action: str
    detail: str = ""
    level: AuditLevel = AuditLevel.INFO

    def __str__(self) -> str:
        return (
            f"[{self.timestamp.isoformat()}] {self.level.value} "
            f"user={self.actor_id} action={self.action} details={self.detail}"
        )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class OperationStats(BaseModel):
    count: int = 0
    average_ms: float = 0.0


class MetricsSnapshot(BaseModel):
    """Point-in-time copy of the metrics collector, for display only."""

    counters: dict[str, int] = Field(default_factory=dict)
    gauges: dict[str, float] = Field(default_factory=dict)
    operations: dict[str, OperationStats] = Field(default_factory=dict)
