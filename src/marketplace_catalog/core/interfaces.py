"""Protocol interfaces for the catalog core.

Storage boundaries are defined here as Protocol classes. Backends
(memory / file / sql) implement them side by side and can be swapped
without changing callers.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import AuditEvent, Product, User


# ---------------------------------------------------------------------------
# Catalog store
# ---------------------------------------------------------------------------

@runtime_checkable
class IProductStore(Protocol):
    """Indexed product storage.

    Implementations raise ``IdentityNotAllowed`` from :meth:`save`,
    ``NotFound`` from :meth:`update` and ``BackendFailure`` for any I/O or
    constraint failure. Returned products are copies the caller may mutate.
    """

    def save(self, candidate: Product) -> Product: ...
    def update(self, product: Product) -> Product: ...
    def delete_by_id(self, product_id: int) -> bool: ...

    def find_by_id(self, product_id: int) -> Product | None: ...
    def find_all(self) -> list[Product]: ...
    def find_by_brand(self, brand: str) -> list[Product]: ...
    def find_by_category(self, category: str) -> list[Product]: ...
    def find_by_price_range(self, min_price: float, max_price: float) -> list[Product]: ...

    def exists_by_id(self, product_id: int) -> bool: ...
    def count(self) -> int: ...


# ---------------------------------------------------------------------------
# User store
# ---------------------------------------------------------------------------

@runtime_checkable
class IUserStore(Protocol):
    """Principal storage with a unique, case-sensitive username key."""

    def save(self, candidate: User) -> User: ...
    def find_by_username(self, username: str) -> User | None: ...
    def find_by_id(self, user_id: int) -> User | None: ...
    def exists_by_username(self, username: str) -> bool: ...
    def find_all(self) -> list[User]: ...
    def count(self) -> int: ...


# ---------------------------------------------------------------------------
# Audit persistence
# ---------------------------------------------------------------------------

@runtime_checkable
class IAuditRepository(Protocol):
    """Durable sink for audit events. Append-only; no update or delete."""

    def append(self, event: AuditEvent) -> None: ...
    def load_all(self) -> list[AuditEvent]: ...
