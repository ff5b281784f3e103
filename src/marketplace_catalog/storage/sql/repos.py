"""SQL implementations of the store and audit repository protocols.

Each class wraps a :class:`sessionmaker` obtained from
:func:`marketplace_catalog.storage.sql.connection.create_session_factory`.
Every public method runs in its own committed-or-rolled-back session and
converts driver errors into :class:`BackendFailure`.

Conversion helpers translate between core domain models
(:mod:`marketplace_catalog.core.models`) and ORM records.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from marketplace_catalog.core.clock import IClock, WallClock, ensure_utc, tick_after
from marketplace_catalog.core.enums import AuditLevel, Role
from marketplace_catalog.core.errors import (
    BackendFailure,
    DuplicateUsername,
    IdentityNotAllowed,
    NotFound,
)
from marketplace_catalog.core.locks import ReadWriteLock
from marketplace_catalog.core.models import AuditEvent, Product, User
from marketplace_catalog.storage.index import KEY_WHITESPACE, normalize_key

from .connection import session_scope
from .models import AuditEventRecord, ProductRecord, UserRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _record_to_product(record: ProductRecord) -> Product:
    """Convert an ORM :class:`ProductRecord` to a core :class:`Product`."""
    return Product(
        id=record.id,
        name=record.name,
        brand=record.brand,
        category=record.category,
        price=float(record.price),
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
    )


def _record_to_user(record: UserRecord) -> User:
    return User(
        id=record.id,
        username=record.username,
        password=record.password,
        role=Role(record.role),
    )


def _event_to_record(event: AuditEvent) -> AuditEventRecord:
    return AuditEventRecord(
        id=event.id,
        timestamp=event.timestamp,
        actor_id=event.actor_id,
        action=event.action,
        detail=event.detail,
        level=event.level.value,
    )


def _record_to_event(record: AuditEventRecord) -> AuditEvent:
    return AuditEvent(
        id=record.id,
        timestamp=ensure_utc(record.timestamp),
        actor_id=record.actor_id,
        action=record.action,
        detail=record.detail,
        level=AuditLevel(record.level),
    )


def _key_column(column):
    """SQL twin of :func:`normalize_key`."""
    return func.lower(func.trim(column, KEY_WHITESPACE))


@contextmanager
def _backend(factory: sessionmaker[Session], operation: str) -> Iterator[Session]:
    try:
        with session_scope(factory) as session:
            yield session
    except SQLAlchemyError as exc:
        logger.error("SQL %s failed: %s", operation, exc)
        raise BackendFailure(f"Database error during {operation}: {exc}") from exc


# ---------------------------------------------------------------------------
# ProductStore
# ---------------------------------------------------------------------------

class SqlProductStore:
    """Product store backed by the ``products`` table.

    Brand and category lookups trim and lower-case the column in SQL and
    compare it against the normalized key, matching the in-process index.
    """

    def __init__(self, factory: sessionmaker[Session], clock: IClock | None = None) -> None:
        self._factory = factory
        self._clock = clock or WallClock()
        self._lock = ReadWriteLock()

    def save(self, candidate: Product) -> Product:
        if candidate.id is not None:
            raise IdentityNotAllowed(
                f"Product id={candidate.id} supplied on create; ids are assigned by the store"
            )
        now = self._clock.now()
        with self._lock.write(), _backend(self._factory, "product insert") as session:
            record = ProductRecord(
                name=candidate.name,
                brand=candidate.brand,
                category=candidate.category,
                price=candidate.price,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            session.flush()
            return _record_to_product(record)

    def update(self, product: Product) -> Product:
        with self._lock.write(), _backend(self._factory, "product update") as session:
            record = session.get(ProductRecord, product.id) if product.id is not None else None
            if record is None:
                raise NotFound(f"Product with id={product.id} does not exist")
            record.name = product.name
            record.brand = product.brand
            record.category = product.category
            record.price = product.price
            record.updated_at = tick_after(self._clock, ensure_utc(record.updated_at))
            session.flush()
            return _record_to_product(record)

    def delete_by_id(self, product_id: int) -> bool:
        with self._lock.write(), _backend(self._factory, "product delete") as session:
            record = session.get(ProductRecord, product_id)
            if record is None:
                return False
            session.delete(record)
            return True

    def find_by_id(self, product_id: int) -> Product | None:
        with self._lock.read(), _backend(self._factory, "product lookup") as session:
            record = session.get(ProductRecord, product_id)
            return _record_to_product(record) if record is not None else None

    def find_all(self) -> list[Product]:
        return self._select(select(ProductRecord).order_by(ProductRecord.id), "product list")

    def find_by_brand(self, brand: str) -> list[Product]:
        stmt = (
            select(ProductRecord)
            .where(_key_column(ProductRecord.brand) == normalize_key(brand))
            .order_by(ProductRecord.id)
        )
        return self._select(stmt, "brand lookup")

    def find_by_category(self, category: str) -> list[Product]:
        stmt = (
            select(ProductRecord)
            .where(_key_column(ProductRecord.category) == normalize_key(category))
            .order_by(ProductRecord.id)
        )
        return self._select(stmt, "category lookup")

    def find_by_price_range(self, min_price: float, max_price: float) -> list[Product]:
        stmt = (
            select(ProductRecord)
            .where(ProductRecord.price.between(min_price, max_price))
            .order_by(ProductRecord.id)
        )
        return self._select(stmt, "price range lookup")

    def exists_by_id(self, product_id: int) -> bool:
        return self.find_by_id(product_id) is not None

    def count(self) -> int:
        with self._lock.read(), _backend(self._factory, "product count") as session:
            return session.scalar(select(func.count()).select_from(ProductRecord)) or 0

    def _select(self, stmt, operation: str) -> list[Product]:
        with self._lock.read(), _backend(self._factory, operation) as session:
            return [_record_to_product(r) for r in session.scalars(stmt)]


# ---------------------------------------------------------------------------
# UserStore
# ---------------------------------------------------------------------------

class SqlUserStore:
    """User store backed by the ``users`` table (unique username)."""

    def __init__(self, factory: sessionmaker[Session]) -> None:
        self._factory = factory
        self._lock = ReadWriteLock()

    def save(self, candidate: User) -> User:
        if candidate.id is not None:
            raise IdentityNotAllowed("User id is assigned on registration")
        with self._lock.write(), _backend(self._factory, "user insert") as session:
            existing = session.scalar(
                select(UserRecord.id).where(UserRecord.username == candidate.username)
            )
            if existing is not None:
                raise DuplicateUsername(f"Username {candidate.username!r} already exists")
            record = UserRecord(
                username=candidate.username,
                password=candidate.password,
                role=candidate.role.value,
            )
            session.add(record)
            session.flush()
            return _record_to_user(record)

    def find_by_username(self, username: str) -> User | None:
        with self._lock.read(), _backend(self._factory, "user lookup") as session:
            record = session.scalar(select(UserRecord).where(UserRecord.username == username))
            return _record_to_user(record) if record is not None else None

    def find_by_id(self, user_id: int) -> User | None:
        with self._lock.read(), _backend(self._factory, "user lookup") as session:
            record = session.get(UserRecord, user_id)
            return _record_to_user(record) if record is not None else None

    def exists_by_username(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def find_all(self) -> list[User]:
        with self._lock.read(), _backend(self._factory, "user list") as session:
            return [
                _record_to_user(r)
                for r in session.scalars(select(UserRecord).order_by(UserRecord.id))
            ]

    def count(self) -> int:
        with self._lock.read(), _backend(self._factory, "user count") as session:
            return session.scalar(select(func.count()).select_from(UserRecord)) or 0


# ---------------------------------------------------------------------------
# AuditRepository
# ---------------------------------------------------------------------------

class SqlAuditRepository:
    """Audit sink backed by the ``audit_events`` table."""

    def __init__(self, factory: sessionmaker[Session]) -> None:
        self._factory = factory

    def append(self, event: AuditEvent) -> None:
        with _backend(self._factory, "audit insert") as session:
            session.add(_event_to_record(event))

    def load_all(self) -> list[AuditEvent]:
        with _backend(self._factory, "audit load") as session:
            stmt = select(AuditEventRecord).order_by(AuditEventRecord.id)
            return [_record_to_event(r) for r in session.scalars(stmt)]
