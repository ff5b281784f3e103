"""Flat-file product and user stores.

Layout, one record per line, comma-delimited:

    products:  id,name,brand,category,price
    users:     id,username,password,role

There is no escaping. A free-text field holding a comma or newline cannot
round-trip; such fields are flagged with a warning when written and the
resulting line is skipped (again with a warning) when read back. This is a
known limitation of the format, kept until a replacement format is agreed.

Timestamps are not part of the layout: rows loaded from disk get
``created_at == updated_at == load time``.

Each write updates the in-process index, then rewrites the whole file
atomically. If the rewrite fails the index change is undone and
:class:`BackendFailure` is raised, so the store is left as it was.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from marketplace_catalog.core.clock import IClock, WallClock, tick_after
from marketplace_catalog.core.enums import Role
from marketplace_catalog.core.errors import (
    BackendFailure,
    DuplicateUsername,
    IdentityNotAllowed,
    NotFound,
)
from marketplace_catalog.core.file_io import atomic_write_lines, read_lines
from marketplace_catalog.core.locks import ReadWriteLock
from marketplace_catalog.core.models import Product, User

from .index import ProductIndex, UserIndex

logger = logging.getLogger(__name__)

DELIMITER = ","


# ---------------------------------------------------------------------------
# Line codec
# ---------------------------------------------------------------------------

def _flag_unsafe(kind: str, record_id: int | None, fields: dict[str, str]) -> None:
    for name, value in fields.items():
        if DELIMITER in value or "\n" in value:
            logger.warning(
                "%s id=%s field %r contains a delimiter or newline; "
                "the stored line will not load back correctly",
                kind, record_id, name,
            )


def encode_product(product: Product) -> str:
    _flag_unsafe(
        "Product",
        product.id,
        {"name": product.name, "brand": product.brand, "category": product.category},
    )
    return DELIMITER.join(
        [str(product.id), product.name, product.brand, product.category, repr(product.price)]
    )


def decode_product(line: str, loaded_at: datetime) -> Product | None:
    parts = line.split(DELIMITER)
    if len(parts) != 5:
        logger.warning("Skipping malformed product line (%d fields): %r", len(parts), line)
        return None
    try:
        return Product(
            id=int(parts[0]),
            name=parts[1],
            brand=parts[2],
            category=parts[3],
            price=float(parts[4]),
            created_at=loaded_at,
            updated_at=loaded_at,
        )
    except ValueError as exc:
        logger.warning("Skipping unparseable product line %r: %s", line, exc)
        return None


def encode_user(user: User) -> str:
    _flag_unsafe("User", user.id, {"username": user.username, "password": user.password})
    return DELIMITER.join([str(user.id), user.username, user.password, user.role.value])


def decode_user(line: str) -> User | None:
    parts = line.split(DELIMITER)
    if len(parts) != 4:
        logger.warning("Skipping malformed user line (%d fields)", len(parts))
        return None
    try:
        return User(id=int(parts[0]), username=parts[1], password=parts[2], role=Role(parts[3]))
    except ValueError as exc:
        logger.warning("Skipping unparseable user line for id field %r: %s", parts[0], exc)
        return None


def _persist(path: Path, lines: list[str], undo: Callable[[], None]) -> None:
    try:
        atomic_write_lines(path, lines)
    except OSError as exc:
        undo()
        logger.error("Failed to persist %s: %s", path, exc)
        raise BackendFailure(f"Could not write {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

class FileProductStore:
    """Product store persisted as one line per product."""

    def __init__(self, path: str | Path, clock: IClock | None = None) -> None:
        self._path = Path(path)
        self._clock = clock or WallClock()
        self._index = ProductIndex()
        self._lock = ReadWriteLock()
        self._load()

    def _load(self) -> None:
        try:
            lines = read_lines(self._path)
        except (OSError, UnicodeDecodeError) as exc:
            raise BackendFailure(f"Could not read {self._path}: {exc}") from exc
        loaded_at = self._clock.now()
        for line in lines:
            product = decode_product(line, loaded_at)
            if product is not None:
                if self._index.contains(product.id):
                    self._index.replace(product)
                else:
                    self._index.insert(product)
        logger.info("Loaded %d products from %s", len(self._index), self._path)

    def _lines(self) -> list[str]:
        return [encode_product(p) for p in self._index.all()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, candidate: Product) -> Product:
        if candidate.id is not None:
            raise IdentityNotAllowed(
                f"Product id={candidate.id} supplied on create; ids are assigned by the store"
            )
        with self._lock.write():
            now = self._clock.now()
            stored = candidate.model_copy(
                update={"id": self._index.next_id(), "created_at": now, "updated_at": now}
            )
            self._index.insert(stored)
            _persist(self._path, self._lines(), lambda: self._index.remove(stored.id))
        return stored.model_copy()

    def update(self, product: Product) -> Product:
        with self._lock.write():
            current = self._index.get_stored(product.id) if product.id is not None else None
            if current is None:
                raise NotFound(f"Product with id={product.id} does not exist")
            updated = current.model_copy(
                update={
                    "name": product.name,
                    "brand": product.brand,
                    "category": product.category,
                    "price": product.price,
                    "updated_at": tick_after(self._clock, current.updated_at),
                }
            )
            self._index.replace(updated)
            _persist(self._path, self._lines(), lambda: self._index.replace(current))
        return updated.model_copy()

    def delete_by_id(self, product_id: int) -> bool:
        with self._lock.write():
            removed = self._index.remove(product_id)
            if removed is None:
                return False
            _persist(self._path, self._lines(), lambda: self._index.insert(removed))
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, product_id: int) -> Product | None:
        with self._lock.read():
            return self._index.get(product_id)

    def find_all(self) -> list[Product]:
        with self._lock.read():
            return self._index.all()

    def find_by_brand(self, brand: str) -> list[Product]:
        with self._lock.read():
            return self._index.by_brand(brand)

    def find_by_category(self, category: str) -> list[Product]:
        with self._lock.read():
            return self._index.by_category(category)

    def find_by_price_range(self, min_price: float, max_price: float) -> list[Product]:
        with self._lock.read():
            return self._index.by_price_range(min_price, max_price)

    def exists_by_id(self, product_id: int) -> bool:
        with self._lock.read():
            return self._index.contains(product_id)

    def count(self) -> int:
        with self._lock.read():
            return len(self._index)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class FileUserStore:
    """User store persisted as one line per user."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._index = UserIndex()
        self._lock = ReadWriteLock()
        try:
            lines = read_lines(self._path)
        except (OSError, UnicodeDecodeError) as exc:
            raise BackendFailure(f"Could not read {self._path}: {exc}") from exc
        for line in lines:
            user = decode_user(line)
            if user is not None and self._index.by_username(user.username) is None:
                self._index.insert(user)
        logger.info("Loaded %d users from %s", len(self._index), self._path)

    def save(self, candidate: User) -> User:
        if candidate.id is not None:
            raise IdentityNotAllowed("User id is assigned on registration")
        with self._lock.write():
            if self._index.by_username(candidate.username) is not None:
                raise DuplicateUsername(f"Username {candidate.username!r} already exists")
            stored = candidate.model_copy(update={"id": self._index.next_id()})
            self._index.insert(stored)
            _persist(
                self._path,
                [encode_user(u) for u in self._index.all()],
                lambda: self._index.remove(stored),
            )
        return stored

    def find_by_username(self, username: str) -> User | None:
        with self._lock.read():
            return self._index.by_username(username)

    def find_by_id(self, user_id: int) -> User | None:
        with self._lock.read():
            return self._index.by_id(user_id)

    def exists_by_username(self, username: str) -> bool:
        with self._lock.read():
            return self._index.by_username(username) is not None

    def find_all(self) -> list[User]:
        with self._lock.read():
            return self._index.all()

    def count(self) -> int:
        with self._lock.read():
            return len(self._index)
