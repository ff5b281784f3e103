"""In-memory product and user stores.

Every write applies the primary-map change and its index changes under one
writer lock, so readers never observe a product missing from (or doubled
across) its buckets.
"""

from __future__ import annotations

import logging

from marketplace_catalog.core.clock import IClock, WallClock, tick_after
from marketplace_catalog.core.errors import DuplicateUsername, IdentityNotAllowed, NotFound
from marketplace_catalog.core.locks import ReadWriteLock
from marketplace_catalog.core.models import Product, User

from .index import ProductIndex, UserIndex

logger = logging.getLogger(__name__)


class InMemoryProductStore:
    """Indexed product store backed by process memory only."""

    def __init__(self, clock: IClock | None = None) -> None:
        self._clock = clock or WallClock()
        self._index = ProductIndex()
        self._lock = ReadWriteLock()

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
        logger.debug("Stored product id=%s", stored.id)
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
        return updated.model_copy()

    def delete_by_id(self, product_id: int) -> bool:
        with self._lock.write():
            return self._index.remove(product_id) is not None

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

    def bucket_snapshot(self) -> tuple[dict[str, list[int]], dict[str, list[int]]]:
        """Return (brand buckets, category buckets) as ids, read atomically."""
        with self._lock.read():
            return self._index.brand_buckets(), self._index.category_buckets()


class InMemoryUserStore:
    """User store with a unique, case-sensitive username key."""

    def __init__(self) -> None:
        self._index = UserIndex()
        self._lock = ReadWriteLock()

    def save(self, candidate: User) -> User:
        if candidate.id is not None:
            raise IdentityNotAllowed("User id is assigned on registration")
        with self._lock.write():
            if self._index.by_username(candidate.username) is not None:
                raise DuplicateUsername(f"Username {candidate.username!r} already exists")
            stored = candidate.model_copy(update={"id": self._index.next_id()})
            self._index.insert(stored)
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
