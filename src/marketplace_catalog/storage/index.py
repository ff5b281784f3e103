"""In-process indexes shared by the memory and file backends.

:class:`ProductIndex` keeps the primary map and the brand/category buckets
consistent with each other. It does no locking of its own; every store that
embeds one applies a primary-map change and the matching bucket changes
under a single writer lock.

Bucket invariant: each product sits in exactly one brand bucket and one
category bucket, keyed by its *current* normalized brand/category. Empty
buckets are dropped as soon as their last member leaves.
"""

from __future__ import annotations

from marketplace_catalog.core.models import Product, User


# Stripped from both ends of a brand/category key; the SQL backend trims the
# same characters.
KEY_WHITESPACE = " \t\n\r\x0b\x0c"


def normalize_key(value: str | None) -> str:
    """Trim and lower-case a brand/category for indexing or lookup."""
    return (value or "").strip(KEY_WHITESPACE).lower()


class ProductIndex:
    def __init__(self) -> None:
        self._by_id: dict[int, Product] = {}
        # bucket key -> {product id -> product}; a product cannot sit twice in a bucket
        self._by_brand: dict[str, dict[int, Product]] = {}
        self._by_category: dict[str, dict[int, Product]] = {}
        self._last_id = 0

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(self, product: Product) -> None:
        if product.id is None:
            raise ValueError("Indexed products must carry an id")
        self._by_id[product.id] = product
        self._last_id = max(self._last_id, product.id)
        self._add_to_buckets(product)

    def replace(self, product: Product) -> Product:
        """Swap the stored entry for *product*; return the previous one."""
        if product.id is None:
            raise ValueError("Indexed products must carry an id")
        previous = self._by_id[product.id]
        self._remove_from_buckets(previous)
        self._by_id[product.id] = product
        self._add_to_buckets(product)
        return previous

    def remove(self, product_id: int) -> Product | None:
        removed = self._by_id.pop(product_id, None)
        if removed is not None:
            self._remove_from_buckets(removed)
        return removed

    def _add_to_buckets(self, product: Product) -> None:
        self._by_brand.setdefault(normalize_key(product.brand), {})[product.id] = product
        self._by_category.setdefault(normalize_key(product.category), {})[product.id] = product

    def _remove_from_buckets(self, product: Product) -> None:
        for buckets, key in (
            (self._by_brand, normalize_key(product.brand)),
            (self._by_category, normalize_key(product.category)),
        ):
            bucket = buckets.get(key)
            if bucket is None:
                continue
            bucket.pop(product.id, None)
            if not bucket:
                del buckets[key]

    # ------------------------------------------------------------------
    # Lookup (always copies)
    # ------------------------------------------------------------------

    def get(self, product_id: int) -> Product | None:
        product = self._by_id.get(product_id)
        return product.model_copy() if product is not None else None

    def get_stored(self, product_id: int) -> Product | None:
        """Return the stored instance itself. For the owning store only."""
        return self._by_id.get(product_id)

    def contains(self, product_id: int) -> bool:
        return product_id in self._by_id

    def all(self) -> list[Product]:
        return [self._by_id[pid].model_copy() for pid in sorted(self._by_id)]

    def by_brand(self, brand: str) -> list[Product]:
        bucket = self._by_brand.get(normalize_key(brand), {})
        return [bucket[pid].model_copy() for pid in sorted(bucket)]

    def by_category(self, category: str) -> list[Product]:
        bucket = self._by_category.get(normalize_key(category), {})
        return [bucket[pid].model_copy() for pid in sorted(bucket)]

    def by_price_range(self, min_price: float, max_price: float) -> list[Product]:
        return [
            self._by_id[pid].model_copy()
            for pid in sorted(self._by_id)
            if min_price <= self._by_id[pid].price <= max_price
        ]

    def __len__(self) -> int:
        return len(self._by_id)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def brand_buckets(self) -> dict[str, list[int]]:
        return {key: sorted(bucket) for key, bucket in self._by_brand.items()}

    def category_buckets(self) -> dict[str, list[int]]:
        return {key: sorted(bucket) for key, bucket in self._by_category.items()}


class UserIndex:
    """Primary map by id plus the unique username key."""

    def __init__(self) -> None:
        self._by_id: dict[int, User] = {}
        self._by_username: dict[str, User] = {}
        self._last_id = 0

    def next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def insert(self, user: User) -> None:
        if user.id is None:
            raise ValueError("Indexed users must carry an id")
        self._by_id[user.id] = user
        self._by_username[user.username] = user
        self._last_id = max(self._last_id, user.id)

    def remove(self, user: User) -> None:
        self._by_id.pop(user.id, None)
        self._by_username.pop(user.username, None)

    def by_username(self, username: str) -> User | None:
        return self._by_username.get(username)

    def by_id(self, user_id: int) -> User | None:
        return self._by_id.get(user_id)

    def all(self) -> list[User]:
        return [self._by_id[uid] for uid in sorted(self._by_id)]

    def __len__(self) -> int:
        return len(self._by_id)
