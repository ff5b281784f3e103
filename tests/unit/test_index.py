"""Unit tests for storage.index: primary map plus brand/category buckets."""

from __future__ import annotations

import pytest

from marketplace_catalog.core.models import Product, User
from marketplace_catalog.storage.index import ProductIndex, UserIndex, normalize_key


def _stored(pid: int, brand: str = "Dell", category: str = "Electronics", price: float = 10.0) -> Product:
    return Product(id=pid, name=f"p{pid}", brand=brand, category=category, price=price)


class TestNormalizeKey:
    def test_trims_and_lowercases(self):
        assert normalize_key("  DeLL ") == "dell"

    def test_none_is_empty(self):
        assert normalize_key(None) == ""

    def test_strips_tabs_and_form_feeds(self):
        assert normalize_key("\tOffice\x0c\n") == "office"


class TestProductIndex:
    def test_insert_populates_buckets(self):
        index = ProductIndex()
        index.insert(_stored(1))
        index.insert(_stored(2, brand="dell", category="Office"))

        assert index.brand_buckets() == {"dell": [1, 2]}
        assert index.category_buckets() == {"electronics": [1], "office": [2]}

    def test_replace_prunes_empty_buckets(self):
        index = ProductIndex()
        index.insert(_stored(1, brand="Dell"))

        previous = index.replace(_stored(1, brand="HP"))

        assert previous.brand == "Dell"
        assert index.brand_buckets() == {"hp": [1]}

    def test_remove_drops_from_all_maps(self):
        index = ProductIndex()
        index.insert(_stored(1))
        index.insert(_stored(2, brand="HP"))

        removed = index.remove(1)

        assert removed.id == 1
        assert not index.contains(1)
        assert index.brand_buckets() == {"hp": [2]}
        assert index.category_buckets() == {"electronics": [2]}
        assert index.remove(1) is None

    def test_insert_without_id_rejected(self):
        index = ProductIndex()
        with pytest.raises(ValueError):
            index.insert(Product(name="x", brand="b", category="c", price=1.0))
        assert len(index) == 0

    def test_next_id_continues_after_loaded_ids(self):
        index = ProductIndex()
        index.insert(_stored(5))
        assert index.next_id() == 6

    def test_get_returns_copy(self):
        index = ProductIndex()
        index.insert(_stored(1))
        copy = index.get(1)
        copy.price = 99.0
        assert index.get_stored(1).price == 10.0

    def test_price_range_inclusive(self):
        index = ProductIndex()
        for pid, price in ((1, 50.0), (2, 200.0), (3, 800.0)):
            index.insert(_stored(pid, price=price))
        assert [p.id for p in index.by_price_range(100, 500)] == [2]
        assert [p.id for p in index.by_price_range(200, 800)] == [2, 3]


class TestUserIndex:
    def test_insert_and_lookup(self):
        index = UserIndex()
        user = User(id=index.next_id(), username="bob", password="pw12")
        index.insert(user)
        assert index.by_username("bob") is user
        assert index.by_id(1) is user
        assert len(index) == 1

    def test_insert_without_id_rejected(self):
        with pytest.raises(ValueError):
            UserIndex().insert(User(username="bob", password="pw12"))

    def test_remove(self):
        index = UserIndex()
        user = User(id=1, username="bob", password="pw12")
        index.insert(user)
        index.remove(user)
        assert index.by_username("bob") is None
        assert index.all() == []
