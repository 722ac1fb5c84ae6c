"""
Unit tests for RecordStore

These tests run against an in-memory SQLite datastore.
"""
import pytest
from unittest.mock import patch

from petpos.core.exceptions import ConstraintViolation, StorageUnavailable
from petpos.core.record_store import (
    CATEGORIES,
    ORDERS,
    PRODUCTS,
    SCHEMA_VERSION,
    RecordStore,
    open_record_store,
)


def _product(record_id, barcode, name="Pedigree", category=None):
    return {"id": record_id, "barcode": barcode, "name": name, "category": category}


class TestRecordStoreLifecycle:
    """Test opening and closing the store"""

    def test_open_creates_all_collections(self, store):
        """A fresh store has the three collections, all empty"""
        assert store.is_open
        assert set(store.collections) == {PRODUCTS, ORDERS, CATEGORIES}
        for collection in store.collections:
            assert store.count(collection) == 0

    def test_reopen_file_keeps_records(self, tmp_path):
        """Records written to a file datastore survive close and reopen"""
        url = f"sqlite:///{tmp_path / 'pos.db'}"

        first = open_record_store(url)
        first.add(PRODUCTS, _product("p1", "111"))
        first.advance_sequence("order_number", 7)
        first.close()

        second = open_record_store(url)
        try:
            assert second.get(PRODUCTS, "p1")["barcode"] == "111"
            assert second.get_sequence("order_number") == 7
        finally:
            second.close()

    def test_operations_on_closed_store_raise(self):
        """Using a store that was never opened is StorageUnavailable"""
        store = RecordStore("sqlite://")

        with pytest.raises(StorageUnavailable):
            store.get_all(PRODUCTS)

    def test_newer_schema_version_is_refused(self, tmp_path):
        """A datastore written by a newer version is not opened"""
        url = f"sqlite:///{tmp_path / 'pos.db'}"
        store = open_record_store(url)
        with store._engine.begin() as conn:
            conn.execute(store._meta.update().values(value=str(SCHEMA_VERSION + 1)))
        store.close()

        with pytest.raises(StorageUnavailable) as exc_info:
            open_record_store(url)

        assert "newer" in exc_info.value.message

    def test_unreachable_file_raises_storage_unavailable(self, tmp_path):
        """A path that cannot be created is reported as StorageUnavailable"""
        url = f"sqlite:///{tmp_path / 'missing_dir' / 'pos.db'}"

        with pytest.raises(StorageUnavailable):
            open_record_store(url)


class TestRecordStoreWrites:
    """Test add / put / delete / clear"""

    def test_add_then_get(self, store):
        store.add(PRODUCTS, _product("p1", "111"))

        assert store.get(PRODUCTS, "p1") == _product("p1", "111")
        assert store.get(PRODUCTS, "missing") is None

    def test_add_existing_id_is_constraint_violation(self, store):
        store.add(PRODUCTS, _product("p1", "111"))

        with pytest.raises(ConstraintViolation) as exc_info:
            store.add(PRODUCTS, _product("p1", "222"))

        assert exc_info.value.index == "id"
        assert store.get(PRODUCTS, "p1")["barcode"] == "111"

    def test_unique_index_collision(self, store):
        """A second record with the same barcode is rejected and the first is unchanged"""
        store.add(PRODUCTS, _product("p1", "111", name="First"))

        with pytest.raises(ConstraintViolation) as exc_info:
            store.add(PRODUCTS, _product("p2", "111", name="Second"))

        assert exc_info.value.collection == PRODUCTS
        assert exc_info.value.index == "barcode"
        assert exc_info.value.value == "111"
        assert store.count(PRODUCTS) == 1
        assert store.get(PRODUCTS, "p1")["name"] == "First"

    def test_put_replaces_and_keeps_position(self, store):
        store.add(PRODUCTS, _product("p1", "111", name="A"))
        store.add(PRODUCTS, _product("p2", "222", name="B"))

        store.put(PRODUCTS, _product("p1", "111", name="A2"))

        assert [r["name"] for r in store.get_all(PRODUCTS)] == ["A2", "B"]

    def test_put_inserts_when_missing(self, store):
        store.put(CATEGORIES, {"id": "c1", "name": "Phụ kiện"})

        assert store.get(CATEGORIES, "c1") == {"id": "c1", "name": "Phụ kiện"}

    def test_put_unique_collision_with_other_record(self, store):
        store.add(PRODUCTS, _product("p1", "111"))
        store.add(PRODUCTS, _product("p2", "222"))

        with pytest.raises(ConstraintViolation):
            store.put(PRODUCTS, _product("p2", "111"))

        assert store.get(PRODUCTS, "p2")["barcode"] == "222"

    def test_record_without_id_is_rejected(self, store):
        with pytest.raises(ValueError):
            store.add(PRODUCTS, {"barcode": "111", "name": "No id"})

    def test_unknown_collection(self, store):
        with pytest.raises(ValueError):
            store.get_all("customers")

    def test_delete_missing_is_not_an_error(self, store):
        store.add(CATEGORIES, {"id": "c1", "name": "A"})

        store.delete(CATEGORIES, "c1")
        store.delete(CATEGORIES, "c1")

        assert store.count(CATEGORIES) == 0

    def test_clear_only_touches_one_collection(self, store):
        store.add(PRODUCTS, _product("p1", "111"))
        store.add(CATEGORIES, {"id": "c1", "name": "A"})

        store.clear(PRODUCTS)

        assert store.count(PRODUCTS) == 0
        assert store.count(CATEGORIES) == 1

    def test_unexpected_integrity_error_is_mapped(self, store):
        """IntegrityError raised by SQLite itself still surfaces as ConstraintViolation"""
        from sqlalchemy.exc import IntegrityError

        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: products.idx_barcode"))
        with patch.object(store, "_connect", side_effect=error):
            with pytest.raises(ConstraintViolation) as exc_info:
                store.add(PRODUCTS, _product("p9", "999"))

        assert exc_info.value.index == "barcode"
        assert exc_info.value.value == "999"


class TestRecordStoreIndexes:
    """Test secondary index lookups"""

    def test_get_by_index(self, store):
        store.add(PRODUCTS, _product("p1", "111", category="Chó"))
        store.add(PRODUCTS, _product("p2", "222", category="Mèo"))

        assert store.get_by_index(PRODUCTS, "barcode", "222")["id"] == "p2"
        assert store.get_by_index(PRODUCTS, "barcode", "333") is None

    def test_get_all_by_index_in_insertion_order(self, store):
        store.add(PRODUCTS, _product("p1", "111", category="Chó"))
        store.add(PRODUCTS, _product("p2", "222", category="Mèo"))
        store.add(PRODUCTS, _product("p3", "333", category="Chó"))

        records = store.get_all_by_index(PRODUCTS, "category", "Chó")

        assert [r["id"] for r in records] == ["p1", "p3"]

    def test_null_index_values_are_not_unique(self, store):
        """Records without an indexed field never collide with each other"""
        store.add(ORDERS, {"id": "o1", "items": []})
        store.add(ORDERS, {"id": "o2", "items": []})

        assert store.count(ORDERS) == 2
        assert store.get_by_index(ORDERS, "orderNumber", None) is None

    def test_unknown_index(self, store):
        with pytest.raises(ValueError):
            store.get_by_index(PRODUCTS, "price", 100)


class TestRecordStoreSequences:
    """Test persisted counters"""

    def test_missing_sequence_is_zero(self, store):
        assert store.get_sequence("order_number") == 0

    def test_advance_never_goes_backwards(self, store):
        assert store.advance_sequence("order_number", 5) == 5
        assert store.advance_sequence("order_number", 3) == 5
        assert store.advance_sequence("order_number", 6) == 6
        assert store.get_sequence("order_number") == 6

    def test_reset(self, store):
        store.advance_sequence("order_number", 5)

        store.reset_sequence("order_number")

        assert store.get_sequence("order_number") == 0
