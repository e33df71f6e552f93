"""
Tests for rivermind.storage — the DocumentStore contract.

Every test in the contract classes runs against both adapters (in-memory and
SQLite) through the ``any_store`` fixture, so the two stay interchangeable.

Covers:
- get / set / update / add / delete / increment
- update and increment on a missing document raise KeyError
- query filters, ordering, limit, offset, and missing-field handling
- field-name validation
- SQLite specifics: persistence across reopen, use before initialize
"""

from __future__ import annotations

import pytest

from rivermind.errors import StoreNotInitializedError
from rivermind.storage import Filter, namespaced
from rivermind.storage.sqlite import SQLiteDocumentStore


def _seed(store, collection: str = "things") -> dict[str, str]:
    ids = {}
    for name, rank, kind in [("a", 3, "x"), ("b", 1, "y"), ("c", 2, "x"), ("d", None, "y")]:
        doc = {"name": name, "kind": kind}
        if rank is not None:
            doc["rank"] = rank
        ids[name] = store.add(collection, doc)
    return ids


# ---------------------------------------------------------------------------
# Single-document access
# ---------------------------------------------------------------------------

class TestDocumentAccess:
    def test_get_missing_returns_none(self, any_store):
        assert any_store.get("things", "nope") is None

    def test_set_then_get(self, any_store):
        any_store.set("things", "one", {"a": 1, "nested": {"b": [1, 2]}})
        assert any_store.get("things", "one") == {"a": 1, "nested": {"b": [1, 2]}}

    def test_set_replaces_whole_document(self, any_store):
        any_store.set("things", "one", {"a": 1, "b": 2})
        any_store.set("things", "one", {"c": 3})
        assert any_store.get("things", "one") == {"c": 3}

    def test_update_merges_top_level_fields(self, any_store):
        any_store.set("things", "one", {"a": 1, "b": 2})
        any_store.update("things", "one", {"b": 20, "c": 30})
        assert any_store.get("things", "one") == {"a": 1, "b": 20, "c": 30}

    def test_update_missing_raises_key_error(self, any_store):
        with pytest.raises(KeyError):
            any_store.update("things", "ghost", {"a": 1})
        assert any_store.get("things", "ghost") is None

    def test_add_generates_unique_ids(self, any_store):
        first = any_store.add("things", {"n": 1})
        second = any_store.add("things", {"n": 2})
        assert first != second
        assert any_store.get("things", first) == {"n": 1}

    def test_delete(self, any_store):
        doc_id = any_store.add("things", {"n": 1})
        assert any_store.delete("things", doc_id) is True
        assert any_store.get("things", doc_id) is None
        assert any_store.delete("things", doc_id) is False

    def test_increment_existing_and_absent_field(self, any_store):
        any_store.set("things", "one", {"count": 2})
        any_store.increment("things", "one", "count", 3)
        any_store.increment("things", "one", "other")
        doc = any_store.get("things", "one")
        assert doc["count"] == 5
        assert doc["other"] == 1

    def test_increment_missing_document_raises(self, any_store):
        with pytest.raises(KeyError):
            any_store.increment("things", "ghost", "count")

    def test_collections_are_isolated(self, any_store):
        any_store.set("river/memories", "m", {"owner": "river"})
        any_store.set("entity/memories", "m", {"owner": "entity"})
        assert any_store.get("river/memories", "m") == {"owner": "river"}
        assert any_store.get("entity/memories", "m") == {"owner": "entity"}

    def test_returned_documents_are_copies(self, any_store):
        any_store.set("things", "one", {"items": [1]})
        doc = any_store.get("things", "one")
        doc["items"].append(2)
        assert any_store.get("things", "one") == {"items": [1]}

    def test_update_rejects_unsafe_field_names(self, any_store):
        any_store.set("things", "one", {"a": 1})
        with pytest.raises(ValueError):
            any_store.update("things", "one", {"a') OR 1=1 --": 2})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestQuery:
    def test_requires_limit_and_applies_it(self, any_store):
        _seed(any_store)
        assert len(any_store.query("things", limit=2)) == 2

    def test_unordered_query_uses_insertion_order(self, any_store):
        _seed(any_store)
        names = [d["name"] for _, d in any_store.query("things", limit=10)]
        assert names == ["a", "b", "c", "d"]

    def test_order_ascending_puts_missing_first(self, any_store):
        _seed(any_store)
        names = [d["name"] for _, d in any_store.query("things", order_by="rank", limit=10)]
        assert names == ["d", "b", "c", "a"]

    def test_order_descending_puts_missing_last(self, any_store):
        _seed(any_store)
        rows = any_store.query("things", order_by="rank", descending=True, limit=10)
        assert [d["name"] for _, d in rows] == ["a", "c", "b", "d"]

    def test_offset(self, any_store):
        _seed(any_store)
        rows = any_store.query("things", order_by="rank", descending=True, limit=2, offset=1)
        assert [d["name"] for _, d in rows] == ["c", "b"]

    def test_equality_filter(self, any_store):
        _seed(any_store)
        rows = any_store.query("things", where=[Filter("kind", "==", "x")], limit=10)
        assert sorted(d["name"] for _, d in rows) == ["a", "c"]

    def test_range_filter_skips_missing_field(self, any_store):
        _seed(any_store)
        rows = any_store.query("things", where=[Filter("rank", "<", 3)], limit=10)
        assert sorted(d["name"] for _, d in rows) == ["b", "c"]

    def test_combined_filters(self, any_store):
        _seed(any_store)
        rows = any_store.query(
            "things",
            where=[Filter("kind", "==", "x"), Filter("rank", ">=", 3)],
            limit=10,
        )
        assert [d["name"] for _, d in rows] == ["a"]

    def test_none_filter_matches_missing_field(self, any_store):
        _seed(any_store)
        missing = any_store.query("things", where=[Filter("rank", "==", None)], limit=10)
        present = any_store.query("things", where=[Filter("rank", "!=", None)], limit=10)
        assert [d["name"] for _, d in missing] == ["d"]
        assert len(present) == 3

    def test_boolean_filter(self, any_store):
        any_store.add("flags", {"done": False, "n": 1})
        any_store.add("flags", {"done": True, "n": 2})
        rows = any_store.query("flags", where=[Filter("done", "==", False)], limit=10)
        assert [d["n"] for _, d in rows] == [1]

    def test_returns_ids_that_resolve(self, any_store):
        ids = _seed(any_store)
        for doc_id, doc in any_store.query("things", limit=10):
            assert ids[doc["name"]] == doc_id

    def test_empty_collection(self, any_store):
        assert any_store.query("nothing", order_by="rank", limit=5) == []


class TestFilter:
    def test_rejects_unknown_operator(self):
        with pytest.raises(ValueError):
            Filter("rank", "LIKE", 1)

    def test_rejects_range_against_none(self):
        with pytest.raises(ValueError):
            Filter("rank", "<", None)

    def test_rejects_unsafe_field(self):
        with pytest.raises(ValueError):
            Filter("rank'; DROP TABLE documents; --", "==", 1)

    def test_namespaced_lowercases_agent(self):
        assert namespaced("RIVER", "memories") == "river/memories"
        assert namespaced(" Entity ", "state") == "entity/state"


# ---------------------------------------------------------------------------
# SQLite adapter specifics
# ---------------------------------------------------------------------------

class TestSQLiteDocumentStore:
    def test_persists_across_reopen(self, tmp_path):
        path = tmp_path / "persist.db"
        first = SQLiteDocumentStore(path)
        first.initialize()
        first.set("things", "one", {"a": 1})
        first.close()

        second = SQLiteDocumentStore(path)
        second.initialize()
        try:
            assert second.get("things", "one") == {"a": 1}
        finally:
            second.close()

    def test_use_before_initialize_raises(self, tmp_path):
        db = SQLiteDocumentStore(tmp_path / "never.db")
        with pytest.raises(StoreNotInitializedError):
            db.get("things", "one")

    def test_initialize_is_idempotent(self, sqlite_store):
        sqlite_store.set("things", "one", {"a": 1})
        sqlite_store.initialize()
        assert sqlite_store.get("things", "one") == {"a": 1}

    def test_creates_parent_directory(self, tmp_path):
        db = SQLiteDocumentStore(tmp_path / "nested" / "dir" / "x.db")
        db.initialize()
        try:
            assert (tmp_path / "nested" / "dir" / "x.db").exists()
        finally:
            db.close()
