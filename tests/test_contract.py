"""Properties every ``KVStore`` backend honours."""

from __future__ import annotations

import pytest

from kvstores.store import KVStore


class TestContract:
    def test_backends_satisfy_protocol(self, store):
        assert isinstance(store, KVStore)

    def test_set_then_exists(self, store):
        store.set("k", "v")
        assert store.exists("k") is True

    def test_delete_then_not_exists(self, store):
        store.set("k", "v")
        store.delete("k")
        assert store.exists("k") is False

    def test_delete_absent_key(self, store):
        store.delete("never-set")  # no error
        assert store.exists("never-set") is False

    def test_get_absent_key(self, store):
        assert store.get("never-set") is None

    def test_get_returns_scalar(self, store):
        store.set("greeting", "hello")
        assert store.get("greeting") == "hello"

    def test_flush_clears_everything(self, store):
        store.set("a", "1")
        store.set_map("b", {"x": "1"})
        store.set_slice("c", ["x"])
        store.flush()
        for key in ("a", "b", "c"):
            assert store.exists(key) is False

    def test_get_map_never_set(self, store):
        assert store.get_map("never-set") is None

    def test_get_slice_never_set(self, store):
        assert store.get_slice("never-set") is None

    def test_map_round_trip_keys(self, store):
        store.set_map("user", {"name": "ada", "lang": "python"})
        assert store.get_map("user") == {"name": "ada", "lang": "python"}

    def test_set_map_replaces_previous_value(self, store):
        store.set_map("user", {"name": "ada", "stale": "yes"})
        store.set_map("user", {"name": "grace"})
        assert store.get_map("user") == {"name": "grace"}

    def test_slice_then_append_membership(self, store):
        store.set_slice("tags", ["x", "y"])
        store.append_slice("tags", "z")
        assert set(store.get_slice("tags")) == {"x", "y", "z"}

    def test_context_manager_closes(self, store):
        with store as s:
            s.set("k", "v")


@pytest.mark.parametrize("values", [["a"], ["a", "b", "c"]])
def test_append_many_values(store, values):
    store.set_slice("k", ["seed"])
    store.append_slice("k", *values)
    assert set(store.get_slice("k")) == {"seed", *values}
