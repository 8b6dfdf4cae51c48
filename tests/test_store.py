# tests/test_store.py
"""Tests for registry persistence and transactional rollback."""

import json
import tempfile
from pathlib import Path

import pytest

from catalogreg import (
    AdministratorMismatch,
    AssetRegistry,
    RegistryConfig,
    RegistryStore,
    StoreCorrupted,
)

ADMIN = "ADMIN"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config():
    return RegistryConfig(administrator=ADMIN, journal=False)


class TestRegistryStore:
    """Tests for the raw store."""

    def test_creates_directory(self, temp_dir):
        store = RegistryStore(temp_dir / "new_store")
        assert store.store_dir.exists()
        assert store.persistent

    def test_in_memory_store(self):
        store = RegistryStore()
        assert not store.persistent
        store.save()  # no-op

    def test_rollback_undoes_changes(self):
        """rollback() should undo every change since begin()."""
        store = RegistryStore()
        store.bind_administrator(ADMIN)
        store.begin()
        asset_id = store.allocate_id()
        store.set_owner(asset_id, ADMIN)
        store.set_metadata(asset_id, "m")
        store.rollback()
        assert store.next_id == 0
        assert store.get_owner(asset_id) is None
        assert store.get_metadata(asset_id) is None

    def test_rollback_restores_overwritten_and_deleted(self):
        """Prior values come back, including keys touched twice."""
        store = RegistryStore()
        store.set_owner(store.allocate_id(), "alice")
        store.set_metadata(1, "old")
        store.begin()
        store.set_owner(1, "bob")
        store.set_owner(1, "carol")
        store.delete_metadata(1)
        store.rollback()
        assert store.get_owner(1) == "alice"
        assert store.get_metadata(1) == "old"
        assert store.next_id == 1

    def test_undo_log_covers_only_touched_keys(self):
        """A transition records prior values for what it changes, not the whole state."""
        store = RegistryStore()
        for i in range(50):
            store.set_owner(store.allocate_id(), f"owner{i}")
        store.begin()
        store.set_owner(7, "bob")
        assert len(store._undo) == 1
        store.commit()
        assert store._undo is None
        store.rollback()
        assert store.get_owner(7) == "bob"

    def test_corrupt_index_raises(self, temp_dir):
        """A damaged index should not be silently reset."""
        (temp_dir / "registry.json").write_text("{not json")
        with pytest.raises(StoreCorrupted):
            RegistryStore(temp_dir)

    def test_out_of_range_id_raises(self, temp_dir):
        """Owned ids above next_id violate the counter invariant."""
        data = {"version": "1.0", "administrator": ADMIN, "next_id": 1,
                "metadata": {}, "owners": {"5": ADMIN}}
        (temp_dir / "registry.json").write_text(json.dumps(data))
        with pytest.raises(StoreCorrupted):
            RegistryStore(temp_dir)


class TestPersistence:
    """Tests for durable registries."""

    def test_state_survives_reload(self, temp_dir, config):
        """Reopening the store should see identical state."""
        registry = AssetRegistry(config, store_dir=temp_dir)
        registry.batch_create(ADMIN, ["a", "b", "c"])
        registry.transfer(ADMIN, 2, "B")
        registry.update_metadata("B", 2, "b2")
        registry.retire(ADMIN, 3)

        reopened = AssetRegistry(config, store_dir=temp_dir)
        assert reopened.asset_count() == 3
        assert reopened.get_owner(1) == ADMIN
        assert reopened.get_owner(2) == "B"
        assert reopened.get_metadata(2) == "b2"
        assert not reopened.exists(3)
        assert reopened.get_metadata(3) == "c"

    def test_id_sequence_continues(self, temp_dir, config):
        """Ids are never reused across reloads."""
        registry = AssetRegistry(config, store_dir=temp_dir)
        registry.create(ADMIN, "a")
        registry.retire(ADMIN, 1)

        reopened = AssetRegistry(config, store_dir=temp_dir)
        assert reopened.create(ADMIN, "b") == 2

    def test_index_format(self, temp_dir, config):
        registry = AssetRegistry(config, store_dir=temp_dir)
        registry.create(ADMIN, "a")
        data = json.loads((temp_dir / "registry.json").read_text())
        assert data["version"] == "1.0"
        assert data["administrator"] == ADMIN
        assert data["next_id"] == 1
        assert data["owners"] == {"1": ADMIN}
        assert data["metadata"] == {"1": "a"}

    def test_administrator_mismatch(self, temp_dir, config):
        """A store belongs to the administrator it was created with."""
        AssetRegistry(config, store_dir=temp_dir)
        other = RegistryConfig(administrator="OTHER", journal=False)
        with pytest.raises(AdministratorMismatch) as exc_info:
            AssetRegistry(other, store_dir=temp_dir)
        assert exc_info.value.stored == ADMIN
        assert exc_info.value.configured == "OTHER"

    def test_no_temp_files_left(self, temp_dir, config):
        registry = AssetRegistry(config, store_dir=temp_dir)
        registry.create(ADMIN, "a")
        assert [p.name for p in temp_dir.iterdir()] == ["registry.json"]


class TestRollback:
    """Tests for all-or-nothing behaviour when persisting fails."""

    def test_failed_save_restores_state(self, temp_dir, config, monkeypatch):
        """If the index cannot be written, the transition is undone."""
        registry = AssetRegistry(config, store_dir=temp_dir)
        registry.create(ADMIN, "a")

        def fail_save():
            raise OSError("disk full")

        monkeypatch.setattr(registry.store, "save", fail_save)
        with pytest.raises(OSError):
            registry.create(ADMIN, "b")
        with pytest.raises(OSError):
            registry.transfer(ADMIN, 1, "B")

        assert registry.asset_count() == 1
        assert registry.get_metadata(2) is None
        assert registry.get_owner(1) == ADMIN

    def test_failed_save_keeps_disk_state(self, temp_dir, config, monkeypatch):
        """Disk state is untouched and later transitions carry on from it."""
        registry = AssetRegistry(config, store_dir=temp_dir)
        registry.create(ADMIN, "a")
        real_save = registry.store.save

        def fail_save():
            raise OSError("boom")

        monkeypatch.setattr(registry.store, "save", fail_save)
        with pytest.raises(OSError):
            registry.create(ADMIN, "b")
        assert AssetRegistry(config, store_dir=temp_dir).asset_count() == 1

        monkeypatch.setattr(registry.store, "save", real_save)
        assert registry.create(ADMIN, "c") == 2
        assert AssetRegistry(config, store_dir=temp_dir).get_metadata(2) == "c"
