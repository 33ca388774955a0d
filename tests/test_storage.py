"""Tests for on-device storage."""

import os

import pytest

from fintrack.services.storage import InMemoryStore, JsonFileStore, PersistenceError


class TestJsonFileStore:
    """Tests for the directory-backed store."""

    def test_absent_key(self, tmp_path):
        store = JsonFileStore(data_dir=tmp_path, write_attempts=1)
        assert store.load("fintrack_cards") is None

    def test_save_and_load(self, tmp_path):
        store = JsonFileStore(data_dir=tmp_path, write_attempts=1)
        store.save("fintrack_cards", '[{"id": "c1"}]')
        assert store.load("fintrack_cards") == '[{"id": "c1"}]'
        assert (tmp_path / "fintrack_cards.json").exists()

    def test_save_replaces_value(self, tmp_path):
        store = JsonFileStore(data_dir=tmp_path, write_attempts=1)
        store.save("k", "first")
        store.save("k", "second")
        assert store.load("k") == "second"

    def test_creates_missing_directory(self, tmp_path):
        data_dir = tmp_path / "nested" / "fintrack"
        store = JsonFileStore(data_dir=data_dir, write_attempts=1)
        store.save("k", "[]")
        assert store.load("k") == "[]"
        assert store.data_dir == data_dir

    def test_no_temporary_files_left(self, tmp_path):
        store = JsonFileStore(data_dir=tmp_path, write_attempts=1)
        store.save("k", "[]")
        assert sorted(os.listdir(tmp_path)) == ["k.json"]

    def test_transient_write_error_is_retried(self, tmp_path, monkeypatch):
        """Test that a failing first write succeeds on a later attempt."""
        store = JsonFileStore(data_dir=tmp_path, write_attempts=3, retry_wait_seconds=0)
        real_replace = os.replace
        calls = {"count": 0}

        def flaky_replace(src, dst):
            calls["count"] += 1
            if calls["count"] == 1:
                raise OSError("device busy")
            return real_replace(src, dst)

        monkeypatch.setattr(os, "replace", flaky_replace)
        store.save("k", "[]")

        assert calls["count"] == 2
        assert store.load("k") == "[]"

    def test_persistent_write_error(self, tmp_path, monkeypatch):
        """Test that exhausted retries surface as PersistenceError."""
        store = JsonFileStore(data_dir=tmp_path, write_attempts=2, retry_wait_seconds=0)

        def broken_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(PersistenceError) as exc_info:
            store.save("k", "[]")

        assert exc_info.value.key == "k"
        assert store.load("k") is None

    def test_unreadable_slot(self, tmp_path):
        """Test that a directory in place of a file is a read error."""
        (tmp_path / "k.json").mkdir()
        store = JsonFileStore(data_dir=tmp_path, write_attempts=1)
        with pytest.raises(PersistenceError):
            store.load("k")


class TestInMemoryStore:
    """Tests for the dict-backed store."""

    def test_round_trip(self):
        store = InMemoryStore()
        assert store.load("k") is None
        store.save("k", "v")
        assert store.load("k") == "v"
        assert store.keys() == ["k"]

    def test_initial_values(self):
        store = InMemoryStore({"k": "v"})
        assert store.load("k") == "v"
