# tests/unit/cache/test_change_cache.py - v2
"""Tests for cache/change_cache.py."""

from __future__ import annotations

from polyship.cache.change_cache import ChangeDetectionCache
from polyship.cache.fingerprint import digest_bytes
from polyship.cache.json_store import JsonCacheStore


class TestShouldProcess:
    def test_unknown_path_is_processed(self):
        cache = ChangeDetectionCache("styles")
        assert cache.should_process("styles/main.css", "abc")

    def test_same_digest_is_skipped(self):
        cache = ChangeDetectionCache("styles")
        cache.record("styles/main.css", "abc")
        assert not cache.should_process("styles/main.css", "abc")

    def test_changed_digest_is_processed(self):
        cache = ChangeDetectionCache("styles")
        cache.record("styles/main.css", "abc")
        assert cache.should_process("styles/main.css", "def")

    def test_missing_digest_is_processed(self):
        cache = ChangeDetectionCache("styles")
        cache.record("styles/main.css", "abc")
        assert cache.should_process("styles/main.css", None)


class TestDigest:
    def test_digest_of_readable_file(self, tmp_path):
        path = tmp_path / "a.css"
        path.write_bytes(b"a{}")
        assert ChangeDetectionCache("styles").digest(path) == digest_bytes(b"a{}")

    def test_unreadable_file_yields_none(self, tmp_path, caplog):
        cache = ChangeDetectionCache("styles")
        assert cache.digest(tmp_path / "gone.css") is None
        assert "reprocessed" in caplog.text


class TestPrune:
    def test_prune_removes_vanished_entries_under_prefix(self):
        cache = ChangeDetectionCache("styles")
        cache.record("styles/a.css", "1")
        cache.record("styles/b.css", "2")
        cache.record("elements/c.css", "3")

        pruned = cache.prune(["styles/a.css"], prefix="styles/")

        assert pruned == ["styles/b.css"]
        assert "styles/a.css" in cache
        assert "elements/c.css" in cache
        assert len(cache) == 2


class TestPersistence:
    def test_flush_and_reload(self, tmp_path):
        store = JsonCacheStore(tmp_path / "cache")
        cache = ChangeDetectionCache("styles", store)
        cache.record("styles/main.css", "abc")
        cache.flush()

        reloaded = ChangeDetectionCache("styles", store)
        assert not reloaded.should_process("styles/main.css", "abc")
        assert reloaded.entries["styles/main.css"].digest == "abc"

    def test_flush_without_store_is_noop(self):
        cache = ChangeDetectionCache("styles")
        cache.record("styles/main.css", "abc")
        cache.flush()
        assert cache.snapshot().entries["styles/main.css"].digest == "abc"
