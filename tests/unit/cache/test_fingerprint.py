# tests/unit/cache/test_fingerprint.py - v1
"""Tests for cache/fingerprint.py."""

from __future__ import annotations

import hashlib
import json

import pytest

from polyship.cache.fingerprint import (
    content_token,
    digest_bytes,
    file_digest,
    file_token,
    fingerprint,
)
from polyship.core.errors import FingerprintComputationError


class TestFingerprint:
    def test_matches_md5_of_compact_json(self):
        items = ["elements/elements.html", "index.html", "./"]
        expected = hashlib.md5(
            json.dumps(items, separators=(",", ":")).encode("utf-8")
        ).hexdigest()
        assert fingerprint(items) == expected

    def test_compact_serialization(self):
        assert fingerprint(["a", "b"]) == digest_bytes(b'["a","b"]')

    def test_order_sensitive(self):
        assert fingerprint(["a", "b"]) != fingerprint(["b", "a"])

    def test_deterministic(self):
        assert fingerprint(["x"]) == fingerprint(["x"])

    def test_non_ascii_kept_verbatim(self):
        assert fingerprint(["café.css"]) == digest_bytes('["café.css"]'.encode("utf-8"))


class TestContentToken:
    def test_prefix_of_digest(self):
        data = b"a{color:red}"
        assert content_token(data) == digest_bytes(data)[:8]
        assert len(content_token(data, 12)) == 12

    def test_rejects_non_positive_length(self):
        with pytest.raises(ValueError):
            content_token(b"x", 0)


class TestFileDigest:
    def test_digest_of_file(self, tmp_path):
        path = tmp_path / "main.css"
        path.write_bytes(b"a{color:red}")
        assert file_digest(path) == digest_bytes(b"a{color:red}")
        assert file_token(path, 6) == digest_bytes(b"a{color:red}")[:6]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FingerprintComputationError) as exc_info:
            file_digest(tmp_path / "missing.css")
        assert exc_info.value.path == tmp_path / "missing.css"
