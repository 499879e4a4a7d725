# src/cache/fingerprint.py - v3
"""Content fingerprinting shared by the manifest, the change cache and revisioning.

Every digest here uses the same algorithm (MD5 hex), whether it covers a
serialized list of paths or the bytes of a single file. Digests are
order-sensitive: callers must hand in sequences in a canonical order.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Sequence
from pathlib import Path

from polyship.core.errors import FingerprintComputationError

_CHUNK_SIZE = 1024 * 1024


def digest_bytes(data: bytes) -> str:
    """MD5 hex digest of raw bytes."""
    return hashlib.md5(data).hexdigest()  # noqa: S324


def fingerprint(items: Sequence[str]) -> str:
    """Digest an ordered sequence of strings.

    The sequence is serialized as a compact JSON array, so the same items
    in a different order give a different digest.
    """
    payload = json.dumps(list(items), separators=(",", ":"), ensure_ascii=False)
    return digest_bytes(payload.encode("utf-8"))


def content_token(data: bytes, length: int = 8) -> str:
    """Short, filename-safe token derived from content."""
    if length <= 0:
        raise ValueError("token length must be positive")
    return digest_bytes(data)[:length]


def file_digest(path: Path) -> str:
    """Streaming digest of a file's bytes.

    Raises:
        FingerprintComputationError: If the file cannot be read.
    """
    h = hashlib.md5()  # noqa: S324
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                h.update(chunk)
    except OSError as exc:
        raise FingerprintComputationError(path, exc.strerror or str(exc)) from exc
    return h.hexdigest()


def file_token(path: Path, length: int = 8) -> str:
    """content_token() of a file on disk."""
    return file_digest(path)[:length]
