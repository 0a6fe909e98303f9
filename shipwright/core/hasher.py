"""Content hashing helpers for artifact integrity checks."""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def file_sha256_hex(path: Path) -> str:
    """SHA-256 hex digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def content_address(path: Path) -> str:
    """Content-address a file.  Returns ``"sha256:<hex>"``."""
    return f"sha256:{file_sha256_hex(path)}"
