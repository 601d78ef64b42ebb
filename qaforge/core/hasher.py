"""Canonical JSON serialization and digests.

Every JSON report is written through ``canonical_json_text`` so that the
same aggregate always produces byte-identical output.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def canonical_json_text(obj: Any) -> str:
    """Sorted, indented JSON for human-readable report files."""
    return json.dumps(obj, sort_keys=True, indent=2, ensure_ascii=True) + "\n"


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def content_digest(obj: Any) -> str:
    """Digest of a JSON-serializable object in ``sha256:<hex>`` form."""
    return f"sha256:{sha256_hex(canonical_json_bytes(obj))}"
