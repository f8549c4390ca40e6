"""Content fingerprints for plan templates."""

import hashlib
import json
from typing import Any

FINGERPRINT_LENGTH = 16


def canonical_json(value: Any) -> str:
    """Serialise value compactly, preserving key order, for hashing."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def content_fingerprint(value: Any) -> str:
    """First 16 hex chars of SHA-256 over the serialised content."""
    digest = hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]
