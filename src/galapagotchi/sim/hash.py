from __future__ import annotations

import hashlib
import json
from typing import Any

HASH_EXCLUDED_FIELDS = {"island_hash"}


def canonical_digest(payload: Any) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def island_hash(payload: dict[str, Any]) -> str:
    hash_payload = {key: value for key, value in payload.items() if key not in HASH_EXCLUDED_FIELDS}
    return canonical_digest(hash_payload)


def genome_hash(genome_data: dict[str, Any]) -> str:
    return canonical_digest(genome_data)
