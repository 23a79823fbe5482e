"""Application idempotency – canonical request fingerprints."""
from __future__ import annotations

import dataclasses
import enum
import hashlib
import json
from datetime import date, datetime, time
from typing import Any


def _plain(value: Any) -> Any:
    dump = getattr(value, "model_dump", None)
    if callable(dump) and not isinstance(value, type):
        # python mode keeps sets as sets so they can be ordered below
        return _plain(dump())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _plain(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        items = [_plain(v) for v in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True, default=str))
    if isinstance(value, enum.Enum):
        return _plain(value.value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def to_jsonable(value: Any) -> Any:
    """Reduce pydantic models / dataclasses to plain JSON-compatible data.

    Sets become sorted lists; their iteration order depends on the
    interpreter's hash seed and must not leak into a fingerprint.
    """
    return json.loads(json.dumps(_plain(value), default=str))


def canonical_json(body: Any) -> str:
    """Serialise *body* with keys sorted at every depth."""
    return json.dumps(to_jsonable(body), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_request(body: Any) -> str:
    """Order-independent SHA-256 of a request body."""
    return hashlib.sha256(canonical_json(body).encode("utf-8")).hexdigest()


__all__ = ["canonical_json", "hash_request", "to_jsonable"]
