"""
Canonical JSON and SHA-256 fingerprints.

Engine trace fingerprints and plan checksums are computed from the same
canonical form: sorted keys, compact separators, and fixed renderings for
the domain types that plain ``json`` cannot encode.
"""

import dataclasses
import hashlib
import json
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _encode(obj: Any) -> Any:
    match obj:
        case Enum():
            return obj.value
        case Decimal():
            return str(obj.normalize())
        case date():
            return obj.isoformat()
        case UUID():
            return str(obj)
        case set() | frozenset():
            return sorted(obj, key=str)
        case _ if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
    raise TypeError(f"cannot canonicalize {type(obj).__name__}")


def canonicalize_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_encode)


def hash_payload(payload: Any) -> str:
    """64-character hex SHA-256 of ``canonicalize_json(payload)``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()
