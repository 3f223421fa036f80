"""
Deterministic JSON serialization for reports and fingerprints.

Identical data produces identical bytes regardless of dict ordering.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import orjson


def _default_serializer(obj: Any) -> Any:
    """
    Serialize types not natively supported by orjson.

    Raises:
        TypeError: If object cannot be serialized.
    """
    if isinstance(obj, datetime):
        return obj.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json_dumps(obj: Any, *, indent: bool = False) -> str:
    """
    Serialize object to canonical JSON string.

    Keys are sorted; list order is preserved.

    Examples:
        >>> canonical_json_dumps({"b": 2, "a": 1})
        '{"a":1,"b":2}'
    """
    options = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS
    if indent:
        options |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=_default_serializer, option=options).decode("utf-8")


def canonical_json_loads(json_str: str | bytes) -> Any:
    """Parse a JSON string."""
    return orjson.loads(json_str)


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON bytes, for hashing."""
    return orjson.dumps(
        obj,
        default=_default_serializer,
        option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS,
    )
