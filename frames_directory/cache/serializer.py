"""Serialization of cache entries.

Every cached value is wrapped as ``{"data": <value>}`` before it is written,
so a cached ``None`` (a negative lookup result) is distinguishable from a
missing key.

Special Type Handling:
    - pydantic models: dumped in JSON mode with their camelCase aliases
    - datetime/date/time: Converted to ISO format strings
    - Decimal: Converted to float
    - UUID: Converted to string
    - set: Converted to list

Usage:
    from frames_directory.cache.serializer import encode_entry, decode_entry

    raw = encode_entry(["alice", "bob"])
    entry = decode_entry(raw)
    entry.data  # ["alice", "bob"]
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value as stored under its key."""

    data: Any


def _json_default(obj: Any) -> Any:
    """
    Custom JSON encoder for special types.

    Raises:
        TypeError: If object type is not supported
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True)

    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()

    if isinstance(obj, Decimal):
        return float(obj)

    if isinstance(obj, UUID):
        return str(obj)

    if isinstance(obj, set):
        return list(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def serialize_json(data: Any) -> str:
    """
    Serialize data to a compact JSON string.

    Raises:
        ValueError: If serialization fails
    """
    try:
        return json.dumps(data, default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        logger.error(f"JSON serialization failed: {e}", exc_info=True)
        raise ValueError(f"Failed to serialize to JSON: {e}") from e


def deserialize_json(data: Union[str, bytes]) -> Any:
    """
    Deserialize data from a JSON string.

    Raises:
        ValueError: If deserialization fails
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"JSON deserialization failed: {e}", exc_info=True)
        raise ValueError(f"Failed to deserialize from JSON: {e}") from e


def encode_entry(data: Any) -> str:
    """Wrap ``data`` in a cache entry and serialize it."""
    return serialize_json({"data": data})


def decode_entry(raw: Optional[Union[str, bytes]]) -> Optional[CacheEntry]:
    """
    Parse a stored cache entry.

    Returns:
        The entry, or None for a missing key. A stored value that is not a
        ``{"data": ...}`` document is logged and treated as missing.
    """
    if raw is None:
        return None

    try:
        payload = deserialize_json(raw)
    except ValueError:
        return None

    if not isinstance(payload, dict) or "data" not in payload:
        logger.warning("Ignoring cache value without a 'data' field")
        return None

    return CacheEntry(data=payload["data"])
