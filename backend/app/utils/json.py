"""orjson-backed helpers for cache payloads and webhook bodies."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

import orjson as _orjson
from fastapi.encoders import jsonable_encoder


def _default(o: Any):
    if isinstance(o, Decimal):
        return float(o)
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    return str(o)


def dumps_bytes(obj: Any) -> bytes:
    return _orjson.dumps(obj, option=_orjson.OPT_NON_STR_KEYS, default=_default)


def dumps(obj: Any) -> str:
    """Compact UTF-8 JSON string; pydantic models and enums go through jsonable_encoder."""
    return dumps_bytes(jsonable_encoder(obj)).decode("utf-8")


def loads(data: str | bytes) -> Any:
    """Parse JSON text. Raises ``ValueError`` (``orjson.JSONDecodeError``) on bad input."""
    return _orjson.loads(data)
