"""
querycache/serialization.py

Lossless JSON encoding for cached payloads.

Values plain JSON cannot carry (dates, Decimal, bytes, tuples, dicts with
non-string keys) are written as tagged objects {"__type__": ..., ...} and
restored on load, so get() hands back what set() was given.
"""
import base64
import datetime
import json
from decimal import Decimal
from typing import Any

import pandas as pd

from querycache.errors import SerializationError

TAG = "__type__"


def _encode(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, list):
        return [_encode(v) for v in obj]
    if isinstance(obj, tuple):
        return {TAG: "tuple", "items": [_encode(v) for v in obj]}
    if isinstance(obj, dict):
        if all(isinstance(k, str) for k in obj) and TAG not in obj:
            return {k: _encode(v) for k, v in obj.items()}
        return {TAG: "dict", "items": [[_encode(k), _encode(v)] for k, v in obj.items()]}
    if obj is pd.NaT:
        return {TAG: "nat"}
    # pd.Timestamp is a datetime subclass; check it first
    if isinstance(obj, pd.Timestamp):
        return {TAG: "timestamp", "value": obj.isoformat()}
    if isinstance(obj, datetime.datetime):
        return {TAG: "datetime", "value": obj.isoformat()}
    if isinstance(obj, datetime.date):
        return {TAG: "date", "value": obj.isoformat()}
    if isinstance(obj, datetime.time):
        return {TAG: "time", "value": obj.isoformat()}
    if isinstance(obj, datetime.timedelta):
        return {TAG: "timedelta", "value": [obj.days, obj.seconds, obj.microseconds]}
    if isinstance(obj, Decimal):
        return {TAG: "decimal", "value": str(obj)}
    if isinstance(obj, (bytes, bytearray)):
        return {TAG: "bytes", "value": base64.b64encode(bytes(obj)).decode("ascii")}
    if hasattr(obj, "item") and hasattr(obj, "dtype"):  # numpy scalar
        return _encode(obj.item())
    raise TypeError(f"Object of type {obj.__class__.__name__} is not cacheable")


def _hashable(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    return value


_DECODERS = {
    "tuple": lambda o: tuple(o["items"]),
    "dict": lambda o: {_hashable(k): v for k, v in o["items"]},
    "nat": lambda o: pd.NaT,
    "timestamp": lambda o: pd.Timestamp(o["value"]),
    "datetime": lambda o: datetime.datetime.fromisoformat(o["value"]),
    "date": lambda o: datetime.date.fromisoformat(o["value"]),
    "time": lambda o: datetime.time.fromisoformat(o["value"]),
    "timedelta": lambda o: datetime.timedelta(*o["value"]),
    "decimal": lambda o: Decimal(o["value"]),
    "bytes": lambda o: base64.b64decode(o["value"]),
}


def _decode(obj: dict) -> Any:
    tag = obj.get(TAG)
    if tag is None:
        return obj
    try:
        return _DECODERS[tag](obj)
    except KeyError as e:
        raise ValueError(f"malformed cache value tagged {tag!r}") from e


def dumps(data: Any) -> bytes:
    try:
        return json.dumps(_encode(data), separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(str(e)) from e


def loads(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"), object_hook=_decode)
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        raise SerializationError(str(e)) from e
