# querycache/result.py
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Union

import pandas as pd

RowShape = Union[bool, type]


class Result:
    """
    Rows returned by a SELECT, shaped on the way out.

    Rows are kept as plain dicts; with `as_object` set they are hydrated into
    `as_object(*object_params, **row)` each time they are read. For True rows
    become SimpleNamespace objects and object_params are not used.
    """

    cached = False

    def __init__(
        self,
        rows: Iterable[Mapping[str, Any]],
        sql: str,
        as_object: RowShape = False,
        object_params: Optional[Sequence[Any]] = None,
    ):
        self._rows = tuple(dict(row) for row in rows)
        self.sql = sql
        self.as_object = as_object
        self.object_params = tuple(object_params or ())

    def _shape(self, row: Dict[str, Any]) -> Any:
        if not self.as_object:
            return dict(row)
        if self.as_object is True:
            # SimpleNamespace takes keyword arguments only
            return SimpleNamespace(**row)
        return self.as_object(*self.object_params, **row)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Any]:
        for row in self._rows:
            yield self._shape(row)

    def __getitem__(self, index: int) -> Any:
        return self._shape(self._rows[index])

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rows={len(self)}, sql={self.sql!r})"

    def as_array(self, key: Optional[str] = None, value: Optional[str] = None):
        """
        Plain associative rows, independent of the object shape:
        - no arguments -> list of row dicts
        - value only   -> list of that column
        - key only     -> {row[key]: row}
        - both         -> {row[key]: row[value]}
        """
        if key is None and value is None:
            return [dict(row) for row in self._rows]
        if key is None:
            return [row.get(value) for row in self._rows]
        if value is None:
            return {row.get(key): dict(row) for row in self._rows}
        return {row.get(key): row.get(value) for row in self._rows}

    def get(self, name: str, default: Any = None) -> Any:
        """Column `name` of the first row."""
        if not self._rows:
            return default
        return self._rows[0].get(name, default)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame.from_records(self.as_array())


class DatabaseResult(Result):
    """Result of a live execution."""


class CachedResult(Result):
    """Read-only result served from the cache store."""

    cached = True
