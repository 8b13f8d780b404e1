"""
querycache/query.py

Parameterized SQL statements:
- Query holds an immutable SQL template with :name placeholders
- Parameters are literal values, or getters read when the query is compiled
- compile() quotes every value through the database and substitutes all
  placeholders in a single pass
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from querycache.result import RowShape


class QueryType(enum.Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    OTHER = "other"


@dataclass(frozen=True)
class CachePolicy:
    # None -> the cache store's default lifetime
    lifetime: Optional[int] = None
    force: bool = False


class BoundParameter:
    """A parameter whose value is fetched at compile time."""

    __slots__ = ("getter",)

    def __init__(self, getter: Callable[[], Any]):
        if not callable(getter):
            raise TypeError("bound parameters need a zero-argument callable")
        self.getter = getter

    def value(self) -> Any:
        return self.getter()


def _token(name: str) -> str:
    return name if name.startswith(":") else f":{name}"


class Query:
    def __init__(self, kind: Union[QueryType, str], sql: str):
        self._kind = QueryType(kind)
        self._sql = sql
        self._parameters: Dict[str, Any] = {}
        self._as_object: RowShape = False
        self._object_params: Sequence[Any] = ()
        self._cache_policy: Optional[CachePolicy] = None

    def __repr__(self) -> str:
        return f"Query({self._kind.name}, {self._sql!r})"

    @property
    def kind(self) -> QueryType:
        return self._kind

    @property
    def sql(self) -> str:
        """The uncompiled template."""
        return self._sql

    @property
    def parameters(self) -> Dict[str, Any]:
        return dict(self._parameters)

    @property
    def cache_policy(self) -> Optional[CachePolicy]:
        return self._cache_policy

    @property
    def as_object_class(self) -> RowShape:
        return self._as_object

    @property
    def object_params(self) -> Sequence[Any]:
        return self._object_params

    # ---------------- Parameters ----------------
    def set_parameter(self, name: str, value: Any) -> "Query":
        """Set a literal value, replacing any earlier value or binding."""
        self._parameters[_token(name)] = value
        return self

    def bind_parameter(self, name: str, getter: Callable[[], Any]) -> "Query":
        """
        Bind `name` to `getter`; its return value is used each time the query
        is compiled, so a single Query can be re-run as the source changes:

            row = {"id": 0}
            q = Query(QueryType.SELECT, "SELECT * FROM t WHERE id = :id")
            q.bind_parameter("id", lambda: row["id"])
            for row["id"] in range(3):
                q.execute(db)
        """
        self._parameters[_token(name)] = BoundParameter(getter)
        return self

    def set_parameters(self, params: Mapping[str, Any]) -> "Query":
        for name, value in params.items():
            self.set_parameter(name, value)
        return self

    def values(self) -> Dict[str, Any]:
        """Current parameter values, bound parameters resolved."""
        return {
            token: value.value() if isinstance(value, BoundParameter) else value
            for token, value in self._parameters.items()
        }

    # ---------------- Caching ----------------
    def set_cache_policy(self, lifetime: Optional[int], force: bool = False) -> "Query":
        """
        Cache the result for `lifetime` seconds (SELECT only).
        0 serves existing entries without writing new ones; a negative value
        drops the entry before executing. `force` executes even on a hit.
        """
        self._cache_policy = CachePolicy(lifetime=lifetime, force=force)
        return self

    def cached(self, lifetime: int = 0, force: bool = False) -> "Query":
        """Like set_cache_policy, but 0 means the store's default lifetime."""
        return self.set_cache_policy(lifetime or None, force)

    # ---------------- Result shape ----------------
    def as_assoc(self) -> "Query":
        self._as_object = False
        self._object_params = ()
        return self

    def as_object(self, cls: RowShape = True, params: Optional[Sequence[Any]] = None) -> "Query":
        self._as_object = cls
        if params:
            self._object_params = tuple(params)
        return self

    # ---------------- Compile / execute ----------------
    def compile(self, db) -> str:
        """
        Return the SQL with every known placeholder replaced by its quoted value.

        `db` is anything with a quote(value) method, or the quoting function
        itself. Unknown placeholders are left as they are.
        """
        quote = getattr(db, "quote", db)
        sql = self._sql
        if self._parameters:
            quoted = {token: quote(value) for token, value in self.values().items()}
            # longest token first, whole tokens only (:id must not match :ident)
            pattern = re.compile(
                r"(?<![\w:])(?:"
                + "|".join(re.escape(t) for t in sorted(quoted, key=len, reverse=True))
                + r")(?!\w)"
            )
            sql = pattern.sub(lambda m: quoted[m.group(0)], sql)
        return sql

    def execute(self, db, cache=None, as_object: Optional[RowShape] = None, object_params=None):
        """
        Run the query on `db`, going through `cache` (a CacheStore) when given.

        Returns a Result for SELECT queries, (last_id, rowcount) for INSERT and
        the affected row count otherwise.
        """
        from querycache.executor import CachingQueryExecutor

        return CachingQueryExecutor(cache).execute(
            self, db, as_object=as_object, object_params=object_params
        )
