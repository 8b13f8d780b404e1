"""
querycache/database.py

SQLAlchemy-backed database for Query:
- get_engine: build SQLAlchemy engine from a URL
- Database.quote: render Python values as SQL literals for the engine's dialect
- Database.execute: run compiled SQL (SELECT -> DatabaseResult via pandas)
- Database.identity: stable instance name + URL, used in cache keys
"""
from __future__ import annotations

import datetime
import logging
import time
from typing import Any, Optional, Sequence, Union

import pandas as pd
from sqlalchemy import create_engine, literal
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import QueuePool

from querycache.config import DatabaseConfig
from querycache.query import Query, QueryType
from querycache.result import DatabaseResult, RowShape

logger = logging.getLogger("querycache.database")


# ---------------- Engine ----------------
def get_engine(url: str) -> Engine:
    """Return a SQLAlchemy engine, with connection pooling for server databases."""
    if make_url(url).get_backend_name() == "sqlite":
        return create_engine(url, future=True)
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        future=True
    )


class Database:
    def __init__(self, engine: Union[Engine, str], name: str = "default"):
        self.engine = get_engine(engine) if isinstance(engine, str) else engine
        self.name = name

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "Database":
        return cls(config.url, name=config.name)

    def identity(self) -> str:
        return f"{self.name}:{self.engine.url.render_as_string(hide_password=True)}"

    def __repr__(self) -> str:
        return f"Database({self.identity()!r})"

    # ---------------- Quoting ----------------
    def quote(self, value: Any) -> str:
        """
        Quote a value for use in SQL:
        - None -> NULL
        - bool -> TRUE / FALSE
        - list/tuple -> (a, b, ...)
        - Query -> parenthesized subquery
        - dates/times -> quoted string
        - everything else through the dialect's literal rendering
        """
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, Query):
            return f"({value.compile(self)})"
        if isinstance(value, (list, tuple)):
            return "(" + ", ".join(self.quote(v) for v in value) + ")"
        if isinstance(value, (datetime.date, datetime.time)):
            value = str(value)
        compiled = literal(value).compile(
            dialect=self.engine.dialect,
            compile_kwargs={"literal_binds": True},
        )
        return str(compiled)

    # ---------------- Query Execution ----------------
    def execute(
        self,
        kind: Union[QueryType, str],
        sql: str,
        as_object: RowShape = False,
        object_params: Optional[Sequence[Any]] = None,
    ):
        """
        Run compiled SQL.
        - SELECT -> DatabaseResult
        - INSERT -> (last inserted id, affected rows)
        - otherwise -> affected row count
        Database errors are raised as SQLAlchemy raises them.
        """
        kind = QueryType(kind)
        start = time.time()
        try:
            # Literals are already inlined; exec_driver_sql keeps SQLAlchemy
            # from reading ":word" inside string values as bind parameters.
            if kind is QueryType.SELECT:
                with self.engine.connect() as conn:
                    df = pd.read_sql(sql, conn)
                return DatabaseResult(df.to_dict(orient="records"), sql, as_object, object_params)

            with self.engine.begin() as conn:
                result = conn.exec_driver_sql(sql)
                if kind is QueryType.INSERT:
                    return result.lastrowid, result.rowcount
                return result.rowcount
        finally:
            logger.debug("%s took %.3fs: %s", kind.name, time.time() - start, sql)
