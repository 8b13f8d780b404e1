"""
querycache/executor.py

Cache-or-execute orchestration for queries:
- Compiles the query against the target database
- Only SELECT queries with a cache policy touch the cache
- Keys tie the compiled SQL to the database identity
- Cache failures fall through to live execution; database errors propagate
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any, Optional

from querycache.query import Query, QueryType
from querycache.result import CachedResult

if TYPE_CHECKING:
    from querycache.cache_store import CacheStore

logger = logging.getLogger("querycache.executor")


def cache_key(identity: str, sql: str) -> str:
    """Logical cache key for `sql` run against the database named `identity`."""
    digest = hashlib.sha1(json.dumps([identity, sql]).encode("utf-8")).hexdigest()
    return f"query:{digest}"


class CachingQueryExecutor:
    def __init__(self, cache: Optional["CacheStore"] = None):
        self.cache = cache

    def execute(self, query: Query, db, as_object=None, object_params=None) -> Any:
        if as_object is None:
            as_object = query.as_object_class
        if object_params is None:
            object_params = query.object_params

        sql = query.compile(db)
        policy = query.cache_policy

        if (
            self.cache is None
            or not self.cache.enabled
            or policy is None
            or query.kind is not QueryType.SELECT
        ):
            return db.execute(query.kind, sql, as_object, object_params)

        key = cache_key(db.identity(), sql)
        lifetime = policy.lifetime if policy.lifetime is not None else self.cache.default_lifetime

        if lifetime < 0:
            logger.debug("busting cache for %s", key)
            self.cache.invalidate(key)
        else:
            rows = self.cache.get(key)
            if isinstance(rows, list) and not policy.force:
                logger.debug("serving cached result for %s", key)
                return CachedResult(rows, sql, as_object, object_params)

        result = db.execute(query.kind, sql, as_object, object_params)

        if lifetime > 0 and not self.cache.set(key, result.as_array(), lifetime):
            logger.info("result for %s was not cached", key)
        return result
