# tests/conftest.py
import pytest

from querycache.cache_store import CacheStore
from querycache.config import CacheConfig
from querycache.database import Database
from querycache.query import QueryType
from querycache.result import DatabaseResult


class StubDatabase:
    """Database double that counts executions."""

    def __init__(self, rows=None, name="stub"):
        self.rows = rows if rows is not None else [{"id": 5, "name": "alice"}]
        self.name = name
        self.calls = []

    @property
    def execute_count(self):
        return len(self.calls)

    def identity(self):
        return self.name

    def quote(self, value):
        if value is None:
            return "NULL"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return "'" + str(value).replace("'", "''") + "'"

    def execute(self, kind, sql, as_object=False, object_params=None):
        self.calls.append((kind, sql))
        if kind is QueryType.SELECT:
            return DatabaseResult(self.rows, sql, as_object, object_params)
        return 1


@pytest.fixture
def cache_config(tmp_path):
    return CacheConfig(cache_dir=tmp_path / "cache", default_lifetime=60)


@pytest.fixture
def cache_store(cache_config):
    """Cache store rooted in a fresh temporary directory."""
    return CacheStore(cache_config)


@pytest.fixture
def stub_db():
    return StubDatabase()


@pytest.fixture
def sqlite_db(tmp_path):
    """File-backed SQLite database with a small users table."""
    db = Database(f"sqlite:///{tmp_path / 'test.db'}", name="test")
    db.execute(QueryType.OTHER, "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    db.execute(QueryType.INSERT, "INSERT INTO users (name) VALUES ('alice'), ('bob'), ('carol')")
    yield db
    db.engine.dispose()
