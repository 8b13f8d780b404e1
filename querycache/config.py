"""
querycache/config.py

Configuration for the query cache.

Settings come from the environment (and a .env file at the project root).
Nothing here is a process-wide singleton: callers build a config object and
hand it to the components that need it.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from querycache.errors import ConfigurationError

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_CACHE_DIR = Path("data/cache")
DEFAULT_LIFETIME = 60
DEFAULT_DIR_MODE = 0o755


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: str, base: int = 10) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw, base)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class CacheConfig:
    """Where and for how long query results are cached."""

    cache_dir: Path = DEFAULT_CACHE_DIR
    default_lifetime: int = DEFAULT_LIFETIME
    enabled: bool = True
    dir_mode: int = DEFAULT_DIR_MODE


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    name: str = "default"


def load_cache_config(cache_dir: Optional[Path] = None) -> CacheConfig:
    """Build a CacheConfig from QUERYCACHE_* environment variables."""
    return CacheConfig(
        cache_dir=Path(cache_dir or os.getenv("QUERYCACHE_DIR", str(DEFAULT_CACHE_DIR))),
        default_lifetime=_env_int("QUERYCACHE_LIFETIME", str(DEFAULT_LIFETIME)),
        enabled=_env_bool("QUERYCACHE_ENABLED", True),
        dir_mode=_env_int("QUERYCACHE_DIR_MODE", "755", base=8),
    )


def load_database_config() -> DatabaseConfig:
    """DB_URL wins; otherwise compose a PostgreSQL URL from the DB_* parts."""
    url = os.getenv("DB_URL")
    if not url:
        db_user = os.getenv("DB_USER", "readonly_user")
        db_pass = os.getenv("DB_PASS", "pass")
        db_host = os.getenv("DB_HOST", "127.0.0.1")
        db_port = os.getenv("DB_PORT", "5432")
        db_name = os.getenv("DB_NAME", "northwind")
        url = f"postgresql+psycopg2://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"
    return DatabaseConfig(url=url, name=os.getenv("DB_INSTANCE", "default"))
