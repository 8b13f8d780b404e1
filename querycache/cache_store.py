"""
querycache/cache_store.py

File-based key/value cache used for query results:
- Entries are addressed by sha1(key), sharded two levels deep by the first
  two hex characters of the digest: <root>/<h0>/<h1>/<digest>.json
- The file mtime is the write time; expiry is checked lazily on read
- Writes go to a temp file in the shard directory and are renamed into place
- I/O and (de)serialization problems never escape get/set/invalidate
"""
from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

from querycache import serialization
from querycache.config import CacheConfig
from querycache.errors import ConfigurationError, SerializationError

logger = logging.getLogger("querycache.cache")

FILE_MODE = 0o644


class CacheStore:
    EXTENSION = ".json"

    def __init__(self, config: CacheConfig):
        self.config = config
        self.root = Path(config.cache_dir)

        if not self.root.is_dir():
            try:
                self.root.mkdir(mode=config.dir_mode, parents=True, exist_ok=True)
                # mkdir mode is filtered through the umask
                os.chmod(self.root, config.dir_mode)
            except OSError as e:
                raise ConfigurationError(f"Could not create cache directory {self.root}") from e

        if not os.access(self.root, os.W_OK | os.X_OK):
            raise ConfigurationError(f"Directory {self.root} must be writable")

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def default_lifetime(self) -> int:
        return self.config.default_lifetime

    def path_for(self, key: str) -> Path:
        """Return the file that stores `key`."""
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.root / digest[0] / digest[1] / f"{digest}{self.EXTENSION}"

    # ---------------- Read ----------------
    def get(self, key: str, lifetime: Optional[float] = None) -> Any:
        """
        Return the cached payload for `key`, or None when absent.

        `lifetime` overrides the lifetime recorded with the entry. Expired
        entries are removed on the way out.
        """
        path = self.path_for(key)
        try:
            written_at = path.stat().st_mtime
        except FileNotFoundError:
            logger.debug("cache miss: %s", key)
            return None
        except OSError as e:
            logger.warning("cache stat failed for %s: %s", path, e)
            return None

        if lifetime is not None and self._expired(written_at, lifetime):
            self._remove(path)
            return None

        try:
            entry = serialization.loads(path.read_bytes())
        except FileNotFoundError:
            # removed by a concurrent reader or invalidate()
            return None
        except OSError as e:
            logger.warning("cache read failed for %s: %s", path, e)
            return None
        except SerializationError as e:
            logger.warning("corrupt cache file %s: %s", path, e)
            return None

        if (
            not isinstance(entry, dict)
            or "payload" not in entry
            or not isinstance(entry.get("lifetime", 0), (int, float))
        ):
            logger.warning("corrupt cache file %s: unexpected layout", path)
            return None

        if lifetime is None:
            lifetime = entry.get("lifetime", self.config.default_lifetime)
            if self._expired(written_at, lifetime):
                self._remove(path)
                return None

        logger.debug("cache hit: %s", key)
        return entry["payload"]

    # ---------------- Write ----------------
    def set(self, key: str, payload: Any, lifetime: Optional[float] = None) -> bool:
        """Store `payload` under `key`. Returns False instead of raising."""
        if payload is None:
            return False
        if lifetime is None:
            lifetime = self.config.default_lifetime

        path = self.path_for(key)
        try:
            data = serialization.dumps({"lifetime": lifetime, "payload": payload})
        except SerializationError as e:
            logger.warning("cannot serialize cache payload for %s: %s", key, e)
            return False

        try:
            self._ensure_shard(path.parent)
            fd, tmp_name = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.chmod(tmp_name, FILE_MODE)
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.warning("cache write failed for %s: %s", path, e)
            return False

        logger.debug("cache set: %s (lifetime=%ss)", key, lifetime)
        return True

    def invalidate(self, key: str) -> None:
        """Drop `key` now, whatever its remaining lifetime."""
        self._remove(self.path_for(key))

    # ---------------- Helpers ----------------
    @staticmethod
    def _expired(written_at: float, lifetime: float) -> bool:
        return (time.time() - written_at) >= lifetime

    def _ensure_shard(self, shard: Path) -> None:
        for directory in (shard.parent, shard):
            if not directory.is_dir():
                try:
                    directory.mkdir(mode=self.config.dir_mode)
                except FileExistsError:
                    continue
                os.chmod(directory, self.config.dir_mode)

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("could not remove cache file %s: %s", path, e)
        else:
            logger.debug("cache entry removed: %s", path)
