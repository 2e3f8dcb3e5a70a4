"""
cache/store.py -- Key-value stores with per-key TTL.

The session store keeps its records here. Two backends share one small
interface (set / get / delete / ping / close):

  RedisKeyValueStore   production. Redis expires keys itself (SET ... EX).
  SQLiteKeyValueStore  local development and tests. Expiry is checked on
                       read against an injectable clock; purge_expired()
                       trims dead rows and is run periodically by the API
                       lifespan.

Both raise KeyValueStoreError on backend failure so callers never see
redis-py or sqlite3 exception types.

Usage:
    kv = open_key_value_store("redis://redis:6379/0", timeout=3.0)
    kv.set("session:abc", '{"user_id": 1}', ttl_seconds=86400)
    kv.get("session:abc")      # returns str or None
    kv.delete("session:abc")   # no error if absent
    kv.close()
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Optional, Protocol

import redis

logger = logging.getLogger("postboard.cache")

_DDL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    expires_at  REAL NOT NULL
);
"""


class KeyValueStoreError(Exception):
    """The backing key-value service failed or could not be reached."""


class KeyValueStore(Protocol):
    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def get(self, key: str) -> Optional[str]: ...

    def delete(self, key: str) -> None: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


class SQLiteKeyValueStore:
    def __init__(self, db_path: str | Path = ":memory:", clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        # One connection shared by the request threads; the lock serializes use.
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        if str(db_path) != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_DDL)
        self._conn.commit()

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key, replacing any existing entry and its TTL."""
        expires_at = self._clock() + ttl_seconds
        self._run(
            "INSERT OR REPLACE INTO kv_store (key, value, expires_at) VALUES (?, ?, ?)",
            (key, value, expires_at),
        )

    def get(self, key: str) -> Optional[str]:
        """Return the value for key if it exists and hasn't expired."""
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value, expires_at FROM kv_store WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise KeyValueStoreError(f"sqlite get failed: {exc}") from exc
        if row is None:
            return None
        value, expires_at = row
        if self._clock() >= expires_at:
            self.delete(key)
            return None
        return value

    def delete(self, key: str) -> None:
        self._run("DELETE FROM kv_store WHERE key = ?", (key,))

    def purge_expired(self) -> int:
        """Delete all expired entries. Returns number of rows removed."""
        cursor = self._run("DELETE FROM kv_store WHERE expires_at <= ?", (self._clock(),))
        return cursor.rowcount

    def ping(self) -> bool:
        try:
            with self._lock:
                self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _run(self, sql: str, params: tuple) -> sqlite3.Cursor:
        try:
            with self._lock:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
        except sqlite3.Error as exc:
            raise KeyValueStoreError(f"sqlite write failed: {exc}") from exc
        return cursor


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


class RedisKeyValueStore:
    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, timeout: float) -> "RedisKeyValueStore":
        """Build a client whose every call is bounded by `timeout` seconds."""
        client = redis.Redis.from_url(
            url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True,
        )
        return cls(client)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            raise KeyValueStoreError(f"redis SET failed: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise KeyValueStoreError(f"redis GET failed: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise KeyValueStoreError(f"redis DEL failed: {exc}") from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            logger.warning("Redis ping failed", exc_info=True)
            return False

    def close(self) -> None:
        self._client.close()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def open_key_value_store(url: str, timeout: float = 3.0) -> KeyValueStore:
    """Pick a backend from the URL scheme.

    redis://, rediss://, unix://  -> RedisKeyValueStore
    memory://                     -> SQLiteKeyValueStore in memory
    sqlite:///path/to/file.db     -> SQLiteKeyValueStore on disk
    """
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisKeyValueStore.from_url(url, timeout)
    if url.startswith("memory://"):
        return SQLiteKeyValueStore(":memory:")
    if url.startswith("sqlite:///"):
        return SQLiteKeyValueStore(url[len("sqlite:///") :] or ":memory:")
    raise ValueError(f"Unsupported session store URL scheme: {url.split('://', 1)[0]!r}")
