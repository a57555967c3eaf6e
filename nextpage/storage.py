"""Key-value persistence backends for the collection store."""
import logging
import os
import re
from pathlib import Path
from typing import Optional, Dict

import psycopg2
from psycopg2 import pool

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class MemoryBackend:
    """Dictionary-backed store, useful for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileBackend:
    """
    One file per key under a directory, the way a browser keeps local storage.

    Writes go to a temporary file that is renamed over the target, so a
    crash never leaves a half-written blob behind.
    """

    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class PostgresBackend:
    """PostgreSQL key-value table with connection pooling."""

    def __init__(
        self,
        connection_string: Optional[str] = None,
        min_conn: int = 1,
        max_conn: int = 5,
        connection_pool=None
    ):
        """
        Initialize database connection pool.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
            connection_pool: Existing pool to use instead of creating one
        """
        if connection_pool is None:
            connection_pool = psycopg2.pool.SimpleConnectionPool(
                min_conn,
                max_conn,
                connection_string
            )
            logger.info("Database connection pool created successfully")

        self.connection_pool = connection_pool

    def init_schema(self):
        """Create the key-value table if it doesn't exist."""
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key VARCHAR(255) PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
                logger.info("Database schema initialized successfully")
        finally:
            self.connection_pool.putconn(conn)

    def get(self, key: str) -> Optional[str]:
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                row = cur.fetchone()
                return row[0] if row else None
        finally:
            self.connection_pool.putconn(conn)

    def set(self, key: str, value: str) -> None:
        """Upsert a value; failures are rolled back and re-raised."""
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (key) DO UPDATE SET
                        value = EXCLUDED.value,
                        updated_at = CURRENT_TIMESTAMP
                """, (key, value))
                conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to store {key}: {e}")
            raise
        finally:
            self.connection_pool.putconn(conn)

    def delete(self, key: str) -> None:
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM kv_store WHERE key = %s", (key,))
                conn.commit()
        finally:
            self.connection_pool.putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def create_backend(config):
    """Build the backend named by ``config.STORE_BACKEND``."""
    kind = (config.STORE_BACKEND or "file").lower()
    if kind == "memory":
        return MemoryBackend()
    if kind == "postgres":
        backend = PostgresBackend(config.DATABASE_URL)
        backend.init_schema()
        return backend
    if kind == "file":
        return JsonFileBackend(config.STORE_DIR)
    raise ValueError(f"Unknown store backend: {config.STORE_BACKEND}")
