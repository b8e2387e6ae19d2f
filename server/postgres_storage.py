"""PostgreSQL key-value store."""

import logging
import os

import psycopg2

from core.interfaces import KeyValueStore

logger = logging.getLogger(__name__)


class PostgresStorage(KeyValueStore):
    """PostgreSQL-backed store, one row per (user_id, key)."""

    def __init__(self, db_url: str = None, user_id: str = "default"):
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/flashround'
        )
        self.user_id = user_id
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    user_id VARCHAR(255) NOT NULL,
                    key VARCHAR(512) NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (user_id, key)
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_kv_store_updated
                ON kv_store(updated_at)
            """)
        self._conn.commit()

    def for_user(self, user_id: str) -> 'PostgresStorage':
        """Store view for another user sharing this connection."""
        other = PostgresStorage(self.db_url, user_id)
        other._conn = self.conn
        other._initialized = True
        return other

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def get(self, key: str) -> str | None:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "SELECT value FROM kv_store WHERE user_id = %s AND key = %s",
                    (self.user_id, key)
                )
                row = cur.fetchone()
                return row[0] if row else None
        except Exception as e:
            # A failed statement aborts the shared transaction until rolled back
            logger.error(f"Error reading {key}: {e}")
            self.conn.rollback()
            raise

    def set(self, key: str, value: str) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO kv_store (user_id, key, value, updated_at)
                    VALUES (%s, %s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (user_id, key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = CURRENT_TIMESTAMP
                """, (self.user_id, key, value))
            self.conn.commit()
        except Exception as e:
            logger.error(f"Error saving {key}: {e}")
            self.conn.rollback()
            raise

    def list_users(self) -> list[str]:
        """List all user IDs with stored statistics."""
        with self.conn.cursor() as cur:
            cur.execute("SELECT DISTINCT user_id FROM kv_store ORDER BY user_id")
            return [row[0] for row in cur.fetchall()]
