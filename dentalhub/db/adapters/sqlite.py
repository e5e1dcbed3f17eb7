"""
SQLite Database Adapter

Implementation of the DatabaseAdapter interface on aiosqlite. Used for
local development and the test suite (":memory:" databases).
"""

import logging
from datetime import date, datetime
from typing import Optional, List, Dict, Any

import aiosqlite

from dentalhub.db.base import DatabaseAdapter
from dentalhub.db.schema import SQLITE_SCHEMA, SQLITE_TABLES
from dentalhub.core.config import settings

logger = logging.getLogger(__name__)


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Timestamps and dates are stored as ISO-8601 text so that range
    filters compare correctly as strings.
    """

    dialect = "sqlite"

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize SQLite adapter.

        Args:
            db_path: File path or ":memory:" (defaults to settings.sqlite_path)
        """
        self.db_path = db_path or settings.sqlite_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._connected = False

    async def connect(self) -> bool:
        """Open the database file."""
        try:
            self._conn = await aiosqlite.connect(self.db_path)
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA foreign_keys = ON")
            self._connected = True
            logger.info(f"Connected to SQLite database: {self.db_path}")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to SQLite: {e}")
            self._connected = False
            return False

    async def disconnect(self) -> None:
        """Close the SQLite connection."""
        if self._conn:
            try:
                await self._conn.close()
            except Exception as e:
                logger.warning(f"Error closing SQLite connection: {e}")
            finally:
                self._conn = None
                self._connected = False
                logger.info("Disconnected from SQLite database")

    async def initialize_schema(self) -> bool:
        """Create necessary tables if they don't exist."""
        if not self._connected or not self._conn:
            logger.error("Cannot initialize schema: Not connected")
            return False

        try:
            await self._conn.executescript(SQLITE_SCHEMA)
            await self._conn.commit()

            cursor = await self._conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
            tables = {row[0] for row in await cursor.fetchall()}
            missing = [t for t in SQLITE_TABLES if t not in tables]
            if missing:
                logger.error(f"Schema initialization incomplete, missing tables: {missing}")
                return False

            logger.info(f"SQLite schema initialized successfully ({len(tables)} tables)")
            return True
        except Exception as e:
            logger.error(f"Failed to initialize SQLite schema: {e}")
            return False

    async def execute(self, query: str, params: tuple = ()) -> Any:
        """Execute a raw SQL query and commit."""
        conn = self._require_connection()
        try:
            cursor = await conn.execute(query, self._convert_params(params))
            await conn.commit()
            return cursor.rowcount
        except Exception as e:
            logger.error(f"Query execution failed: {e}\nQuery: {query}")
            raise

    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute query and return single row as dict."""
        conn = self._require_connection()
        try:
            cursor = await conn.execute(query, self._convert_params(params))
            row = await cursor.fetchone()
            return dict(row) if row else None
        except Exception as e:
            logger.error(f"Query execution failed: {e}\nQuery: {query}")
            raise

    async def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute query and return all rows as list of dicts."""
        conn = self._require_connection()
        try:
            cursor = await conn.execute(query, self._convert_params(params))
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]
        except Exception as e:
            logger.error(f"Query execution failed: {e}\nQuery: {query}")
            raise

    def is_connected(self) -> bool:
        """Check if database connection is active."""
        return self._connected and self._conn is not None

    # ==================== Helper Methods ====================

    def _require_connection(self) -> aiosqlite.Connection:
        if not self._connected or not self._conn:
            raise ConnectionError("Not connected to database")
        return self._conn

    def _convert_params(self, params: tuple) -> tuple:
        """Render dates and timestamps as ISO-8601 text."""
        converted = []
        for value in params:
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            converted.append(value)
        return tuple(converted)
