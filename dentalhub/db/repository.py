"""
Repository Base and Database Lifecycle

Repositories share one DatabaseAdapter (SQLite or PostgreSQL) and the
value conversion helpers below. The adapter is a process-wide singleton
created from configuration.
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable, Tuple

from pydantic import BaseModel

from dentalhub.db.base import DatabaseAdapter
from dentalhub.core.config import settings

logger = logging.getLogger(__name__)

# Singleton instance
_adapter_instance: Optional[DatabaseAdapter] = None


class BaseRepository:
    """
    Shared helpers for converting between Python values and row values.
    """

    #: columns stored as JSON text / JSONB
    json_columns: Tuple[str, ...] = ()
    #: columns stored as INTEGER (SQLite) / BOOLEAN (PostgreSQL)
    bool_columns: Tuple[str, ...] = ()

    def __init__(self, adapter: DatabaseAdapter):
        """
        Initialize the repository with a database adapter.

        Args:
            adapter: A DatabaseAdapter implementation (SQLite, PostgreSQL)
        """
        self.adapter = adapter

    # ==================== Writes ====================

    def _db_value(self, value: Any) -> Any:
        """Convert a Python value into something both adapters accept."""
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, BaseModel):
            return json.dumps(value.model_dump(mode="json"), default=str)
        if isinstance(value, (dict, list)):
            return json.dumps(value, default=str)
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def _insert_params(self, values: Dict[str, Any]) -> Tuple[str, str, tuple]:
        """Column list, placeholder list and params for an INSERT."""
        columns = ", ".join(values.keys())
        placeholders = ", ".join("?" for _ in values)
        params = tuple(self._db_value(v) for v in values.values())
        return columns, placeholders, params

    async def _insert(self, table: str, values: Dict[str, Any]) -> None:
        columns, placeholders, params = self._insert_params(values)
        await self.adapter.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", params
        )

    async def _update(
        self,
        table: str,
        updates: Dict[str, Any],
        where: Dict[str, Any],
    ) -> int:
        """Build and run a dynamic UPDATE; returns affected rows."""
        if not updates:
            return 0

        set_clauses = []
        params: List[Any] = []
        for key, value in updates.items():
            set_clauses.append(f"{key} = ?")
            params.append(self._db_value(value))

        conditions = []
        for key, value in where.items():
            conditions.append(f"{key} = ?")
            params.append(self._db_value(value))

        query = f"UPDATE {table} SET {', '.join(set_clauses)} WHERE {' AND '.join(conditions)}"
        return await self.adapter.execute(query, tuple(params)) or 0

    # ==================== Reads ====================

    def _decode_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Decode JSON and boolean columns of a fetched row."""
        data = dict(row)
        for column in self.json_columns:
            if column in data:
                data[column] = self._parse_json(data[column])
        for column in self.bool_columns:
            if column in data and data[column] is not None:
                data[column] = bool(data[column])
        return data

    @staticmethod
    def _like(value: str) -> str:
        """Case-insensitive substring pattern for LOWER(col) LIKE ?"""
        return f"%{value.strip().lower()}%"

    @staticmethod
    def _in_clause(values: Iterable[Any]) -> str:
        return ", ".join("?" for _ in values)

    def _parse_json(self, value: Any) -> Any:
        """Parse a JSON column or return as-is if already decoded."""
        if value is None or isinstance(value, (dict, list)):
            return value
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return None

    def _parse_json_dict(self, value: Any) -> Dict[str, Any]:
        parsed = self._parse_json(value)
        return parsed if isinstance(parsed, dict) else {}

    def _parse_json_list(self, value: Any) -> List[Any]:
        parsed = self._parse_json(value)
        return parsed if isinstance(parsed, list) else []

    def _parse_datetime(self, value: Any) -> Optional[datetime]:
        """Parse datetime from string or return as-is if already datetime."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            return None


class DatabaseRepository:
    """
    Database adapter factory.
    """

    @staticmethod
    def create_adapter(db_type: str = "sqlite") -> DatabaseAdapter:
        """
        Create an adapter for the given database type.

        Args:
            db_type: "sqlite" or "postgres"
        """
        if db_type == "postgres":
            from dentalhub.db.adapters.postgres import PostgresAdapter
            return PostgresAdapter()

        from dentalhub.db.adapters.sqlite import SQLiteAdapter
        return SQLiteAdapter()


def get_database() -> DatabaseAdapter:
    """
    Get or create the singleton database adapter.

    The backend is chosen by DATABASE_TYPE; PostgreSQL without a
    DATABASE_URL falls back to SQLite.
    """
    global _adapter_instance

    if _adapter_instance is None:
        db_type = settings.database_type.lower()

        if db_type == "postgres" and not settings.database_url:
            logger.warning("PostgreSQL selected but DATABASE_URL not set, falling back to SQLite")
            db_type = "sqlite"

        _adapter_instance = DatabaseRepository.create_adapter(db_type)
        logger.info(f"Created {db_type} database adapter")

    return _adapter_instance


def set_database(adapter: Optional[DatabaseAdapter]) -> None:
    """Replace the singleton adapter (used by tests and scripts)."""
    global _adapter_instance
    _adapter_instance = adapter


async def initialize_database() -> bool:
    """
    Connect and create the schema. Call this at application startup.
    """
    adapter = get_database()
    if not adapter.is_connected():
        if not await adapter.connect():
            return False
    return await adapter.initialize_schema()


async def close_database() -> None:
    """
    Close the database connection. Call this at application shutdown.
    """
    global _adapter_instance
    if _adapter_instance:
        await _adapter_instance.disconnect()
        _adapter_instance = None
        logger.info("Database connection closed")
