"""
Database Adapter Base Classes

Every backend (SQLite for local development and tests, PostgreSQL for
the hosted Supabase database) implements this interface so repositories
can run the same `?`-placeholder SQL against either one.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.
    """

    dialect: str = "generic"

    @abstractmethod
    async def connect(self) -> bool:
        """
        Establish connection to the database.
        Returns True if successful, False otherwise.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the database connection."""
        pass

    @abstractmethod
    async def initialize_schema(self) -> bool:
        """
        Create necessary tables if they don't exist.
        Returns True if successful, False otherwise.
        """
        pass

    @abstractmethod
    async def execute(self, query: str, params: tuple = ()) -> Any:
        """Execute a raw SQL query."""
        pass

    @abstractmethod
    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute query and return single row as dict."""
        pass

    @abstractmethod
    async def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute query and return all rows as list of dicts."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if database connection is active."""
        pass
