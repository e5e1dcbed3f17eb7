"""Database adapters"""

from dentalhub.db.adapters.sqlite import SQLiteAdapter
from dentalhub.db.adapters.postgres import PostgresAdapter

__all__ = ["SQLiteAdapter", "PostgresAdapter"]
