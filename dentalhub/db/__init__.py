"""
Database Abstraction Layer

Repositories run the same SQL against SQLite (development, tests) or
PostgreSQL (Supabase) through a DatabaseAdapter.

Usage:
    from dentalhub.db import get_database
    from dentalhub.db.repositories import PatientRepository

    repo = PatientRepository(get_database())
    patient = await repo.get(practice_id, patient_id)
"""

from dentalhub.db.base import DatabaseAdapter
from dentalhub.db.repository import (
    BaseRepository,
    DatabaseRepository,
    get_database,
    set_database,
    initialize_database,
    close_database,
)

__all__ = [
    "DatabaseAdapter",
    "BaseRepository",
    "DatabaseRepository",
    "get_database",
    "set_database",
    "initialize_database",
    "close_database",
]
