"""
Persistence adapters for the Clinic Slot Scheduler.

1. InMemoryRepository (tests, demo runs)
2. SqlRepository (SQLAlchemy; PostgreSQL in production, SQLite locally)
"""

from .memory import InMemoryRepository
from .sql import SqlRepository

__all__ = [
    "InMemoryRepository",
    "SqlRepository",
]
