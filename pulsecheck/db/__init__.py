"""Database models, sessions and the SQL repository."""

from .models import Base, MonitorRecord, StatusRecord
from .repository import SqlRepository
from .session import Database

__all__ = [
    "Base",
    "Database",
    "MonitorRecord",
    "SqlRepository",
    "StatusRecord",
]
