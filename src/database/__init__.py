"""
Database Module
"""
from .connection import (
    check_database_health,
    close_database,
    get_db,
    get_db_dependency,
    get_engine,
    init_database,
)
from .models import Base

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_db_dependency",
    "get_engine",
    "check_database_health",
    "Base",
]
