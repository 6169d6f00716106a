"""
Data Ingestion Module
"""
from .seed_db import main as seed_database

__all__ = [
    "seed_database",
]
