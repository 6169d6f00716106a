"""
Service layer: async functions over an AsyncSession returning domain objects.
"""
from .exceptions import EntityNotFoundError, InvalidOrderError

__all__ = ["EntityNotFoundError", "InvalidOrderError"]
