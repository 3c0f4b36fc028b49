"""
Repository layer for data access operations.
"""

from app.repositories.base import BaseRepository
from app.repositories.property import PropertyRepository, PropertySearchFilters, FavoriteRepository
from app.repositories.user import UserRepository, AccountDeletionRepository

__all__ = [
    "BaseRepository",
    "PropertyRepository",
    "PropertySearchFilters",
    "FavoriteRepository",
    "UserRepository",
    "AccountDeletionRepository",
]
