"""
Models package for the request relay.

Exports all SQLAlchemy models for database operations.
"""

from .history import HistoryEntry, SavedRequest

__all__ = [
    "HistoryEntry",
    "SavedRequest",
]
