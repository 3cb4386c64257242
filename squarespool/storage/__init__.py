"""
Storage module for the squares pool.

Provides a unified interface for the database backends:
- SQLite (local development, self-hosted)
- Memory (tests, demos)

Usage:
    from squarespool.storage import get_database

    db = get_database()  # Uses DB_TYPE env var
    board = db.get_board(board_id)
"""

from .base import DatabaseInterface
from .factory import get_database, reset_database
from .exceptions import (
    DatabaseError,
    ConnectionError,
    ConfigurationError,
    SchemaError,
    QueryError,
    NotFoundError
)

__all__ = [
    'DatabaseInterface',
    'get_database',
    'reset_database',
    'DatabaseError',
    'ConnectionError',
    'ConfigurationError',
    'SchemaError',
    'QueryError',
    'NotFoundError'
]
