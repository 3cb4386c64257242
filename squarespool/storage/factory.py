"""
Factory function to create the appropriate database implementation.

Reads configuration from environment variables to determine which
database backend to use.
"""

import logging
import os
from typing import Optional

from .base import DatabaseInterface
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Singleton instance
_db_instance: Optional[DatabaseInterface] = None


def get_database() -> DatabaseInterface:
    """
    Get or create the database instance.

    Uses the DB_TYPE environment variable to determine which implementation:
    - "sqlite" (default): Local SQLite database
    - "memory": Process-local dictionaries (tests, demos)

    Additional environment variables for SQLite:
    - DATA_DIR, or uses "cache" directory
    - DB_FILENAME, defaults to "squares.db"

    Returns:
        DatabaseInterface implementation

    Raises:
        ConfigurationError: If DB_TYPE is not a known backend
    """
    global _db_instance

    if _db_instance is not None:
        return _db_instance

    db_type = os.environ.get('DB_TYPE', 'sqlite').lower()
    logger.info(f"Database type: {db_type}")

    if db_type == 'sqlite':
        from .sqlite_db import SQLiteDatabase

        # Read at call time so tests can point DATA_DIR at a temp directory
        data_dir = (
            os.environ.get('DATA_DIR') or
            ('/app/cache' if os.path.exists('/app') else 'cache')
        )
        db_path = os.path.join(data_dir, os.environ.get('DB_FILENAME', 'squares.db'))

        _db_instance = SQLiteDatabase(db_path=db_path)

    elif db_type == 'memory':
        from .memory_db import MemoryDatabase
        _db_instance = MemoryDatabase()

    else:
        raise ConfigurationError(
            f"Unknown DB_TYPE: {db_type}. "
            f"Valid options: sqlite, memory"
        )

    # Initialize the database
    _db_instance.initialize()

    return _db_instance


def reset_database() -> None:
    """
    Reset the database singleton.

    Used for testing or when switching configurations.
    """
    global _db_instance
    if _db_instance is not None:
        _db_instance.close()
        _db_instance = None
