"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

import logging
import os
import sys
from typing import Optional


def _get_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_optional_int(key: str) -> Optional[int]:
    """Get integer from environment variable, None when unset or invalid."""
    value = os.environ.get(key)
    if value is None or value.strip() == '':
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes')


def _get_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


# =============================================================================
# STORAGE SETTINGS
# =============================================================================
# Backend used by storage.get_database(): "sqlite" or "memory"
DB_TYPE = _get_str('DB_TYPE', 'sqlite')

# Data directory path
# Priority: DATA_DIR > /app/cache (container) > cache (local)
DATA_DIR = (
    os.environ.get('DATA_DIR') or
    ('/app/cache' if os.path.exists('/app') else 'cache')
)
DB_FILENAME = _get_str('DB_FILENAME', 'squares.db')

# =============================================================================
# POOL SETTINGS
# =============================================================================
DEFAULT_PRICE_PER_SQUARE = _get_float('DEFAULT_PRICE_PER_SQUARE', 10.0)

# Seed for reproducible shuffles (audits, demos). Unset means OS entropy.
SHUFFLE_SEED = _get_optional_int('SHUFFLE_SEED')

# Run the assignment as soon as a board is marked FILLED
AUTO_ASSIGN = _get_bool('AUTO_ASSIGN', True)

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = _get_str('LOG_LEVEL', 'INFO')
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logging(level: Optional[str] = None) -> None:
    """Send log records to stdout at the configured level."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )
