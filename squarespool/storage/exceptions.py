"""
Custom exceptions for the storage layer.

These exceptions provide clear error categories for database operations:
- DatabaseError: Base exception for all database errors
- ConnectionError: Connection failures (retryable)
- ConfigurationError: Missing or invalid configuration
- SchemaError: Schema initialization/migration issues
- QueryError: Query execution failures (retryable)
- NotFoundError: Referenced board, square or game does not exist
"""

from squarespool.exceptions import TransientError


class DatabaseError(Exception):
    """Base exception for all database errors."""
    pass


class ConnectionError(DatabaseError, TransientError):
    """Failed to connect to database."""
    pass


class ConfigurationError(DatabaseError):
    """Missing or invalid database configuration."""
    pass


class SchemaError(DatabaseError):
    """Error initializing or migrating schema."""
    pass


class QueryError(DatabaseError, TransientError):
    """Error executing a query."""
    pass


class NotFoundError(DatabaseError):
    """Requested record does not exist."""
    pass
