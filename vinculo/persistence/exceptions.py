"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers can treat
any database failure as a single internal-error category.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - Session requested before init_database()
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised when a database constraint is violated."""

    pass


class DuplicateRecordError(DataIntegrityError):
    """Raised when an insert collides with a unique constraint.

    Used for the permanent one-request-per-(challenge, capacity) rule.
    """

    pass
