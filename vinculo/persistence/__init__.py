"""Persistence layer for database operations using SQLite.

This module provides the public API for database operations including:
- Database initialization and connection management
- Repository classes for keywords, challenges, capacities, matches, messages
  and system settings
- Custom exceptions for error handling

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session(read_only: bool = False) -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - KeywordRepository: keywords, keyword links and overlap queries
    - ChallengeRepository / CapacityRepository: entity rows and owner lookups
    - MatchRepository: match requests and guarded state updates
    - MessageRepository: match message threads
    - SettingsRepository: key/value system settings

Example usage:
    >>> from vinculo.persistence import init_database, get_session, MatchRepository
    >>>
    >>> init_database("sqlite:///./data/vinculo.db")
    >>>
    >>> with get_session(read_only=True) as session:
    ...     match = MatchRepository(session).get(12)
"""

# Database initialization and session management
from .database import close_database, get_engine, get_session, init_database

# Repository classes
from .repositories import (
    CapacityRepository,
    ChallengeRepository,
    KeywordRepository,
    MatchRepository,
    MessageRepository,
    SettingsRepository,
)

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    DuplicateRecordError,
    PersistenceError,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "KeywordRepository",
    "ChallengeRepository",
    "CapacityRepository",
    "MatchRepository",
    "MessageRepository",
    "SettingsRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "DataIntegrityError",
    "DuplicateRecordError",
]
