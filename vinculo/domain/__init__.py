"""Domain models and exceptions for the matching core."""

from .exceptions import (
    AuthorizationError,
    ConflictError,
    ForbiddenTransitionError,
    MatchingError,
    NotFoundError,
    SystemDisabledError,
    ValidationError,
)
from .models import (
    Actor,
    Capacity,
    CapacityDraft,
    Challenge,
    ChallengeDraft,
    EntityKind,
    Keyword,
    MatchAction,
    MatchMessage,
    MatchRequest,
    MatchState,
    Role,
)

__all__ = [
    "Actor",
    "Capacity",
    "CapacityDraft",
    "Challenge",
    "ChallengeDraft",
    "EntityKind",
    "Keyword",
    "MatchAction",
    "MatchMessage",
    "MatchRequest",
    "MatchState",
    "Role",
    "MatchingError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ForbiddenTransitionError",
    "ConflictError",
    "SystemDisabledError",
]
