"""Core domain models for keywords, challenges, capacities and match requests.

This module defines the data structures used throughout the application:
- Role, MatchState, MatchAction, EntityKind: closed enumerations
- Actor: the authenticated caller, passed explicitly into every core call
- ChallengeDraft / CapacityDraft: validated input for entity creation
- Challenge / Capacity: persisted entities with their keyword sets
- MatchRequest / MatchMessage: the match workflow and its message thread
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from vinculo.utils.timestamps import ensure_utc


class Role(str, Enum):
    """Roles an authenticated user can hold."""

    EXTERNO = "externo"
    UNSA = "unsa"
    ADMIN = "admin"


class MatchState(str, Enum):
    """States of a match request."""

    PENDIENTE_UNSA = "pendiente_unsa"
    PENDIENTE_EXTERNO = "pendiente_externo"
    ACEPTADO = "aceptado"
    RECHAZADO_UNSA = "rechazado_unsa"
    RECHAZADO_EXTERNO = "rechazado_externo"
    CANCELADO = "cancelado"

    @property
    def is_pending(self) -> bool:
        return self in (MatchState.PENDIENTE_UNSA, MatchState.PENDIENTE_EXTERNO)

    @property
    def is_terminal(self) -> bool:
        return not self.is_pending


class MatchAction(str, Enum):
    """Actions that move a match request between states."""

    ACEPTAR = "aceptar"
    RECHAZAR = "rechazar"
    CANCELAR = "cancelar"


class EntityKind(str, Enum):
    """The two kinds of entity that carry keywords."""

    CHALLENGE = "challenge"
    CAPACITY = "capacity"

    @property
    def opposite(self) -> "EntityKind":
        return EntityKind.CAPACITY if self is EntityKind.CHALLENGE else EntityKind.CHALLENGE


class Actor(BaseModel):
    """Authenticated caller identity supplied by the surrounding HTTP layer."""

    user_id: int = Field(..., gt=0, description="Authenticated user id")
    role: Role = Field(..., description="Role of the authenticated user")

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    stripped = v.strip()
    return stripped if stripped else None


class ChallengeDraft(BaseModel):
    """Input for registering a challenge."""

    title: str = Field(..., description="Challenge title")
    description: Optional[str] = None
    impact: Optional[str] = None
    prior_attempts: Optional[str] = None
    imagined_solution: Optional[str] = None
    attachment_url: Optional[str] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Titles are required and trimmed."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("description", "impact", "prior_attempts", "imagined_solution", "attachment_url")
    @classmethod
    def strip_optional_fields(cls, v: Optional[str]) -> Optional[str]:
        """Blank optional fields are stored as NULL."""
        return _strip_optional(v)


class CapacityDraft(BaseModel):
    """Input for registering a research capacity."""

    description: str = Field(..., description="Capacity description")
    problems_solved: Optional[str] = None
    project_types: Optional[str] = None
    equipment: Optional[str] = None
    internal_code: Optional[str] = None

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("problems_solved", "project_types", "equipment", "internal_code")
    @classmethod
    def strip_optional_fields(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class Keyword(BaseModel):
    """A normalized keyword shared by challenges and capacities."""

    id: int
    text: str = Field(..., min_length=1, max_length=100)
    challenge_popularity: int = Field(0, ge=0)


class Challenge(ChallengeDraft):
    """A persisted challenge with its keyword set."""

    id: int
    owner_user_id: int
    created_at: datetime
    keywords: List[str] = Field(default_factory=list, description="Sorted keyword texts")

    @field_validator("created_at")
    @classmethod
    def ensure_created_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class Capacity(CapacityDraft):
    """A persisted research capacity with its keyword set."""

    id: int
    owner_user_id: int
    created_at: datetime
    keywords: List[str] = Field(default_factory=list, description="Sorted keyword texts")

    @field_validator("created_at")
    @classmethod
    def ensure_created_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class MatchRequest(BaseModel):
    """A bilateral proposal linking one challenge to one capacity.

    ``challenge_title`` and ``capacity_summary`` are only populated by listing
    queries, which join the owning entities for display.
    """

    id: int
    challenge_id: int
    capacity_id: int
    requester_user_id: int
    recipient_user_id: int
    state: MatchState
    created_at: datetime
    updated_at: datetime
    challenge_title: Optional[str] = None
    capacity_summary: Optional[str] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_timestamps_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def is_party(self, user_id: int) -> bool:
        """Return True if the user is the requester or the recipient."""
        return user_id in (self.requester_user_id, self.recipient_user_id)

    def counterpart_of(self, user_id: int) -> int:
        """Return the other party's user id."""
        if user_id == self.requester_user_id:
            return self.recipient_user_id
        return self.requester_user_id


class MatchMessage(BaseModel):
    """A message in an accepted match's thread."""

    id: int
    match_id: int
    sender_user_id: int
    content: str
    sent_at: datetime
    read: bool = False

    @field_validator("sent_at")
    @classmethod
    def ensure_sent_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)
