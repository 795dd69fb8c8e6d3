"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for keywords, the two keyword link
tables, challenges, capacities, match requests, match messages and system
settings, plus conversions from ORM rows to domain models.
"""

import logging
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from vinculo.domain.models import (
    Capacity,
    Challenge,
    Keyword,
    MatchMessage,
    MatchRequest,
    MatchState,
)
from vinculo.utils.timestamps import from_storage

logger = logging.getLogger(__name__)

Base = declarative_base()

MAX_KEYWORD_LENGTH = 100
MATCHES_ENABLED_KEY = "matches_enabled"


class KeywordModel(Base):
    """ORM model for keywords table.

    Keyword text is stored already normalized (trimmed, lower-cased).
    """

    __tablename__ = "keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(String(MAX_KEYWORD_LENGTH), nullable=False, unique=True)

    # Incremented only from the challenge side, never decremented
    challenge_popularity = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("challenge_popularity >= 0", name="ck_keywords_popularity"),
        Index("idx_keywords_popularity", "challenge_popularity"),
    )

    def to_domain(self) -> Keyword:
        return Keyword(
            id=self.id,
            text=self.text,
            challenge_popularity=self.challenge_popularity or 0,
        )


class ChallengeModel(Base):
    """ORM model for challenges table (problems submitted by external participants)."""

    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_user_id = Column(Integer, nullable=False)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    impact = Column(Text, nullable=True)
    prior_attempts = Column(Text, nullable=True)
    imagined_solution = Column(Text, nullable=True)
    attachment_url = Column(Text, nullable=True)

    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_challenges_owner", "owner_user_id"),)

    def to_domain(self, keywords: Optional[List[str]] = None) -> Challenge:
        return Challenge(
            id=self.id,
            owner_user_id=self.owner_user_id,
            title=self.title,
            description=self.description,
            impact=self.impact,
            prior_attempts=self.prior_attempts,
            imagined_solution=self.imagined_solution,
            attachment_url=self.attachment_url,
            created_at=from_storage(self.created_at),
            keywords=keywords or [],
        )


class CapacityModel(Base):
    """ORM model for capacities table (research capabilities)."""

    __tablename__ = "capacities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_user_id = Column(Integer, nullable=False)

    description = Column(Text, nullable=False)
    problems_solved = Column(Text, nullable=True)
    project_types = Column(Text, nullable=True)
    equipment = Column(Text, nullable=True)
    internal_code = Column(String(255), nullable=True)

    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_capacities_owner", "owner_user_id"),)

    def to_domain(self, keywords: Optional[List[str]] = None) -> Capacity:
        return Capacity(
            id=self.id,
            owner_user_id=self.owner_user_id,
            description=self.description,
            problems_solved=self.problems_solved,
            project_types=self.project_types,
            equipment=self.equipment,
            internal_code=self.internal_code,
            created_at=from_storage(self.created_at),
            keywords=keywords or [],
        )


class ChallengeKeywordModel(Base):
    """Link table between challenges and keywords (composite primary key)."""

    __tablename__ = "challenge_keywords"

    challenge_id = Column(
        Integer, ForeignKey("challenges.id", ondelete="CASCADE"), primary_key=True
    )
    keyword_id = Column(Integer, ForeignKey("keywords.id"), primary_key=True)

    __table_args__ = (Index("idx_challenge_keywords_keyword", "keyword_id"),)


class CapacityKeywordModel(Base):
    """Link table between capacities and keywords (composite primary key)."""

    __tablename__ = "capacity_keywords"

    capacity_id = Column(
        Integer, ForeignKey("capacities.id", ondelete="CASCADE"), primary_key=True
    )
    keyword_id = Column(Integer, ForeignKey("keywords.id"), primary_key=True)

    __table_args__ = (Index("idx_capacity_keywords_keyword", "keyword_id"),)


_STATE_VALUES = ", ".join(f"'{state.value}'" for state in MatchState)


class MatchRequestModel(Base):
    """ORM model for match_requests table.

    The (challenge_id, capacity_id) pair is unique forever: a rejected or
    cancelled pairing cannot be requested again.
    """

    __tablename__ = "match_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id"), nullable=False)
    capacity_id = Column(Integer, ForeignKey("capacities.id"), nullable=False)
    requester_user_id = Column(Integer, nullable=False)
    recipient_user_id = Column(Integer, nullable=False)
    state = Column(String(32), nullable=False)

    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("challenge_id", "capacity_id", name="uq_match_requests_pair"),
        CheckConstraint(f"state IN ({_STATE_VALUES})", name="ck_match_requests_state"),
        Index("idx_match_requests_requester", "requester_user_id"),
        Index("idx_match_requests_recipient", "recipient_user_id"),
        Index("idx_match_requests_updated", "updated_at"),
    )

    def to_domain(
        self, challenge_title: Optional[str] = None, capacity_summary: Optional[str] = None
    ) -> MatchRequest:
        return MatchRequest(
            id=self.id,
            challenge_id=self.challenge_id,
            capacity_id=self.capacity_id,
            requester_user_id=self.requester_user_id,
            recipient_user_id=self.recipient_user_id,
            state=MatchState(self.state),
            created_at=from_storage(self.created_at),
            updated_at=from_storage(self.updated_at),
            challenge_title=challenge_title,
            capacity_summary=capacity_summary,
        )


class MatchMessageModel(Base):
    """ORM model for match_messages table (append-only; only `read` changes)."""

    __tablename__ = "match_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("match_requests.id"), nullable=False)
    sender_user_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    sent_at = Column(String(50), nullable=False)
    read = Column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("idx_match_messages_thread", "match_id", "sent_at"),)

    def to_domain(self) -> MatchMessage:
        return MatchMessage(
            id=self.id,
            match_id=self.match_id,
            sender_user_id=self.sender_user_id,
            content=self.content,
            sent_at=from_storage(self.sent_at),
            read=bool(self.read),
        )


class SystemSettingModel(Base):
    """ORM model for system_settings key/value table."""

    __tablename__ = "system_settings"

    key = Column(String(64), primary_key=True, nullable=False)
    value = Column(String(255), nullable=False)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(sorted(tables))}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
