"""Data access layer (repositories) for persistence operations.

Repositories encapsulate SQL for keywords, keyword links, challenges,
capacities, match requests, match messages and system settings, and return
domain models rather than ORM models. They flush but never commit: the caller's
``get_session()`` block owns the transaction.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vinculo.domain.models import (
    Capacity,
    CapacityDraft,
    Challenge,
    ChallengeDraft,
    EntityKind,
    Keyword,
    MatchMessage,
    MatchRequest,
    MatchState,
)
from vinculo.utils.timestamps import to_storage

from .exceptions import DataIntegrityError, DuplicateRecordError, PersistenceError
from .schema import (
    CapacityKeywordModel,
    CapacityModel,
    ChallengeKeywordModel,
    ChallengeModel,
    KeywordModel,
    MatchMessageModel,
    MatchRequestModel,
    SystemSettingModel,
)

logger = logging.getLogger(__name__)

CAPACITY_SUMMARY_LENGTH = 100

# (link model, link entity column name, entity model) per entity kind
_LINK_TABLES = {
    EntityKind.CHALLENGE: (ChallengeKeywordModel, "challenge_id", ChallengeModel),
    EntityKind.CAPACITY: (CapacityKeywordModel, "capacity_id", CapacityModel),
}


def _link_table(kind: EntityKind):
    return _LINK_TABLES[EntityKind(kind)]


class KeywordRepository:
    """Repository for keywords and the two keyword link tables."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_by_text(self, text: str) -> Optional[Keyword]:
        """Retrieve a keyword by its normalized text.

        Returns:
            Keyword domain model if found, None otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(KeywordModel).where(KeywordModel.text == text)
            keyword_model = self.session.execute(stmt).scalar_one_or_none()
            return keyword_model.to_domain() if keyword_model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving keyword '{text}': {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve keyword: {e}") from e

    def get_or_create(self, text: str, initial_popularity: int = 0) -> Tuple[Keyword, bool]:
        """Return the keyword for ``text``, inserting it if absent.

        A concurrent insert of the same text loses on the unique constraint
        inside a savepoint; the winner's row is then returned.

        Args:
            text: Normalized keyword text
            initial_popularity: Counter value for a newly created keyword

        Returns:
            Tuple of (Keyword, created)

        Raises:
            DataIntegrityError: If the insert fails for another constraint reason
            PersistenceError: If database error occurs
        """
        existing = self.get_by_text(text)
        if existing is not None:
            return existing, False

        try:
            keyword_model = KeywordModel(text=text, challenge_popularity=initial_popularity)
            with self.session.begin_nested():
                self.session.add(keyword_model)
                self.session.flush()
            return keyword_model.to_domain(), True

        except IntegrityError as e:
            logger.debug(f"Keyword '{text}' inserted concurrently, reusing existing row")
            existing = self.get_by_text(text)
            if existing is not None:
                return existing, False
            raise DataIntegrityError(f"Failed to insert keyword '{text}': {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting keyword '{text}': {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert keyword: {e}") from e

    def increment_popularity(self, keyword_id: int) -> None:
        """Increment the challenge-side popularity counter in SQL."""
        try:
            stmt = (
                update(KeywordModel)
                .where(KeywordModel.id == keyword_id)
                .values(challenge_popularity=KeywordModel.challenge_popularity + 1)
            )
            self.session.execute(stmt)
            self.session.flush()

        except SQLAlchemyError as e:
            logger.error(f"Error incrementing popularity of keyword {keyword_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to increment keyword popularity: {e}") from e

    def get_most_popular(self, limit: int) -> List[Keyword]:
        """Keywords used by at least one challenge, most popular first.

        Ties are ordered by keyword text so output is stable.
        """
        try:
            stmt = (
                select(KeywordModel)
                .where(KeywordModel.challenge_popularity > 0)
                .order_by(KeywordModel.challenge_popularity.desc(), KeywordModel.text.asc())
                .limit(limit)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving keyword stats: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve keyword stats: {e}") from e

    def link_exists(self, kind: EntityKind, entity_id: int, keyword_id: int) -> bool:
        link_model, _, _ = _link_table(kind)
        try:
            return self.session.get(link_model, (entity_id, keyword_id)) is not None
        except SQLAlchemyError as e:
            logger.error(f"Error checking {kind} keyword link: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check keyword link: {e}") from e

    def add_link(self, kind: EntityKind, entity_id: int, keyword_id: int) -> bool:
        """Link an entity to a keyword.

        Returns:
            True if a new link row was inserted, False if the pair already existed

        Raises:
            DataIntegrityError: If the entity or keyword does not exist
            PersistenceError: If database error occurs
        """
        link_model, entity_column, _ = _link_table(kind)

        if self.link_exists(kind, entity_id, keyword_id):
            return False

        try:
            with self.session.begin_nested():
                self.session.add(link_model(**{entity_column: entity_id, "keyword_id": keyword_id}))
                self.session.flush()
            return True

        except IntegrityError as e:
            # Another transaction linked the same pair first
            if self.link_exists(kind, entity_id, keyword_id):
                return False
            logger.error(
                f"Integrity error linking {kind.value} {entity_id} to keyword {keyword_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(f"Failed to link keyword: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error linking {kind.value} {entity_id} to keyword {keyword_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to link keyword: {e}") from e

    def get_texts_for(self, kind: EntityKind, entity_id: int) -> List[str]:
        """Keyword texts linked to one entity, sorted alphabetically."""
        link_model, entity_column, _ = _link_table(kind)
        try:
            stmt = (
                select(KeywordModel.text)
                .join(link_model, link_model.keyword_id == KeywordModel.id)
                .where(getattr(link_model, entity_column) == entity_id)
                .order_by(KeywordModel.text.asc())
            )
            return list(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving keywords for {kind.value} {entity_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve entity keywords: {e}") from e

    def get_texts_for_many(self, kind: EntityKind, entity_ids: List[int]) -> Dict[int, List[str]]:
        """Map entity id -> sorted keyword texts for several entities of one kind.

        Entities without links are absent from the result.
        """
        if not entity_ids:
            return {}
        link_model, entity_column, _ = _link_table(kind)
        entity_ref = getattr(link_model, entity_column)
        try:
            stmt = (
                select(entity_ref, KeywordModel.text)
                .join(KeywordModel, link_model.keyword_id == KeywordModel.id)
                .where(entity_ref.in_(entity_ids))
                .order_by(entity_ref.asc(), KeywordModel.text.asc())
            )
            texts: Dict[int, List[str]] = {}
            for entity_id, text in self.session.execute(stmt).all():
                texts.setdefault(entity_id, []).append(text)
            return texts

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving keywords for {kind.value} entities: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve entity keywords: {e}") from e

    def find_shared_keywords(self, kind: EntityKind, entity_id: int) -> List[Tuple[int, str]]:
        """Pairs of (opposite entity id, shared keyword text) for one entity.

        Joins the entity's link rows to the opposite link table on keyword id.
        Each pair appears once because both link tables have composite keys.

        Args:
            kind: Kind of the source entity
            entity_id: Source entity id

        Returns:
            List of (other_id, keyword_text), ordered by other_id then text
        """
        source_link, source_column, _ = _link_table(kind)
        target_link, target_column, _ = _link_table(EntityKind(kind).opposite)
        target_id = getattr(target_link, target_column)

        try:
            stmt = (
                select(target_id, KeywordModel.text)
                .select_from(source_link)
                .join(target_link, target_link.keyword_id == source_link.keyword_id)
                .join(KeywordModel, KeywordModel.id == source_link.keyword_id)
                .where(getattr(source_link, source_column) == entity_id)
                .order_by(target_id.asc(), KeywordModel.text.asc())
            )
            return [(row[0], row[1]) for row in self.session.execute(stmt).all()]

        except SQLAlchemyError as e:
            logger.error(f"Error finding shared keywords for {kind} {entity_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to find shared keywords: {e}") from e


class ChallengeRepository:
    """Repository for challenge rows."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, owner_user_id: int, draft: ChallengeDraft, created_at: datetime) -> int:
        """Insert a challenge and return its id (flushed, not committed)."""
        try:
            model = ChallengeModel(
                owner_user_id=owner_user_id,
                title=draft.title,
                description=draft.description,
                impact=draft.impact,
                prior_attempts=draft.prior_attempts,
                imagined_solution=draft.imagined_solution,
                attachment_url=draft.attachment_url,
                created_at=to_storage(created_at),
            )
            self.session.add(model)
            self.session.flush()
            return model.id

        except IntegrityError as e:
            logger.error(f"Integrity error inserting challenge: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert challenge: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting challenge: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert challenge: {e}") from e

    def get(self, challenge_id: int, keywords: Optional[List[str]] = None) -> Optional[Challenge]:
        try:
            model = self.session.get(ChallengeModel, challenge_id)
            return model.to_domain(keywords) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving challenge {challenge_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve challenge: {e}") from e

    def get_summaries(self, challenge_ids: List[int]) -> Dict[int, Tuple[str, int]]:
        """Map challenge id -> (title, owner_user_id) for display."""
        if not challenge_ids:
            return {}
        try:
            stmt = select(ChallengeModel.id, ChallengeModel.title, ChallengeModel.owner_user_id).where(
                ChallengeModel.id.in_(challenge_ids)
            )
            return {row[0]: (row[1], row[2]) for row in self.session.execute(stmt).all()}
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving challenge summaries: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve challenge summaries: {e}") from e

    def get_owner_user_id(self, challenge_id: int) -> Optional[int]:
        """Owning user id of a challenge, or None if it does not exist."""
        try:
            stmt = select(ChallengeModel.owner_user_id).where(ChallengeModel.id == challenge_id)
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving owner of challenge {challenge_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve challenge owner: {e}") from e

    def list_for_owner(self, owner_user_id: int) -> List[Challenge]:
        """Challenges registered by one user, newest first."""
        return self._list(owner_user_id)

    def list_all(self) -> List[Challenge]:
        return self._list()

    def _list(self, owner_user_id: Optional[int] = None) -> List[Challenge]:
        """Challenges with their keywords, newest first.

        Args:
            owner_user_id: Restrict to one owner (None lists every challenge)
        """
        try:
            stmt = select(ChallengeModel).order_by(ChallengeModel.created_at.desc(), ChallengeModel.id.desc())
            if owner_user_id is not None:
                stmt = stmt.where(ChallengeModel.owner_user_id == owner_user_id)
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing challenges: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list challenges: {e}") from e

        keywords = KeywordRepository(self.session).get_texts_for_many(
            EntityKind.CHALLENGE, [model.id for model in models]
        )
        return [model.to_domain(keywords.get(model.id, [])) for model in models]


class CapacityRepository:
    """Repository for capacity rows."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, owner_user_id: int, draft: CapacityDraft, created_at: datetime) -> int:
        """Insert a capacity and return its id (flushed, not committed)."""
        try:
            model = CapacityModel(
                owner_user_id=owner_user_id,
                description=draft.description,
                problems_solved=draft.problems_solved,
                project_types=draft.project_types,
                equipment=draft.equipment,
                internal_code=draft.internal_code,
                created_at=to_storage(created_at),
            )
            self.session.add(model)
            self.session.flush()
            return model.id

        except IntegrityError as e:
            logger.error(f"Integrity error inserting capacity: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert capacity: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting capacity: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert capacity: {e}") from e

    def get(self, capacity_id: int, keywords: Optional[List[str]] = None) -> Optional[Capacity]:
        try:
            model = self.session.get(CapacityModel, capacity_id)
            return model.to_domain(keywords) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving capacity {capacity_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve capacity: {e}") from e

    def get_summaries(self, capacity_ids: List[int]) -> Dict[int, Tuple[str, int]]:
        """Map capacity id -> (description, owner_user_id) for display."""
        if not capacity_ids:
            return {}
        try:
            stmt = select(
                CapacityModel.id, CapacityModel.description, CapacityModel.owner_user_id
            ).where(CapacityModel.id.in_(capacity_ids))
            return {row[0]: (row[1], row[2]) for row in self.session.execute(stmt).all()}
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving capacity summaries: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve capacity summaries: {e}") from e

    def get_owner_user_id(self, capacity_id: int) -> Optional[int]:
        """Owning user id of a capacity, or None if it does not exist."""
        try:
            stmt = select(CapacityModel.owner_user_id).where(CapacityModel.id == capacity_id)
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving owner of capacity {capacity_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve capacity owner: {e}") from e

    def list_for_owner(self, owner_user_id: int) -> List[Capacity]:
        """Capacities registered by one user, newest first."""
        return self._list(owner_user_id)

    def list_all(self) -> List[Capacity]:
        return self._list()

    def _list(self, owner_user_id: Optional[int] = None) -> List[Capacity]:
        try:
            stmt = select(CapacityModel).order_by(CapacityModel.created_at.desc(), CapacityModel.id.desc())
            if owner_user_id is not None:
                stmt = stmt.where(CapacityModel.owner_user_id == owner_user_id)
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing capacities: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list capacities: {e}") from e

        keywords = KeywordRepository(self.session).get_texts_for_many(
            EntityKind.CAPACITY, [model.id for model in models]
        )
        return [model.to_domain(keywords.get(model.id, [])) for model in models]


class MatchRepository:
    """Repository for match requests."""

    def __init__(self, session: Session):
        self.session = session

    def _listing_query(self):
        return (
            select(
                MatchRequestModel,
                ChallengeModel.title,
                func.substr(CapacityModel.description, 1, CAPACITY_SUMMARY_LENGTH),
            )
            .join(ChallengeModel, ChallengeModel.id == MatchRequestModel.challenge_id)
            .join(CapacityModel, CapacityModel.id == MatchRequestModel.capacity_id)
        )

    def add(
        self,
        challenge_id: int,
        capacity_id: int,
        requester_user_id: int,
        recipient_user_id: int,
        state: MatchState,
        created_at: datetime,
    ) -> MatchRequest:
        """Insert a match request.

        Raises:
            DuplicateRecordError: If a request already exists for the pair
            DataIntegrityError: For any other constraint violation
            PersistenceError: If database error occurs
        """
        timestamp = to_storage(created_at)
        model = MatchRequestModel(
            challenge_id=challenge_id,
            capacity_id=capacity_id,
            requester_user_id=requester_user_id,
            recipient_user_id=recipient_user_id,
            state=MatchState(state).value,
            created_at=timestamp,
            updated_at=timestamp,
        )

        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            if self.get_by_pair(challenge_id, capacity_id) is not None:
                raise DuplicateRecordError(
                    f"A match request already exists for challenge {challenge_id} "
                    f"and capacity {capacity_id}"
                ) from e
            logger.error(f"Integrity error inserting match request: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert match request: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting match request: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert match request: {e}") from e

    def get(self, match_id: int) -> Optional[MatchRequest]:
        """Fetch a match with its display fields, refreshing any cached row."""
        try:
            stmt = (
                self._listing_query()
                .where(MatchRequestModel.id == match_id)
                .execution_options(populate_existing=True)
            )
            row = self.session.execute(stmt).one_or_none()
            if row is None:
                return None
            return row[0].to_domain(challenge_title=row[1], capacity_summary=row[2])

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve match: {e}") from e

    def get_by_pair(self, challenge_id: int, capacity_id: int) -> Optional[MatchRequest]:
        try:
            stmt = select(MatchRequestModel).where(
                MatchRequestModel.challenge_id == challenge_id,
                MatchRequestModel.capacity_id == capacity_id,
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving match for challenge {challenge_id}/capacity {capacity_id}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to retrieve match: {e}") from e

    def list_for_user(self, user_id: int) -> List[MatchRequest]:
        """Matches where the user is requester or recipient, most recently updated first."""
        try:
            stmt = (
                self._listing_query()
                .where(
                    or_(
                        MatchRequestModel.requester_user_id == user_id,
                        MatchRequestModel.recipient_user_id == user_id,
                    )
                )
                .order_by(MatchRequestModel.updated_at.desc(), MatchRequestModel.id.desc())
            )
            return [
                row[0].to_domain(challenge_title=row[1], capacity_summary=row[2])
                for row in self.session.execute(stmt).all()
            ]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving matches for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user matches: {e}") from e

    def list_all(self) -> List[MatchRequest]:
        try:
            stmt = self._listing_query().order_by(
                MatchRequestModel.updated_at.desc(), MatchRequestModel.id.desc()
            )
            return [
                row[0].to_domain(challenge_title=row[1], capacity_summary=row[2])
                for row in self.session.execute(stmt).all()
            ]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving all matches: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve matches: {e}") from e

    def update_state(
        self,
        match_id: int,
        expected_state: MatchState,
        new_state: MatchState,
        updated_at: datetime,
    ) -> int:
        """Move a match to ``new_state`` only if it is still in ``expected_state``.

        Returns:
            Number of rows updated (0 if the match vanished or its state changed)
        """
        try:
            stmt = (
                update(MatchRequestModel)
                .where(
                    MatchRequestModel.id == match_id,
                    MatchRequestModel.state == MatchState(expected_state).value,
                )
                .values(state=MatchState(new_state).value, updated_at=to_storage(updated_at))
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error updating state of match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update match state: {e}") from e


class MessageRepository:
    """Repository for match messages."""

    def __init__(self, session: Session):
        self.session = session

    def list_for_match(self, match_id: int) -> List[MatchMessage]:
        """Messages of one thread, oldest first."""
        try:
            stmt = (
                select(MatchMessageModel)
                .where(MatchMessageModel.match_id == match_id)
                .order_by(MatchMessageModel.sent_at.asc(), MatchMessageModel.id.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving messages for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve messages: {e}") from e

    def add(self, match_id: int, sender_user_id: int, content: str, sent_at: datetime) -> MatchMessage:
        try:
            model = MatchMessageModel(
                match_id=match_id,
                sender_user_id=sender_user_id,
                content=content,
                sent_at=to_storage(sent_at),
                read=False,
            )
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error inserting message for match {match_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert message: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting message for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert message: {e}") from e

    def mark_read(self, match_id: int, reader_user_id: int) -> int:
        """Flag unread messages sent by anyone but the reader as read.

        Returns:
            Count of messages updated
        """
        try:
            stmt = (
                update(MatchMessageModel)
                .where(
                    MatchMessageModel.match_id == match_id,
                    MatchMessageModel.sender_user_id != reader_user_id,
                    MatchMessageModel.read.is_(False),
                )
                .values(read=True)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error marking messages read for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark messages as read: {e}") from e


class SettingsRepository:
    """Repository for key/value system settings."""

    def __init__(self, session: Session):
        self.session = session

    def get_value(self, key: str) -> Optional[str]:
        try:
            stmt = select(SystemSettingModel.value).where(SystemSettingModel.key == key)
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error reading setting {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read setting: {e}") from e

    def set_value(self, key: str, value: str) -> None:
        """Insert or update a setting."""
        try:
            existing = self.session.get(SystemSettingModel, key)
            if existing:
                existing.value = value
            else:
                self.session.add(SystemSettingModel(key=key, value=value))
            self.session.flush()

        except IntegrityError as e:
            logger.error(f"Integrity error writing setting {key}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to write setting: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error writing setting {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to write setting: {e}") from e
