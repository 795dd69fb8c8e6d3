"""Public facade of the matching core.

``MatchingService`` is what the surrounding HTTP layer calls. Every method
opens exactly one ``get_session()`` block, so each call is one transaction:
it commits as a whole or rolls back every partial write. Ranking, stats and
lookups use read-only sessions.

Inputs are validated here before any session is opened: ids must be positive
integers and kind/action strings must name a known enum member.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from vinculo.config.models import AppConfig
from vinculo.domain.exceptions import AuthorizationError, NotFoundError, ValidationError
from vinculo.domain.models import (
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
from vinculo.keywords import KeywordLinker, KeywordStore, LinkSummary
from vinculo.logging import get_logger, log_context
from vinculo.matches import MatchLifecycle, MatchMessaging, SystemToggle
from vinculo.matching import MatchFinder, RankedMatch
from vinculo.persistence import (
    CapacityRepository,
    ChallengeRepository,
    KeywordRepository,
    MatchRepository,
    MessageRepository,
    SettingsRepository,
    get_session,
)
from vinculo.utils.timestamps import utc_now

logger = get_logger(__name__, component="service")


def _require_id(value: Any, name: str = "id") -> int:
    """Return ``value`` if it is a positive int, else raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"Invalid {name}: {value!r} (expected a positive integer)")
    return value


def _parse_kind(kind: Union[EntityKind, str]) -> EntityKind:
    try:
        return EntityKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in EntityKind)
        raise ValidationError(f"Unknown entity kind {kind!r}. Must be one of: {valid}")


def _parse_action(action: Union[MatchAction, str]) -> MatchAction:
    try:
        return MatchAction(action)
    except ValueError:
        valid = ", ".join(a.value for a in MatchAction)
        raise ValidationError(f"Unknown action {action!r}. Must be one of: {valid}")


def _require_actor(actor: Any) -> Actor:
    if not isinstance(actor, Actor):
        raise ValidationError("An authenticated actor is required")
    return actor


def _build_draft(model, fields: Union[Mapping[str, Any], Any]):
    if isinstance(fields, model):
        return fields
    try:
        return model.model_validate(fields)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid {model.__name__}: {problems}") from e


class MatchingService:
    """Facade over keyword linking, ranking, the match lifecycle and messaging.

    Example:
        >>> service = MatchingService(app_config)
        >>> externo = Actor(user_id=1, role=Role.EXTERNO)
        >>> challenge = service.create_challenge(externo, {"title": "Agua"}, "agua, riego")
        >>> service.rank_matches(challenge.id, EntityKind.CHALLENGE)
    """

    def __init__(self, config: Optional[AppConfig] = None, logger_instance: Optional[logging.Logger] = None):
        """Initialize MatchingService.

        Args:
            config: Application configuration (defaults to AppConfig())
            logger_instance: Logger instance (defaults to module logger)
        """
        self.config = config or AppConfig()
        self.logger = logger_instance or logger

    # Component wiring, one set per session

    def _toggle(self, session) -> SystemToggle:
        return SystemToggle(SettingsRepository(session))

    def _lifecycle(self, session) -> MatchLifecycle:
        return MatchLifecycle(
            match_repo=MatchRepository(session),
            challenge_repo=ChallengeRepository(session),
            capacity_repo=CapacityRepository(session),
            toggle=self._toggle(session),
        )

    def _messaging(self, session) -> MatchMessaging:
        return MatchMessaging(
            match_repo=MatchRepository(session),
            message_repo=MessageRepository(session),
            toggle=self._toggle(session),
            max_content_length=self.config.messaging.max_content_length,
        )

    def _finder(self, session) -> MatchFinder:
        return MatchFinder(
            keyword_repo=KeywordRepository(session),
            challenge_repo=ChallengeRepository(session),
            capacity_repo=CapacityRepository(session),
            max_results=self.config.matching.max_results,
        )

    # Entities and keywords

    def create_challenge(
        self,
        owner: Actor,
        fields: Union[ChallengeDraft, Mapping[str, Any]],
        keywords: Optional[str] = None,
    ) -> Challenge:
        """Register a challenge and link its keywords in one transaction.

        Challenge links count toward keyword popularity.

        Args:
            owner: Registering user (role ``externo``)
            fields: ChallengeDraft or mapping of its fields
            keywords: Comma-separated keyword text

        Returns:
            The stored challenge with its sorted keyword list

        Raises:
            ValidationError: If the fields are invalid
            AuthorizationError: If the owner's role cannot register challenges
        """
        owner = _require_actor(owner)
        if owner.role is not Role.EXTERNO:
            raise AuthorizationError(f"Role '{owner.role.value}' cannot register challenges")
        draft = _build_draft(ChallengeDraft, fields)

        with get_session() as session, log_context(actor_user_id=owner.user_id):
            challenge_repo = ChallengeRepository(session)
            keyword_repo = KeywordRepository(session)

            challenge_id = challenge_repo.add(owner.user_id, draft, utc_now())
            summary = KeywordLinker(keyword_repo).attach(
                challenge_id, EntityKind.CHALLENGE, keywords, increment_popularity=True
            )

            self.logger.info(
                f"Challenge {challenge_id} registered",
                extra={
                    "event": "challenge.created",
                    "challenge_id": challenge_id,
                    "keyword_count": summary.tokens_processed,
                },
            )
            return challenge_repo.get(challenge_id, keyword_repo.get_texts_for(EntityKind.CHALLENGE, challenge_id))

    def create_capacity(
        self,
        owner: Actor,
        fields: Union[CapacityDraft, Mapping[str, Any]],
        keywords: Optional[str] = None,
    ) -> Capacity:
        """Register a research capacity and link its keywords in one transaction.

        Capacity links never change keyword popularity.

        Raises:
            ValidationError: If the fields are invalid
            AuthorizationError: If the owner's role cannot register capacities
        """
        owner = _require_actor(owner)
        if owner.role is not Role.UNSA:
            raise AuthorizationError(f"Role '{owner.role.value}' cannot register capacities")
        draft = _build_draft(CapacityDraft, fields)

        with get_session() as session, log_context(actor_user_id=owner.user_id):
            capacity_repo = CapacityRepository(session)
            keyword_repo = KeywordRepository(session)

            capacity_id = capacity_repo.add(owner.user_id, draft, utc_now())
            summary = KeywordLinker(keyword_repo).attach(
                capacity_id, EntityKind.CAPACITY, keywords, increment_popularity=False
            )

            self.logger.info(
                f"Capacity {capacity_id} registered",
                extra={
                    "event": "capacity.created",
                    "capacity_id": capacity_id,
                    "keyword_count": summary.tokens_processed,
                },
            )
            return capacity_repo.get(capacity_id, keyword_repo.get_texts_for(EntityKind.CAPACITY, capacity_id))

    def resolve_and_link_keywords(
        self,
        entity_id: int,
        kind: Union[EntityKind, str],
        raw_text: Optional[str],
        increment_popularity: bool = False,
    ) -> LinkSummary:
        """Attach keyword text to an existing challenge or capacity.

        Raises:
            ValidationError: If the id or kind is malformed, or popularity is requested for a capacity
            NotFoundError: If the entity does not exist
        """
        entity_id = _require_id(entity_id, "entity id")
        kind = _parse_kind(kind)
        if increment_popularity and kind is not EntityKind.CHALLENGE:
            raise ValidationError("Only challenge keywords count toward popularity")

        with get_session() as session:
            owner_lookup = (
                ChallengeRepository(session) if kind is EntityKind.CHALLENGE else CapacityRepository(session)
            )
            if owner_lookup.get_owner_user_id(entity_id) is None:
                raise NotFoundError(f"{kind.value.capitalize()} {entity_id} not found")

            return KeywordLinker(KeywordRepository(session)).attach(
                entity_id, kind, raw_text, increment_popularity=increment_popularity
            )

    def get_challenge(self, challenge_id: int) -> Challenge:
        challenge_id = _require_id(challenge_id, "challenge id")
        with get_session(read_only=True) as session:
            keywords = KeywordRepository(session).get_texts_for(EntityKind.CHALLENGE, challenge_id)
            challenge = ChallengeRepository(session).get(challenge_id, keywords)
            if challenge is None:
                raise NotFoundError(f"Challenge {challenge_id} not found")
            return challenge

    def get_capacity(self, capacity_id: int) -> Capacity:
        capacity_id = _require_id(capacity_id, "capacity id")
        with get_session(read_only=True) as session:
            keywords = KeywordRepository(session).get_texts_for(EntityKind.CAPACITY, capacity_id)
            capacity = CapacityRepository(session).get(capacity_id, keywords)
            if capacity is None:
                raise NotFoundError(f"Capacity {capacity_id} not found")
            return capacity

    def list_challenges_for_owner(self, actor: Actor) -> List[Challenge]:
        """The actor's own challenges with keywords, newest first."""
        actor = _require_actor(actor)
        with get_session(read_only=True) as session:
            return ChallengeRepository(session).list_for_owner(actor.user_id)

    def list_capacities_for_owner(self, actor: Actor) -> List[Capacity]:
        """The actor's own capacities with keywords, newest first."""
        actor = _require_actor(actor)
        with get_session(read_only=True) as session:
            return CapacityRepository(session).list_for_owner(actor.user_id)

    def list_all_challenges(self, actor: Actor) -> List[Challenge]:
        """Every challenge, newest first (admins only).

        Raises:
            AuthorizationError: If the actor is not an administrator
        """
        actor = _require_actor(actor)
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can list every challenge")
        with get_session(read_only=True) as session:
            return ChallengeRepository(session).list_all()

    def list_all_capacities(self, actor: Actor) -> List[Capacity]:
        actor = _require_actor(actor)
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can list every capacity")
        with get_session(read_only=True) as session:
            return CapacityRepository(session).list_all()

    def keyword_stats(self, limit: Optional[int] = None) -> List[Keyword]:
        """Most popular challenge keywords.

        Args:
            limit: Number of keywords (defaults to matching.keyword_stats_limit)
        """
        if limit is None:
            limit = self.config.matching.keyword_stats_limit
        limit = _require_id(limit, "limit")

        with get_session(read_only=True) as session:
            return KeywordStore(KeywordRepository(session)).popular(limit)

    # Ranking

    def rank_matches(self, entity_id: int, kind: Union[EntityKind, str]) -> List[RankedMatch]:
        """Rank the opposite side for one entity by shared keywords.

        Not gated by the system toggle.
        """
        entity_id = _require_id(entity_id, "entity id")
        kind = _parse_kind(kind)

        with get_session(read_only=True) as session:
            return self._finder(session).rank(entity_id, kind)

    # Match lifecycle

    def create_match(self, challenge_id: int, capacity_id: int, actor: Actor) -> int:
        """Request a match between a challenge and a capacity.

        Returns:
            New match id

        Raises:
            ValidationError: If an id is malformed
            SystemDisabledError: If the match system is off
            NotFoundError: If either entity does not exist
            AuthorizationError: If the actor may not request this pairing
            ConflictError: If the pair already has a match request
        """
        challenge_id = _require_id(challenge_id, "challenge id")
        capacity_id = _require_id(capacity_id, "capacity id")
        actor = _require_actor(actor)

        with get_session() as session:
            return self._lifecycle(session).create(challenge_id, capacity_id, actor)

    def transition_match(self, match_id: int, action: Union[MatchAction, str], actor: Actor) -> MatchState:
        """Accept, reject or cancel a match request.

        Returns:
            The resulting state
        """
        match_id = _require_id(match_id, "match id")
        action = _parse_action(action)
        actor = _require_actor(actor)

        with get_session() as session:
            return self._lifecycle(session).transition(match_id, action, actor)

    def get_match(self, match_id: int, actor: Actor) -> MatchRequest:
        match_id = _require_id(match_id, "match id")
        actor = _require_actor(actor)

        with get_session(read_only=True) as session:
            return self._lifecycle(session).get(match_id, actor)

    def list_matches_for_user(self, actor: Actor) -> List[MatchRequest]:
        actor = _require_actor(actor)
        with get_session(read_only=True) as session:
            return self._lifecycle(session).list_for_user(actor)

    def list_all_matches(self, actor: Actor) -> List[MatchRequest]:
        actor = _require_actor(actor)
        with get_session(read_only=True) as session:
            return self._lifecycle(session).list_all(actor)

    # System toggle

    def get_system_enabled(self) -> bool:
        with get_session(read_only=True) as session:
            return self._toggle(session).get_enabled()

    def set_system_enabled(self, enabled: bool, actor: Actor) -> None:
        """Switch the match system on or off (admins only)."""
        actor = _require_actor(actor)
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can change the match system toggle")

        with get_session() as session, log_context(actor_user_id=actor.user_id):
            self._toggle(session).set_enabled(bool(enabled))

    # Messaging

    def list_messages(self, match_id: int, actor: Actor) -> List[MatchMessage]:
        match_id = _require_id(match_id, "match id")
        actor = _require_actor(actor)

        with get_session(read_only=True) as session:
            return self._messaging(session).list_messages(match_id, actor)

    def send_message(self, match_id: int, actor: Actor, content: str) -> MatchMessage:
        match_id = _require_id(match_id, "match id")
        actor = _require_actor(actor)

        with get_session() as session:
            return self._messaging(session).send(match_id, actor, content)

    def mark_read(self, match_id: int, actor: Actor) -> int:
        """Mark the counterpart's messages read; returns how many changed."""
        match_id = _require_id(match_id, "match id")
        actor = _require_actor(actor)

        with get_session() as session:
            return self._messaging(session).mark_read(match_id, actor)
