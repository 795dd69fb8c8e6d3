"""Unit tests for persistence layer."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from vinculo.domain.models import (
    CapacityDraft,
    ChallengeDraft,
    EntityKind,
    MatchState,
)
from vinculo.persistence import (
    CapacityRepository,
    ChallengeRepository,
    DatabaseConnectionError,
    DataIntegrityError,
    DuplicateRecordError,
    KeywordRepository,
    MatchRepository,
    MessageRepository,
    SettingsRepository,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from vinculo.persistence.database import _redact_url
from vinculo.persistence.schema import ChallengeModel, MatchRequestModel

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_success(self, tmp_path):
        """Test successful database initialization."""
        db_file = tmp_path / "test.db"
        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        with get_session() as session:
            assert session is not None

        close_database()

    def test_init_database_creates_parent_directories(self, tmp_path):
        """Test initialization creates parent directories if missing."""
        db_file = tmp_path / "subdir" / "nested" / "test.db"
        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        close_database()

    def test_init_database_invalid_url_raises_error(self):
        """Test initialization with invalid URL raises DatabaseConnectionError."""
        with pytest.raises(DatabaseConnectionError):
            init_database("")

        with pytest.raises(DatabaseConnectionError):
            init_database(None)

    def test_schema_creation_is_idempotent(self, tmp_path):
        """Test schema creation can run multiple times."""
        db_url = f"sqlite:///{tmp_path / 'test.db'}"
        init_database(db_url)
        init_database(db_url)

        with get_session(read_only=True) as session:
            result = session.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
            tables = {row[0] for row in result.fetchall()}

        assert {
            "keywords",
            "challenge_keywords",
            "capacity_keywords",
            "challenges",
            "capacities",
            "match_requests",
            "match_messages",
            "system_settings",
        } <= tables
        close_database()

    def test_foreign_keys_enabled(self, database):
        with get_session(read_only=True) as session:
            assert session.execute(text("PRAGMA foreign_keys")).scalar_one() == 1

    def test_get_session_without_init_raises_error(self):
        close_database()
        with pytest.raises(DatabaseConnectionError, match="Database not initialized"):
            with get_session():
                pass
        with pytest.raises(DatabaseConnectionError):
            get_engine()

    def test_redact_url(self):
        assert _redact_url("postgresql://user:secret@db:5432/vinculo") == "postgresql://user:***@db:5432/vinculo"
        assert _redact_url("sqlite:///./data/vinculo.db") == "sqlite:///./data/vinculo.db"


class TestSessionManagement:
    """Tests for session transaction handling."""

    def test_session_commits_on_success(self, database):
        with get_session() as session:
            ChallengeRepository(session).add(10, ChallengeDraft(title="Persistido"), NOW)

        with get_session(read_only=True) as session:
            assert session.get(ChallengeModel, 1).title == "Persistido"

    def test_session_rolls_back_on_exception(self, database):
        with pytest.raises(ValueError):
            with get_session() as session:
                ChallengeRepository(session).add(10, ChallengeDraft(title="Perdido"), NOW)
                raise ValueError("Test exception")

        with get_session(read_only=True) as session:
            assert session.get(ChallengeModel, 1) is None


@pytest.fixture
def entities(database):
    """One challenge (owner 10) and one capacity (owner 20)."""
    with get_session() as session:
        challenge_id = ChallengeRepository(session).add(10, ChallengeDraft(title="Desafío"), NOW)
        capacity_id = CapacityRepository(session).add(20, CapacityDraft(description="Capacidad"), NOW)
    return challenge_id, capacity_id


class TestEntityRepositories:
    """Tests for ChallengeRepository and CapacityRepository."""

    def test_round_trip_preserves_fields(self, entities):
        challenge_id, capacity_id = entities
        with get_session(read_only=True) as session:
            challenge = ChallengeRepository(session).get(challenge_id, ["agua"])
            capacity = CapacityRepository(session).get(capacity_id)

        assert challenge.title == "Desafío"
        assert challenge.created_at == NOW
        assert challenge.keywords == ["agua"]
        assert capacity.description == "Capacidad"
        assert capacity.keywords == []

    def test_owner_lookup(self, entities):
        challenge_id, capacity_id = entities
        with get_session(read_only=True) as session:
            assert ChallengeRepository(session).get_owner_user_id(challenge_id) == 10
            assert CapacityRepository(session).get_owner_user_id(capacity_id) == 20
            assert ChallengeRepository(session).get_owner_user_id(999) is None
            assert CapacityRepository(session).get(999) is None


class TestKeywordRepository:
    """Tests for keyword rows, links and overlap queries."""

    def test_add_link_is_idempotent(self, entities):
        challenge_id, _ = entities
        with get_session() as session:
            repo = KeywordRepository(session)
            keyword, created = repo.get_or_create("agua", 1)
            assert created is True
            assert repo.add_link(EntityKind.CHALLENGE, challenge_id, keyword.id) is True
            assert repo.add_link(EntityKind.CHALLENGE, challenge_id, keyword.id) is False
            assert repo.get_texts_for(EntityKind.CHALLENGE, challenge_id) == ["agua"]

    def test_get_or_create_returns_existing(self, database):
        with get_session() as session:
            repo = KeywordRepository(session)
            first, _ = repo.get_or_create("agua", 1)
            second, created = repo.get_or_create("agua", 1)

        assert created is False
        assert second.id == first.id

    def test_add_link_unknown_entity(self, database):
        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                repo = KeywordRepository(session)
                keyword, _ = repo.get_or_create("agua")
                repo.add_link(EntityKind.CAPACITY, 404, keyword.id)

    def test_find_shared_keywords(self, entities):
        challenge_id, capacity_id = entities
        with get_session() as session:
            repo = KeywordRepository(session)
            for text_value, kinds in (("a", "cc"), ("b", "c"), ("c", "cc"), ("d", "p")):
                keyword, _ = repo.get_or_create(text_value)
                if kinds in ("c", "cc"):
                    repo.add_link(EntityKind.CHALLENGE, challenge_id, keyword.id)
                if kinds in ("cc", "p"):
                    repo.add_link(EntityKind.CAPACITY, capacity_id, keyword.id)

        with get_session(read_only=True) as session:
            repo = KeywordRepository(session)
            assert repo.find_shared_keywords(EntityKind.CHALLENGE, challenge_id) == [
                (capacity_id, "a"),
                (capacity_id, "c"),
            ]
            assert repo.find_shared_keywords(EntityKind.CAPACITY, capacity_id) == [
                (challenge_id, "a"),
                (challenge_id, "c"),
            ]


class TestMatchRepository:
    """Tests for match request persistence."""

    def _add(self, session, challenge_id, capacity_id):
        return MatchRepository(session).add(
            challenge_id=challenge_id,
            capacity_id=capacity_id,
            requester_user_id=10,
            recipient_user_id=20,
            state=MatchState.PENDIENTE_UNSA,
            created_at=NOW,
        )

    def test_add_and_get(self, entities):
        with get_session() as session:
            match = self._add(session, *entities)

        with get_session(read_only=True) as session:
            stored = MatchRepository(session).get(match.id)

        assert stored.state is MatchState.PENDIENTE_UNSA
        assert stored.created_at == NOW
        assert stored.updated_at == NOW
        assert stored.challenge_title == "Desafío"
        assert stored.capacity_summary == "Capacidad"

    def test_duplicate_pair(self, entities):
        with get_session() as session:
            self._add(session, *entities)

        with get_session() as session:
            with pytest.raises(DuplicateRecordError):
                self._add(session, *entities)

    def test_unknown_entity_is_integrity_error_not_duplicate(self, entities):
        challenge_id, _ = entities
        with get_session() as session:
            with pytest.raises(DataIntegrityError) as exc_info:
                self._add(session, challenge_id, 999)
        assert not isinstance(exc_info.value, DuplicateRecordError)

    def test_update_state_is_guarded(self, entities):
        with get_session() as session:
            match = self._add(session, *entities)

        later = datetime(2025, 3, 2, tzinfo=timezone.utc)
        with get_session() as session:
            repo = MatchRepository(session)
            assert repo.update_state(match.id, MatchState.PENDIENTE_UNSA, MatchState.ACEPTADO, later) == 1
            assert repo.update_state(match.id, MatchState.PENDIENTE_UNSA, MatchState.CANCELADO, later) == 0
            assert repo.update_state(999, MatchState.PENDIENTE_UNSA, MatchState.CANCELADO, later) == 0

        with get_session(read_only=True) as session:
            stored = MatchRepository(session).get(match.id)
        assert stored.state is MatchState.ACEPTADO
        assert stored.updated_at == later

    def test_state_check_constraint(self, entities):
        challenge_id, capacity_id = entities
        with pytest.raises(IntegrityError):
            with get_session() as session:
                session.add(
                    MatchRequestModel(
                        challenge_id=challenge_id,
                        capacity_id=capacity_id,
                        requester_user_id=10,
                        recipient_user_id=20,
                        state="aprobado",
                        created_at="2025-03-01T09:30:00.000000Z",
                        updated_at="2025-03-01T09:30:00.000000Z",
                    )
                )


class TestMessageAndSettingsRepositories:
    """Tests for MessageRepository and SettingsRepository."""

    def test_messages_ordered_and_marked(self, entities):
        with get_session() as session:
            match = MatchRepository(session).add(*entities, 10, 20, MatchState.ACEPTADO, NOW)
            repo = MessageRepository(session)
            repo.add(match.id, 20, "segundo", datetime(2025, 3, 1, 10, tzinfo=timezone.utc))
            repo.add(match.id, 10, "primero", datetime(2025, 3, 1, 9, 45, tzinfo=timezone.utc))

        with get_session() as session:
            repo = MessageRepository(session)
            assert [m.content for m in repo.list_for_match(match.id)] == ["primero", "segundo"]
            assert repo.mark_read(match.id, 10) == 1
            assert repo.mark_read(match.id, 10) == 0

    def test_settings_upsert(self, database):
        with get_session() as session:
            repo = SettingsRepository(session)
            assert repo.get_value("matches_enabled") is None
            repo.set_value("matches_enabled", "1")
            repo.set_value("matches_enabled", "0")

        with get_session(read_only=True) as session:
            assert SettingsRepository(session).get_value("matches_enabled") == "0"
