"""Tests for keyword normalization, storage and linking."""

import pytest
from sqlalchemy import func, select

from vinculo.domain.models import EntityKind
from vinculo.keywords import KeywordLinker, KeywordStore, normalize_keyword, split_keywords
from vinculo.persistence import (
    CapacityRepository,
    ChallengeRepository,
    DataIntegrityError,
    KeywordRepository,
    get_session,
)
from vinculo.persistence.schema import ChallengeKeywordModel, KeywordModel
from vinculo.domain.models import CapacityDraft, ChallengeDraft
from vinculo.utils.timestamps import utc_now


class TestNormalizeKeyword:
    """Tests for normalize_keyword."""

    def test_trims_and_lowercases(self):
        assert normalize_keyword("  Machine Learning ") == "machine learning"

    def test_empty_and_blank_are_dropped(self):
        assert normalize_keyword("") is None
        assert normalize_keyword("   ") is None
        assert normalize_keyword(None) is None

    def test_length_limit(self):
        assert normalize_keyword("a" * 100) == "a" * 100
        assert normalize_keyword("a" * 101) is None

    def test_accents_are_kept(self):
        assert normalize_keyword("ENERGÍA") == "energía"


class TestSplitKeywords:
    """Tests for split_keywords."""

    def test_deduplicates_case_insensitively(self):
        assert split_keywords("IA, ia , Ia") == ["ia"]

    def test_preserves_first_seen_order(self):
        assert split_keywords("salud, IA, agua, ia") == ["salud", "ia", "agua"]

    def test_drops_empty_and_oversized_tokens(self):
        assert split_keywords(f"agua,, ,{'x' * 101},riego") == ["agua", "riego"]

    def test_empty_input(self):
        assert split_keywords("") == []
        assert split_keywords(None) == []


def _new_challenge(session, owner_user_id=10):
    return ChallengeRepository(session).add(owner_user_id, ChallengeDraft(title="Desafío"), utc_now())


def _new_capacity(session, owner_user_id=20):
    return CapacityRepository(session).add(owner_user_id, CapacityDraft(description="Capacidad"), utc_now())


def _keyword(session, text):
    return session.execute(select(KeywordModel).where(KeywordModel.text == text)).scalar_one_or_none()


class TestKeywordStore:
    """Tests for KeywordStore against the database."""

    def test_resolve_creates_once(self, database):
        with get_session() as session:
            store = KeywordStore(KeywordRepository(session))
            first, created_first = store.resolve("Agua")
            second, created_second = store.resolve(" agua ")

        assert created_first is True
        assert created_second is False
        assert first.id == second.id
        assert first.text == "agua"

    def test_resolve_rejects_invalid_token(self, database):
        with get_session() as session:
            store = KeywordStore(KeywordRepository(session))
            with pytest.raises(ValueError):
                store.resolve("   ")

    def test_bump_popularity(self, database):
        with get_session() as session:
            store = KeywordStore(KeywordRepository(session))
            keyword, _ = store.resolve("riego")
            store.bump_popularity(keyword.id)
            store.bump_popularity(keyword.id)

        with get_session(read_only=True) as session:
            assert _keyword(session, "riego").challenge_popularity == 2

    def test_popular_orders_by_popularity_then_text(self, database):
        with get_session() as session:
            store = KeywordStore(KeywordRepository(session))
            store.resolve("zinc", initial_popularity=3)
            store.resolve("agua", initial_popularity=3)
            store.resolve("salud", initial_popularity=5)
            store.resolve("unused", initial_popularity=0)

        with get_session(read_only=True) as session:
            popular = KeywordStore(KeywordRepository(session)).popular(10)

        assert [k.text for k in popular] == ["salud", "agua", "zinc"]

    def test_popular_respects_limit(self, database):
        with get_session() as session:
            store = KeywordStore(KeywordRepository(session))
            for text in ("a", "b", "c"):
                store.resolve(text, initial_popularity=1)
            assert len(store.popular(2)) == 2
            assert store.popular(0) == []


class TestKeywordLinker:
    """Tests for KeywordLinker.attach."""

    def test_repeated_token_creates_one_keyword_and_one_link(self, database):
        with get_session() as session:
            challenge_id = _new_challenge(session)
            summary = KeywordLinker(KeywordRepository(session)).attach(
                challenge_id, EntityKind.CHALLENGE, "IA, ia , Ia", increment_popularity=True
            )

        assert summary.tokens_processed == 1
        assert summary.keywords_created == 1
        assert summary.links_created == 1

        with get_session(read_only=True) as session:
            assert session.execute(select(func.count()).select_from(KeywordModel)).scalar_one() == 1
            assert session.execute(select(func.count()).select_from(ChallengeKeywordModel)).scalar_one() == 1
            assert _keyword(session, "ia").challenge_popularity == 1

    def test_relinking_never_double_increments(self, database):
        with get_session() as session:
            challenge_id = _new_challenge(session)
            linker = KeywordLinker(KeywordRepository(session))
            linker.attach(challenge_id, EntityKind.CHALLENGE, "agua, riego", increment_popularity=True)
            again = linker.attach(challenge_id, EntityKind.CHALLENGE, "Agua, RIEGO", increment_popularity=True)

        assert again.links_created == 0
        assert again.links_skipped == 2

        with get_session(read_only=True) as session:
            assert _keyword(session, "agua").challenge_popularity == 1
            assert session.execute(select(func.count()).select_from(ChallengeKeywordModel)).scalar_one() == 2

    def test_existing_keyword_is_bumped_for_new_challenge_link(self, database):
        with get_session() as session:
            linker = KeywordLinker(KeywordRepository(session))
            first = _new_challenge(session)
            second = _new_challenge(session)
            linker.attach(first, EntityKind.CHALLENGE, "agua", increment_popularity=True)
            linker.attach(second, EntityKind.CHALLENGE, "agua", increment_popularity=True)

        with get_session(read_only=True) as session:
            assert _keyword(session, "agua").challenge_popularity == 2

    def test_capacity_links_leave_popularity_untouched(self, database):
        with get_session() as session:
            linker = KeywordLinker(KeywordRepository(session))
            challenge_id = _new_challenge(session)
            capacity_id = _new_capacity(session)
            linker.attach(challenge_id, EntityKind.CHALLENGE, "agua", increment_popularity=True)
            linker.attach(capacity_id, EntityKind.CAPACITY, "agua, suelos", increment_popularity=False)

        with get_session(read_only=True) as session:
            assert _keyword(session, "agua").challenge_popularity == 1
            assert _keyword(session, "suelos").challenge_popularity == 0

    def test_capacity_links_ignore_popularity_flag(self, database):
        with get_session() as session:
            linker = KeywordLinker(KeywordRepository(session))
            challenge_id = _new_challenge(session)
            capacity_id = _new_capacity(session)
            linker.attach(challenge_id, EntityKind.CHALLENGE, "agua", increment_popularity=True)
            linker.attach(capacity_id, EntityKind.CAPACITY, "agua, suelos", increment_popularity=True)

        with get_session(read_only=True) as session:
            assert _keyword(session, "agua").challenge_popularity == 1
            assert _keyword(session, "suelos").challenge_popularity == 0

    def test_empty_keyword_text_links_nothing(self, database):
        with get_session() as session:
            challenge_id = _new_challenge(session)
            summary = KeywordLinker(KeywordRepository(session)).attach(
                challenge_id, EntityKind.CHALLENGE, " , ,", increment_popularity=True
            )

        assert summary.tokens_processed == 0
        assert summary.links_created == 0

    def test_linking_unknown_entity_propagates_and_rolls_back(self, database):
        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                KeywordLinker(KeywordRepository(session)).attach(
                    999, EntityKind.CHALLENGE, "huérfano", increment_popularity=True
                )

        with get_session(read_only=True) as session:
            assert _keyword(session, "huérfano") is None
