"""Concurrent writers against a file-backed SQLite database."""

import threading

from vinculo.config.models import AppConfig
from vinculo.domain.exceptions import ConflictError, ForbiddenTransitionError
from vinculo.domain.models import Actor, MatchAction, MatchState, Role
from vinculo.persistence import KeywordRepository, get_session
from vinculo.service import MatchingService
from tests.helpers import make_capacity, make_challenge

WORKERS = 4


def _run_concurrently(target, count=WORKERS):
    """Start ``count`` threads on ``target`` behind a barrier and collect outcomes."""
    barrier = threading.Barrier(count)
    outcomes = []
    lock = threading.Lock()

    def worker(index):
        barrier.wait()
        try:
            result = target(index)
        except Exception as e:  # collected for assertions
            result = e
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    return outcomes


class TestConcurrentWrites:
    def test_one_request_per_pair(self, file_database):
        service = MatchingService(AppConfig())
        externo = Actor(user_id=10, role=Role.EXTERNO)
        unsa = Actor(user_id=20, role=Role.UNSA)
        service.set_system_enabled(True, Actor(user_id=1, role=Role.ADMIN))
        challenge = make_challenge(service, externo, "agua")
        capacity = make_capacity(service, unsa, "agua")

        outcomes = _run_concurrently(lambda _: service.create_match(challenge.id, capacity.id, externo))

        created = [o for o in outcomes if isinstance(o, int)]
        conflicts = [o for o in outcomes if isinstance(o, ConflictError)]
        assert len(created) == 1
        assert len(conflicts) == WORKERS - 1
        assert len(service.list_matches_for_user(externo)) == 1

    def test_one_transition_wins(self, file_database):
        service = MatchingService(AppConfig())
        externo = Actor(user_id=10, role=Role.EXTERNO)
        unsa = Actor(user_id=20, role=Role.UNSA)
        service.set_system_enabled(True, Actor(user_id=1, role=Role.ADMIN))
        challenge = make_challenge(service, externo, "agua")
        capacity = make_capacity(service, unsa, "agua")
        match_id = service.create_match(challenge.id, capacity.id, externo)

        # Recipient accepts while requester cancels. Writers serialize, so the
        # loser either sees the new state up front or loses the guarded update.
        def act(index):
            if index % 2:
                return service.transition_match(match_id, MatchAction.ACEPTAR, unsa)
            return service.transition_match(match_id, MatchAction.CANCELAR, externo)

        outcomes = _run_concurrently(act, count=2)

        states = [o for o in outcomes if isinstance(o, MatchState)]
        assert len(states) == 1
        loser = [o for o in outcomes if not isinstance(o, MatchState)][0]
        assert isinstance(loser, (ConflictError, ForbiddenTransitionError))
        assert service.get_match(match_id, externo).state is states[0]

    def test_keyword_created_once(self, file_database):
        def resolve(_):
            with get_session() as session:
                keyword, created = KeywordRepository(session).get_or_create("agua")
                return created

        outcomes = _run_concurrently(resolve)

        assert outcomes.count(True) == 1
        assert outcomes.count(False) == WORKERS - 1
        with get_session(read_only=True) as session:
            assert KeywordRepository(session).get_by_text("agua") is not None
