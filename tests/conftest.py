"""Shared fixtures: an in-memory database, the service facade and actors."""

import pytest

from vinculo.config.models import AppConfig
from vinculo.domain.models import Actor, Role
from vinculo.logging.context import clear_log_context
from vinculo.persistence import close_database, init_database
from vinculo.service import MatchingService


@pytest.fixture
def database():
    """Fresh in-memory database per test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def file_database(tmp_path):
    """File-backed database, needed when several threads share the data."""
    db_url = f"sqlite:///{tmp_path / 'vinculo_test.db'}"
    init_database(db_url)
    yield db_url
    close_database()


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def service(database):
    return MatchingService(AppConfig())


@pytest.fixture
def admin():
    return Actor(user_id=1, role=Role.ADMIN)


@pytest.fixture
def externo():
    return Actor(user_id=10, role=Role.EXTERNO)


@pytest.fixture
def other_externo():
    return Actor(user_id=11, role=Role.EXTERNO)


@pytest.fixture
def unsa():
    return Actor(user_id=20, role=Role.UNSA)


@pytest.fixture
def other_unsa():
    return Actor(user_id=21, role=Role.UNSA)


@pytest.fixture
def enabled(service, admin):
    """Switch the match system on."""
    service.set_system_enabled(True, admin)
    return service
