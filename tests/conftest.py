from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from webauth.clock import utcnow
from webauth.config import Settings
from webauth.container import Container
from webauth.database import init_db
from webauth.main import create_app

STRONG_PASSWORD = "Password123!"


class FrozenClock:
    """Clock that only moves when a test advances it."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        sweep_enabled=False,
        password_hash_time_cost=1,
        password_hash_memory_cost=8,
        password_hash_parallelism=1,
    )


@pytest.fixture
def container(settings, clock):
    container = Container(settings, clock=clock)
    init_db(container.engine)
    yield container
    container.close()


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_user(container):
    """Insert a user directly through the credential store."""
    counter = iter(range(1, 10_000))

    def _make_user(email=None, password=STRONG_PASSWORD, first_name="Ada", last_name="Lovelace"):
        email = email or f"user{next(counter)}@example.com"
        user_id = container.credential_store.create_user(first_name, last_name, email, password)
        return user_id, email

    return _make_user
