from datetime import timedelta

from webauth.config import Settings
from webauth.container import Container
from webauth.database import init_db

from tests.conftest import STRONG_PASSWORD


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.session_expire_hours == 24
    assert settings.captcha_expire_minutes == 5
    assert settings.sweep_interval_seconds == 3600
    assert settings.cookie_name == "session_token"
    assert settings.logout_revokes_session is False
    assert settings.captcha_single_use is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SESSION_EXPIRE_HOURS", "12")
    monkeypatch.setenv("captcha_single_use", "true")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")

    settings = Settings(_env_file=None)

    assert settings.session_expire_hours == 12
    assert settings.captcha_single_use is True
    assert settings.database_url == "sqlite://"


def test_container_applies_settings(settings, clock):
    settings = settings.model_copy(update={"session_expire_hours": 1, "logout_revokes_session": True})
    container = Container(settings, clock=clock)
    init_db(container.engine)
    try:
        user_id = container.credential_store.create_user("Ada", "Lovelace", "ada@example.com", STRONG_PASSWORD)
        session = container.auth_service.login("ada@example.com", STRONG_PASSWORD)

        assert session.user_id == user_id
        assert session.expires_at == clock() + timedelta(hours=1)

        container.auth_service.logout(session.token)
        assert container.auth_service.resolve(session.token) is None
    finally:
        container.close()
