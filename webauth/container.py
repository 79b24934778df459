from functools import cached_property

from argon2 import PasswordHasher
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from webauth.auth import build_password_hasher
from webauth.clock import Clock, utcnow
from webauth.config import Settings
from webauth.database import create_db_engine, create_session_factory
from webauth.services import AuthService, CaptchaService
from webauth.stores import CaptchaStore, CredentialStore, SessionStore
from webauth.sweeper import ExpirySweeper


class Container:
    """
    Service graph built once at startup and shared by all requests.

    Route handlers reach it through the get_container dependency;
    nothing here is a module-level global.
    """

    def __init__(self, settings: Settings, clock: Clock = utcnow) -> None:
        self.settings = settings
        self.clock = clock

    @cached_property
    def engine(self) -> Engine:
        return create_db_engine(self.settings.database_url, echo=self.settings.debug)

    @cached_property
    def session_factory(self) -> sessionmaker:
        return create_session_factory(self.engine)

    @cached_property
    def password_hasher(self) -> PasswordHasher:
        return build_password_hasher(self.settings)

    @cached_property
    def credential_store(self) -> CredentialStore:
        return CredentialStore(self.session_factory, self.password_hasher, clock=self.clock)

    @cached_property
    def session_store(self) -> SessionStore:
        return SessionStore(self.session_factory, clock=self.clock)

    @cached_property
    def captcha_store(self) -> CaptchaStore:
        return CaptchaStore(self.session_factory, clock=self.clock)

    @cached_property
    def captcha_service(self) -> CaptchaService:
        return CaptchaService(
            self.captcha_store,
            expire_minutes=self.settings.captcha_expire_minutes,
            single_use=self.settings.captcha_single_use,
            clock=self.clock,
        )

    @cached_property
    def auth_service(self) -> AuthService:
        return AuthService(
            credentials=self.credential_store,
            sessions=self.session_store,
            captchas=self.captcha_service,
            session_expire_hours=self.settings.session_expire_hours,
            revoke_on_logout=self.settings.logout_revokes_session,
            clock=self.clock,
        )

    @cached_property
    def sweeper(self) -> ExpirySweeper:
        return ExpirySweeper(
            self.session_store,
            self.captcha_store,
            interval_seconds=self.settings.sweep_interval_seconds,
        )

    def close(self) -> None:
        if "engine" in self.__dict__:
            self.engine.dispose()
