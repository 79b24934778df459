"""
SQLAlchemy-backed stores for users, sessions and captchas.

Every operation is its own short unit of work. Driver failures are logged
here and re-raised as StoreError, so callers only ever see the error
taxonomy in webauth.errors.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from functools import cached_property
import secrets
from typing import Iterator, Optional

from argon2 import PasswordHasher
from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DbSession, sessionmaker

from webauth.auth import hash_password, verify_password
from webauth.clock import Clock, utcnow
from webauth.errors import AuthError, ConflictError, NotFoundError, StoreError
from webauth.models import Captcha, Session as SessionModel, User


@dataclass(frozen=True)
class UserRecord:
    """User as seen outside the store. Carries no password hash."""
    id: int
    first_name: str
    last_name: str
    email: str
    created_at: datetime


def _log_store_failure(action: str, exc: SQLAlchemyError) -> None:
    # Driver message only; statement parameters can contain password hashes
    detail = getattr(exc, "orig", None) or exc.__class__.__name__
    logger.error(f"{action} failed: {detail}")


class _SqlStore:
    def __init__(self, session_factory: sessionmaker, clock: Clock = utcnow):
        self._sessions = session_factory
        self._clock = clock

    @contextmanager
    def _unit_of_work(self, action: str) -> Iterator[DbSession]:
        try:
            with self._sessions.begin() as db:
                yield db
        except SQLAlchemyError as exc:
            _log_store_failure(f"{self.__class__.__name__}.{action}", exc)
            raise StoreError() from exc


class CredentialStore(_SqlStore):
    def __init__(self, session_factory: sessionmaker, hasher: PasswordHasher, clock: Clock = utcnow):
        super().__init__(session_factory, clock)
        self._hasher = hasher

    @cached_property
    def _dummy_hash(self) -> str:
        # Verified against when the email is unknown so both failure paths cost the same
        return self._hasher.hash(secrets.token_hex(16))

    def create_user(self, first_name: str, last_name: str, email: str, password: str) -> int:
        """
        Hash the password and insert the user. Returns the new user id.

        Raises ConflictError when the email is already registered; the
        unique constraint decides, not any earlier existence check.
        """
        password_hash = hash_password(self._hasher, password)
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=password_hash,
        )

        try:
            with self._sessions.begin() as db:
                db.add(user)
                db.flush()
                user_id = user.id
        except IntegrityError as exc:
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            _log_store_failure("CredentialStore.create_user", exc)
            raise StoreError() from exc
        return user_id

    def email_exists(self, email: str) -> bool:
        with self._unit_of_work("email_exists") as db:
            return db.query(User.id).filter(User.email == email).first() is not None

    def authenticate(self, email: str, password: str) -> int:
        """
        Return the user id for matching credentials.

        Unknown email and wrong password both raise the same AuthError.
        """
        with self._unit_of_work("authenticate") as db:
            row = db.query(User.id, User.password_hash).filter(User.email == email).first()

        if row is None:
            verify_password(self._hasher, password, self._dummy_hash)
            raise AuthError()

        user_id, password_hash = row
        if not verify_password(self._hasher, password, password_hash):
            raise AuthError()
        return user_id

    def get_user_by_id(self, user_id: int) -> UserRecord:
        with self._unit_of_work("get_user_by_id") as db:
            user = db.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            return UserRecord(
                id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                email=user.email,
                created_at=user.created_at,
            )

    def update_profile(self, user_id: int, first_name: str, last_name: str) -> None:
        with self._unit_of_work("update_profile") as db:
            db.query(User).filter(User.id == user_id).update(
                {User.first_name: first_name, User.last_name: last_name},
                synchronize_session=False,
            )

    def verify_password(self, user_id: int, password: str) -> None:
        """Raise AuthError unless password matches the user's stored hash."""
        with self._unit_of_work("verify_password") as db:
            password_hash = db.query(User.password_hash).filter(User.id == user_id).scalar()

        if password_hash is None:
            raise NotFoundError("User not found")
        if not verify_password(self._hasher, password, password_hash):
            raise AuthError("Incorrect current password")

    def update_password(self, user_id: int, new_password: str) -> None:
        password_hash = hash_password(self._hasher, new_password)
        with self._unit_of_work("update_password") as db:
            db.query(User).filter(User.id == user_id).update(
                {User.password_hash: password_hash},
                synchronize_session=False,
            )


class SessionStore(_SqlStore):
    """
    token -> (user, expiry) rows.

    Lookups that decide validity always filter on expires_at > now,
    so an expired row that the sweeper has not purged yet behaves
    exactly like a missing one.
    """

    def create(self, token: str, user_id: int, expires_at: datetime) -> None:
        with self._unit_of_work("create") as db:
            db.add(SessionModel(token=token, user_id=user_id, expires_at=expires_at))

    def resolve(self, token: str) -> Optional[int]:
        with self._unit_of_work("resolve") as db:
            return db.query(SessionModel.user_id).filter(
                SessionModel.token == token,
                SessionModel.expires_at > self._clock(),
            ).scalar()

    def find_valid_token(self, user_id: int) -> Optional[str]:
        """Token of the user's live session, if any. Latest expiry wins."""
        with self._unit_of_work("find_valid_token") as db:
            return db.query(SessionModel.token).filter(
                SessionModel.user_id == user_id,
                SessionModel.expires_at > self._clock(),
            ).order_by(SessionModel.expires_at.desc()).limit(1).scalar()

    def renew(self, token: str, expires_at: datetime) -> None:
        with self._unit_of_work("renew") as db:
            db.query(SessionModel).filter(SessionModel.token == token).update(
                {SessionModel.expires_at: expires_at},
                synchronize_session=False,
            )

    def delete(self, token: str) -> bool:
        """
        Delete session (logout).

        Returns True if session was deleted, False if not found.
        """
        with self._unit_of_work("delete") as db:
            result = db.query(SessionModel).filter(
                SessionModel.token == token
            ).delete(synchronize_session=False)
        return result > 0

    def delete_expired(self) -> int:
        """
        Remove expired sessions. Returns number of rows deleted.
        """
        with self._unit_of_work("delete_expired") as db:
            return db.query(SessionModel).filter(
                SessionModel.expires_at < self._clock()
            ).delete(synchronize_session=False)


class CaptchaStore(_SqlStore):
    def create(self, captcha_id: str, answer: str, expires_at: datetime) -> None:
        with self._unit_of_work("create") as db:
            db.add(Captcha(id=captcha_id, answer=answer, expires_at=expires_at))

    def get_answer(self, captcha_id: str) -> Optional[str]:
        with self._unit_of_work("get_answer") as db:
            return db.query(Captcha.answer).filter(
                Captcha.id == captcha_id,
                Captcha.expires_at > self._clock(),
            ).scalar()

    def delete(self, captcha_id: str) -> None:
        with self._unit_of_work("delete") as db:
            db.query(Captcha).filter(Captcha.id == captcha_id).delete(synchronize_session=False)

    def delete_expired(self) -> int:
        with self._unit_of_work("delete_expired") as db:
            return db.query(Captcha).filter(
                Captcha.expires_at < self._clock()
            ).delete(synchronize_session=False)
