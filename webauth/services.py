"""
Registration, login and captcha flows on top of the stores.

Flows are not transactional: each store call commits on its own, and
the users.email unique constraint rejects a concurrent duplicate
registration.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
import random
from typing import Optional

from loguru import logger

from webauth.auth import CAPTCHA_ID_BYTES, SESSION_TOKEN_BYTES, generate_token
from webauth.clock import Clock, utcnow
from webauth.errors import AuthError, ConflictError, NotFoundError, ValidationError
from webauth.stores import CaptchaStore, CredentialStore, SessionStore, UserRecord
from webauth.validation import is_valid_email, is_valid_name, is_valid_password

CAPTCHA_OPERAND_MIN = 1
CAPTCHA_OPERAND_MAX = 20
CAPTCHA_OPERATORS = ("+", "-", "*")


@dataclass(frozen=True)
class CaptchaChallenge:
    id: str
    question: str
    num1: int
    num2: int
    operator: str


@dataclass(frozen=True)
class IssuedSession:
    token: str
    user_id: int
    expires_at: datetime


@dataclass(frozen=True)
class RegistrationData:
    first_name: str
    last_name: str
    email: str
    password: str
    captcha_id: str
    captcha_answer: str


def compute_answer(num1: int, num2: int, operator: str) -> int:
    if operator == "+":
        return num1 + num2
    if operator == "-":
        return num1 - num2
    if operator == "*":
        return num1 * num2
    raise ValueError(f"unsupported captcha operator: {operator!r}")


class CaptchaService:
    """Arithmetic challenge-response used to deter scripted signups."""

    def __init__(
        self,
        store: CaptchaStore,
        expire_minutes: int = 5,
        single_use: bool = False,
        clock: Clock = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._ttl = timedelta(minutes=expire_minutes)
        self._single_use = single_use
        self._clock = clock
        self._rng = rng or random.SystemRandom()

    def issue(self) -> CaptchaChallenge:
        """
        Draw a new challenge and persist its answer.

        The answer is stored as a decimal string and is never returned.
        """
        num1 = self._rng.randint(CAPTCHA_OPERAND_MIN, CAPTCHA_OPERAND_MAX)
        num2 = self._rng.randint(CAPTCHA_OPERAND_MIN, CAPTCHA_OPERAND_MAX)
        operator = self._rng.choice(CAPTCHA_OPERATORS)
        answer = compute_answer(num1, num2, operator)

        captcha_id = generate_token(CAPTCHA_ID_BYTES)
        self._store.create(captcha_id, str(answer), self._clock() + self._ttl)

        return CaptchaChallenge(
            id=captcha_id,
            question=f"What is {num1} {operator} {num2}?",
            num1=num1,
            num2=num2,
            operator=operator,
        )

    def verify(self, captcha_id: str, answer: str) -> bool:
        """
        Exact string comparison against the stored answer ("07" != "7").

        Unknown, expired and wrong answers all return False.
        """
        expected = self._store.get_answer(captcha_id)
        if expected is None:
            logger.info("Captcha verification failed: unknown or expired id")
            return False
        if expected != answer:
            logger.info("Captcha verification failed: wrong answer")
            return False

        if self._single_use:
            self._store.delete(captcha_id)
        return True


class AuthService:
    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionStore,
        captchas: CaptchaService,
        session_expire_hours: int = 24,
        revoke_on_logout: bool = False,
        clock: Clock = utcnow,
    ):
        self._credentials = credentials
        self._sessions = sessions
        self._captchas = captchas
        self._session_ttl = timedelta(hours=session_expire_hours)
        self._revoke_on_logout = revoke_on_logout
        self._clock = clock

    def register(self, data: RegistrationData) -> IssuedSession:
        """
        Create an account and open a brand-new session for it.

        Order: name, email and password format, then captcha, then the
        email pre-check, then the insert (which can still raise
        ConflictError if another request won the race).
        """
        if not is_valid_name(data.first_name) or not is_valid_name(data.last_name):
            raise ValidationError("Invalid name format")
        if not is_valid_email(data.email):
            raise ValidationError("Invalid email format")
        if not is_valid_password(data.password):
            raise ValidationError("Invalid password format")

        if not self._captchas.verify(data.captcha_id, data.captcha_answer):
            raise AuthError("Invalid captcha answer")

        if self._credentials.email_exists(data.email):
            raise ConflictError()

        user_id = self._credentials.create_user(
            data.first_name, data.last_name, data.email, data.password
        )
        logger.info(f"Registered user {user_id}")

        # A failure here leaves the user without a session; they can log in.
        return self._issue_session(user_id)

    def login(self, email: str, password: str) -> IssuedSession:
        """
        Authenticate and return the user's session.

        A live session is renewed in place and keeps its token; otherwise
        a fresh one is issued. Two concurrent logins may both issue, which
        is harmless since resolution only needs one live row.
        """
        user_id = self._credentials.authenticate(email, password)

        token = self._sessions.find_valid_token(user_id)
        if token is None:
            session = self._issue_session(user_id)
            logger.info(f"User {user_id} logged in with a new session")
            return session

        expires_at = self._clock() + self._session_ttl
        self._sessions.renew(token, expires_at)
        logger.info(f"User {user_id} logged in, session renewed")
        return IssuedSession(token=token, user_id=user_id, expires_at=expires_at)

    def resolve(self, token: str) -> Optional[int]:
        return self._sessions.resolve(token)

    def logout(self, token: Optional[str]) -> None:
        if token and self._revoke_on_logout:
            self._sessions.delete(token)

    def session_info(self, user_id: int) -> Optional[UserRecord]:
        try:
            return self._credentials.get_user_by_id(user_id)
        except NotFoundError:
            return None

    def update_name(self, user_id: int, first_name: str, last_name: str) -> None:
        if not is_valid_name(first_name) or not is_valid_name(last_name):
            raise ValidationError("Invalid name format")
        self._credentials.update_profile(user_id, first_name, last_name)

    def update_password(self, user_id: int, current_password: str, new_password: str) -> None:
        if not is_valid_password(new_password):
            raise ValidationError("Invalid password format")
        try:
            self._credentials.verify_password(user_id, current_password)
        except NotFoundError as exc:
            raise AuthError("Incorrect current password") from exc
        self._credentials.update_password(user_id, new_password)
        logger.info(f"Password updated for user {user_id}")

    def _issue_session(self, user_id: int) -> IssuedSession:
        token = generate_token(SESSION_TOKEN_BYTES)
        expires_at = self._clock() + self._session_ttl
        self._sessions.create(token, user_id, expires_at)
        return IssuedSession(token=token, user_id=user_id, expires_at=expires_at)
