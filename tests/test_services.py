import random
from datetime import timedelta

import pytest

from webauth.errors import AuthError, ConflictError, StoreError, ValidationError
from webauth.services import AuthService, CaptchaService, RegistrationData, compute_answer

from tests.conftest import STRONG_PASSWORD


class ScriptedRandom(random.Random):
    """Returns the given operands and operator instead of random draws."""

    def __init__(self, num1, num2, operator):
        super().__init__()
        self._ints = iter([num1, num2])
        self._operator = operator

    def randint(self, a, b):
        return next(self._ints)

    def choice(self, seq):
        assert self._operator in seq
        return self._operator


def _registration(container, **overrides):
    challenge = container.captcha_service.issue()
    data = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "password": STRONG_PASSWORD,
        "captcha_id": challenge.id,
        "captcha_answer": str(compute_answer(challenge.num1, challenge.num2, challenge.operator)),
    }
    data.update(overrides)
    return RegistrationData(**data)


# Captcha service

@pytest.mark.parametrize("num1,num2,operator,expected", [
    (7, 3, "+", "10"),
    (3, 7, "-", "-4"),
    (20, 20, "*", "400"),
])
def test_issue_stores_stringified_answer(container, clock, num1, num2, operator, expected):
    service = CaptchaService(container.captcha_store, clock=clock, rng=ScriptedRandom(num1, num2, operator))

    challenge = service.issue()

    assert (challenge.num1, challenge.num2, challenge.operator) == (num1, num2, operator)
    assert container.captcha_store.get_answer(challenge.id) == expected
    assert challenge.question == f"What is {num1} {operator} {num2}?"


def test_issue_draws_operands_in_range(container):
    for _ in range(50):
        challenge = container.captcha_service.issue()
        assert 1 <= challenge.num1 <= 20
        assert 1 <= challenge.num2 <= 20
        assert challenge.operator in ("+", "-", "*")
        assert len(challenge.id) == 32


def test_verify_correct_and_wrong_answer(container, clock):
    service = CaptchaService(container.captcha_store, clock=clock, rng=ScriptedRandom(7, 3, "+"))
    challenge = service.issue()

    assert service.verify(challenge.id, "10")
    assert not service.verify(challenge.id, "11")
    assert not service.verify(challenge.id, " 10")


def test_verify_uses_exact_string_comparison(container, clock):
    service = CaptchaService(container.captcha_store, clock=clock, rng=ScriptedRandom(4, 3, "+"))
    challenge = service.issue()

    assert not service.verify(challenge.id, "07")
    assert service.verify(challenge.id, "7")


def test_verify_expired_or_unknown(container, clock):
    service = CaptchaService(container.captcha_store, clock=clock, rng=ScriptedRandom(7, 3, "+"))
    challenge = service.issue()

    clock.advance(minutes=5, seconds=1)

    assert not service.verify(challenge.id, "10")
    assert not service.verify("unknown", "10")


def test_captcha_is_reusable_until_expiry(container, clock):
    service = CaptchaService(container.captcha_store, clock=clock, rng=ScriptedRandom(7, 3, "+"))
    challenge = service.issue()

    assert service.verify(challenge.id, "10")
    assert service.verify(challenge.id, "10")


def test_single_use_captcha_is_consumed(container, clock):
    service = CaptchaService(
        container.captcha_store, single_use=True, clock=clock, rng=ScriptedRandom(7, 3, "+")
    )
    challenge = service.issue()

    assert not service.verify(challenge.id, "9")
    assert service.verify(challenge.id, "10")
    assert not service.verify(challenge.id, "10")


# Registration

def test_register_issues_new_session(container, clock):
    session = container.auth_service.register(_registration(container))

    assert len(session.token) == 64
    assert session.expires_at == clock() + timedelta(hours=24)
    assert container.auth_service.resolve(session.token) == session.user_id
    assert container.credential_store.email_exists("ada@example.com")


@pytest.mark.parametrize("overrides,message", [
    ({"first_name": "Ada1"}, "Invalid name format"),
    ({"last_name": ""}, "Invalid name format"),
    ({"email": "not-an-email"}, "Invalid email format"),
    ({"password": "weak"}, "Invalid password format"),
])
def test_register_rejects_bad_format(container, overrides, message):
    with pytest.raises(ValidationError) as excinfo:
        container.auth_service.register(_registration(container, **overrides))

    assert excinfo.value.message == message
    assert not container.credential_store.email_exists("ada@example.com")


def test_register_format_checks_run_before_captcha(container):
    data = _registration(container, email="bad", captcha_answer="wrong")

    with pytest.raises(ValidationError):
        container.auth_service.register(data)


def test_register_rejects_wrong_captcha(container):
    data = _registration(container, captcha_answer="999")

    with pytest.raises(AuthError) as excinfo:
        container.auth_service.register(data)

    assert excinfo.value.message == "Invalid captcha answer"
    assert not container.credential_store.email_exists("ada@example.com")


def test_register_duplicate_email(container):
    container.auth_service.register(_registration(container))

    with pytest.raises(ConflictError):
        container.auth_service.register(_registration(container, first_name="Grace"))


def test_register_duplicate_detected_by_constraint(container, monkeypatch):
    container.auth_service.register(_registration(container))
    # Simulate losing the race between the pre-check and the insert
    monkeypatch.setattr(container.credential_store, "email_exists", lambda email: False)

    with pytest.raises(ConflictError):
        container.auth_service.register(_registration(container))


def test_register_session_failure_keeps_user(container, monkeypatch):
    def broken_create(token, user_id, expires_at):
        raise StoreError()

    monkeypatch.setattr(container.session_store, "create", broken_create)

    with pytest.raises(StoreError):
        container.auth_service.register(_registration(container))
    assert container.credential_store.email_exists("ada@example.com")


# Login

def test_login_without_session_issues_one(container, clock, make_user):
    user_id, email = make_user()

    session = container.auth_service.login(email, STRONG_PASSWORD)

    assert session.user_id == user_id
    assert len(session.token) == 64
    assert session.expires_at == clock() + timedelta(hours=24)
    assert container.auth_service.resolve(session.token) == user_id


def test_login_reuses_live_session(container, clock, make_user):
    _, email = make_user()
    first = container.auth_service.login(email, STRONG_PASSWORD)

    clock.advance(hours=3)
    second = container.auth_service.login(email, STRONG_PASSWORD)

    assert second.token == first.token
    assert second.expires_at == clock() + timedelta(hours=24)

    clock.advance(hours=22)
    assert container.auth_service.resolve(first.token) == second.user_id


def test_login_after_expiry_issues_new_token(container, clock, make_user):
    _, email = make_user()
    first = container.auth_service.login(email, STRONG_PASSWORD)

    clock.advance(hours=25)
    second = container.auth_service.login(email, STRONG_PASSWORD)

    assert second.token != first.token
    assert container.auth_service.resolve(first.token) is None


def test_login_reuses_session_created_at_registration(container):
    registered = container.auth_service.register(_registration(container))

    session = container.auth_service.login("ada@example.com", STRONG_PASSWORD)

    assert session.token == registered.token


def test_login_wrong_password(container, make_user):
    _, email = make_user()

    with pytest.raises(AuthError):
        container.auth_service.login(email, "Wrong123!")


def test_repeated_failures_do_not_lock_account(container, make_user):
    user_id, email = make_user()

    for _ in range(5):
        with pytest.raises(AuthError):
            container.auth_service.login(email, "Wrong123!")

    assert container.auth_service.login(email, STRONG_PASSWORD).user_id == user_id


def test_login_renew_failure_propagates(container, make_user, monkeypatch):
    _, email = make_user()
    container.auth_service.login(email, STRONG_PASSWORD)

    def broken_renew(token, expires_at):
        raise StoreError()

    monkeypatch.setattr(container.session_store, "renew", broken_renew)

    with pytest.raises(StoreError):
        container.auth_service.login(email, STRONG_PASSWORD)


# Logout and profile

def test_logout_keeps_server_session_by_default(container, make_user):
    _, email = make_user()
    session = container.auth_service.login(email, STRONG_PASSWORD)

    container.auth_service.logout(session.token)

    assert container.auth_service.resolve(session.token) == session.user_id


def test_session_info(container, make_user):
    user_id, _ = make_user(first_name="Ada", last_name="Lovelace")

    info = container.auth_service.session_info(user_id)

    assert (info.first_name, info.last_name) == ("Ada", "Lovelace")
    assert container.auth_service.session_info(user_id + 1) is None


def test_update_name(container, make_user):
    user_id, _ = make_user()

    container.auth_service.update_name(user_id, "Grace", "Hopper")

    assert container.auth_service.session_info(user_id).first_name == "Grace"
    with pytest.raises(ValidationError):
        container.auth_service.update_name(user_id, "Grace", "H0pper")


def test_update_password(container, make_user):
    user_id, email = make_user()
    service = container.auth_service

    with pytest.raises(ValidationError):
        service.update_password(user_id, STRONG_PASSWORD, "weak")
    with pytest.raises(AuthError):
        service.update_password(user_id, "Wrong123!", "Another456?")

    service.update_password(user_id, STRONG_PASSWORD, "Another456?")

    with pytest.raises(AuthError):
        service.login(email, STRONG_PASSWORD)
    assert service.login(email, "Another456?").user_id == user_id


def test_logout_revokes_when_enabled(container, clock, make_user):
    _, email = make_user()
    service = AuthService(
        container.credential_store,
        container.session_store,
        container.captcha_service,
        revoke_on_logout=True,
        clock=clock,
    )
    session = service.login(email, STRONG_PASSWORD)

    service.logout(session.token)
    service.logout(None)

    assert service.resolve(session.token) is None
