from datetime import timezone
from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from webauth.config import Settings
from webauth.container import Container
from webauth.dependencies import Identity, get_container, get_session_token, load_session
from webauth.errors import StoreError
from webauth.schemas import LoginRequest, MessageResponse, RegisterRequest, SessionStatusResponse
from webauth.services import IssuedSession, RegistrationData

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    response: Response,
    container: Container = Depends(get_container),
):
    """
    Create new user account and log it in.

    Error cases:
    - 400: Invalid name, email or password format
    - 401: Wrong, unknown or expired captcha
    - 409: Email already registered
    - 500: Store failure
    """
    session = container.auth_service.register(RegistrationData(
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
        password=request.password,
        captcha_id=request.captcha_id,
        captcha_answer=request.captcha_answer,
    ))
    _set_session_cookie(response, session, container.settings)

    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=MessageResponse)
def login(
    request: LoginRequest,
    response: Response,
    container: Container = Depends(get_container),
):
    """
    Authenticate user and set the session cookie.

    Security notes:
    - Generic error message prevents email enumeration
    - No lockout: repeated failures are answered the same way
    """
    session = container.auth_service.login(request.email, request.password)
    _set_session_cookie(response, session, container.settings)

    return MessageResponse(message="User logged in successfully")


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    container: Container = Depends(get_container),
):
    """
    Clear the session cookie.

    The server-side row is only deleted when logout_revokes_session is set.
    Returns success even without a cookie (idempotent).
    """
    container.auth_service.logout(token)
    _clear_session_cookie(response, container.settings)

    return MessageResponse(message="Logged out")


@router.get("/api/session", response_model=SessionStatusResponse, response_model_exclude_none=True)
def session_status(
    identity: Optional[Identity] = Depends(load_session),
    container: Container = Depends(get_container),
):
    """
    Report whether the caller has a live session. Never fails: any
    problem resolving the session reads as unauthenticated.
    """
    if identity is None:
        return SessionStatusResponse(authenticated=False)

    try:
        user = container.auth_service.session_info(identity.user_id)
    except StoreError:
        user = None
    if user is None:
        return SessionStatusResponse(authenticated=False)

    return SessionStatusResponse(
        authenticated=True,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def _set_session_cookie(response: Response, session: IssuedSession, settings: Settings):
    """
    Set session cookie with security flags.

    The cookie only contains the opaque token; Expires mirrors the
    server-side expires_at (stored as naive UTC).
    """
    response.set_cookie(
        key=settings.cookie_name,
        value=session.token,
        httponly=settings.cookie_httponly,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        expires=session.expires_at.replace(tzinfo=timezone.utc),
        path="/",
    )


def _clear_session_cookie(response: Response, settings: Settings):
    response.delete_cookie(
        key=settings.cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
