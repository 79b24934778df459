"""
Request gating built from FastAPI dependencies.

load_session resolves the session cookie into a typed Identity (or None
for anonymous requests). The gates below depend on it, and FastAPI
caches it per request, so the store is hit at most once per request.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from webauth.container import Container
from webauth.errors import AuthError, StoreError


@dataclass(frozen=True)
class Identity:
    user_id: int
    token: str


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_session_token(request: Request, container: Container = Depends(get_container)) -> Optional[str]:
    return request.cookies.get(container.settings.cookie_name) or None


def load_session(
    token: Optional[str] = Depends(get_session_token),
    container: Container = Depends(get_container),
) -> Optional[Identity]:
    """
    Best-effort session lookup.

    Missing, unknown and expired tokens all yield None. A store failure
    also yields None (the store has logged it) so public pages keep working.
    """
    if token is None:
        return None
    try:
        user_id = container.auth_service.resolve(token)
    except StoreError:
        return None
    if user_id is None:
        return None
    return Identity(user_id=user_id, token=token)


def _redirect(location: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": location})


class RequireAuth:
    """
    Hard gate: the route only runs with a resolved identity.

    API routes get a 401; HTML pages pass redirect_to and get a 303.
    """

    def __init__(self, redirect_to: Optional[str] = None):
        self.redirect_to = redirect_to

    def __call__(self, identity: Optional[Identity] = Depends(load_session)) -> Identity:
        if identity is not None:
            return identity
        if self.redirect_to:
            raise _redirect(self.redirect_to)
        raise AuthError("Unauthorized")


require_auth = RequireAuth()
require_auth_page = RequireAuth(redirect_to="/login")


def redirect_if_authenticated(identity: Optional[Identity] = Depends(load_session)) -> None:
    """Inverse gate for the login and registration pages."""
    if identity is not None:
        raise _redirect("/")
