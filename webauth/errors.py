from http import HTTPStatus
from typing import Optional


class AuthSystemError(Exception):
    """
    Base for errors that map to a client-visible status code.

    The message is what the client sees, so it must never carry
    internal details (driver errors, SQL, stack traces).
    """
    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthSystemError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Invalid request payload"


class AuthError(AuthSystemError):
    status = HTTPStatus.UNAUTHORIZED
    default_message = "Invalid credentials"


class ConflictError(AuthSystemError):
    status = HTTPStatus.CONFLICT
    default_message = "Email already registered"


class NotFoundError(AuthSystemError):
    # Internal only; routes translate this into AuthError or an anonymous result
    status = HTTPStatus.NOT_FOUND
    default_message = "Not found"


class StoreError(AuthSystemError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
