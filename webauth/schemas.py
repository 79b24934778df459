from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class RegisterRequest(BaseModel):
    """
    Registration payload.

    Only the shape is checked here; format rules (name, email, password)
    are applied by AuthService so that they run in a fixed order and
    produce specific messages.
    """
    first_name: str
    last_name: str
    email: str
    password: str
    captcha_id: str
    captcha_answer: str


class LoginRequest(BaseModel):
    """
    Login payload. No format validation: a malformed email simply fails
    authentication, which keeps the response identical to a wrong password.
    """
    email: str
    password: str


class UpdateNameRequest(BaseModel):
    first_name: str
    last_name: str


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class CaptchaResponse(BaseModel):
    """Challenge sent to the client. Never includes the answer."""
    captcha_id: str
    question: str
    num1: int
    num2: int
    operator: str


class SessionStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    authenticated: bool
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")


class MessageResponse(BaseModel):
    """
    Generic message response for operations without specific return data.
    """
    message: str
