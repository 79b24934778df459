from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from webauth.database import Base


class User(Base):
    """
    Registered account.

    Design notes:
    - email is unique and indexed; the constraint is the authoritative
      guard against duplicate registrations, the pre-check is only a fast path
    - email is stored as given (case-sensitive)
    - password_hash never leaves the store layer
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class Session(Base):
    """
    Server-side session storage.

    Session lifecycle:
    1. Created on registration, or on login when the user has no live session
    2. Renewed in place (same token) on repeat login
    3. Validated on each request against expires_at
    4. Purged by the sweeper once expired
    """
    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Session(user_id={self.user_id}, expires_at={self.expires_at})>"


class Captcha(Base):
    __tablename__ = "captchas"

    id = Column(String(64), primary_key=True)
    answer = Column(String(32), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Captcha(id={self.id}, expires_at={self.expires_at})>"
