from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.
    Uses pydantic for validation and type safety.
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite:///./auth.db"

    # Session lifetime in hours, applied on issue and on renewal
    session_expire_hours: int = 24
    captcha_expire_minutes: int = 5

    # Background cleanup of expired sessions and captchas
    sweep_enabled: bool = True
    sweep_interval_seconds: int = 3600

    # Cookie settings
    # secure=True enforces HTTPS only - must be True in production
    cookie_name: str = "session_token"
    cookie_secure: bool = False
    cookie_httponly: bool = True
    cookie_samesite: str = "lax"

    # Logout only clears the cookie unless this is enabled
    logout_revokes_session: bool = False
    # Captcha answers stay valid until expiry unless this is enabled
    captcha_single_use: bool = False

    # Argon2 cost parameters (argon2-cffi defaults)
    password_hash_time_cost: int = 3
    password_hash_memory_cost: int = 65536
    password_hash_parallelism: int = 4


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance. Load once, reuse throughout application lifecycle.
    """
    return Settings()
