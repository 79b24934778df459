from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError
import secrets
from webauth.config import Settings
from webauth.errors import StoreError

SESSION_TOKEN_BYTES = 32
CAPTCHA_ID_BYTES = 16


def build_password_hasher(settings: Settings) -> PasswordHasher:
    """
    Argon2id hasher with the configured cost parameters.

    The argon2-cffi defaults apply unless overridden in settings;
    tests turn them down to keep hashing fast.
    """
    return PasswordHasher(
        time_cost=settings.password_hash_time_cost,
        memory_cost=settings.password_hash_memory_cost,
        parallelism=settings.password_hash_parallelism,
    )


def hash_password(ph: PasswordHasher, password: str) -> str:
    """
    Hash password using Argon2id.

    Returns hash string that includes algorithm parameters and salt.
    Format: $argon2id$v=19$m=65536,t=3,p=4$salt$hash

    A hashing failure is surfaced as StoreError; the password is never
    truncated or stored in any other form.
    """
    try:
        return ph.hash(password)
    except HashingError as exc:
        raise StoreError("Could not create user") from exc


def verify_password(ph: PasswordHasher, password: str, password_hash: str) -> bool:
    """
    Verify password against stored hash.

    Uses constant-time comparison internally to prevent timing attacks.
    Returns False for any verification error to avoid information leakage.
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_token(byte_length: int = SESSION_TOKEN_BYTES) -> str:
    """
    Generate a cryptographically secure opaque token.

    Draws byte_length bytes from the OS CSPRNG and hex encodes them
    (2 * byte_length characters). There is no fallback source: if the
    OS cannot supply randomness the exception propagates.
    """
    return secrets.token_hex(byte_length)
