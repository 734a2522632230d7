# account_service/core/security.py
"""
Security module for authentication.
Handles password hashing, signed token creation/validation and the service clock.
"""
import logging
import time
import uuid
import jwt  # PyJWT
from passlib.context import CryptContext

from account_service.core.errors import MalformedHashError

logger = logging.getLogger(__name__)

# Fixed work factor for password hashing (argon2 time cost)
PASSWORD_HASH_ROUNDS = 3

# Password hashing context
# Only use argon2, bcrypt is left out on purpose
pwd_context = CryptContext(
    schemes=["argon2"],                   # Use Argon2 for password hashing
    deprecated="auto",                    # Automatically handle deprecated schemes
    argon2__rounds=PASSWORD_HASH_ROUNDS,
)

JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

# Token lifetimes in milliseconds
SESSION_TOKEN_TTL_MS = 60 * 60 * 1000   # 1 hour
RESET_TOKEN_TTL_MS = 15 * 60 * 1000     # 15 minutes


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (salt included, safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a stored hash.

    Returns False on mismatch. Raises MalformedHashError when the stored
    hash cannot be identified or parsed.
    """
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError) as exc:
        logger.error("[auth] stored password hash could not be verified: %s", exc, exc_info=True)
        raise MalformedHashError() from exc


def sign_token(user_id: str, secret: str, issued_ms: int, ttl_ms: int) -> str:
    """
    Create a signed token bound to a user.

    Payload:
        - sub: Subject (user ID)
        - jti: Random token id, keeps tokens issued in the same second distinct
        - iat: Issued at (seconds)
        - exp: Expiration (seconds)
    """
    payload = {
        "sub": user_id,
        "jti": uuid.uuid4().hex,
        "iat": issued_ms // 1000,
        "exp": (issued_ms + ttl_ms) // 1000,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALG)


def decode_token(token: str, secret: str) -> dict:
    """
    Verify a token signature and return its payload.

    Expiry is not checked here; callers compare against the expiry stored
    next to the token so the clock stays injectable.

    Raises:
        jwt.InvalidTokenError: If the signature does not verify or the token is malformed
    """
    return jwt.decode(token, secret, algorithms=[JWT_ALG], options={"verify_exp": False})
