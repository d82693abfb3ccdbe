from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from comment_hash.config import settings

# Argon2id: time_cost=3, memory_cost=65536 (64MB), parallelism=4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_token(token: str) -> str:
    """Hash a token using Argon2id (used to produce ADMIN_TOKEN_HASH)."""
    return ph.hash(token)


def verify_token(token: str, token_hash: str) -> bool:
    """Verify a token against its Argon2id hash."""
    try:
        return ph.verify(token_hash, token)
    except (VerificationError, InvalidHashError):
        return False


def is_admin_token(token: str | None) -> bool:
    """True if token matches the configured admin token hash."""
    if not token or not settings.admin_token_hash:
        return False
    return verify_token(token, settings.admin_token_hash)
