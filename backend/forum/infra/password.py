"""Centralized password hashing configuration.

All modules requiring password hashing import from here so the Argon2
parameters stay consistent across the application.
"""

from argon2 import PasswordHasher
from argon2 import exceptions as argon_exc

PASSWORD_HASHER = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return PASSWORD_HASHER.hash(password)


def verify_password(hash: str, password: str) -> bool:
    """Verify a password against its hash.

    Returns True if valid, False otherwise.
    """
    try:
        return PASSWORD_HASHER.verify(hash, password)
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def check_needs_rehash(hash: str) -> bool:
    """Check if a password hash was created with weaker parameters."""
    return PASSWORD_HASHER.check_needs_rehash(hash)
