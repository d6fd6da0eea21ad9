"""Password hashing and account number generation."""
import base64
import secrets
import time
from typing import Optional

from cryptography.hazmat.primitives import constant_time, hashes

from reading_tracker.config import settings


def generate_salt(num_bytes: Optional[int] = None) -> str:
    """
    Generate a random salt.

    Args:
        num_bytes: Salt length in bytes. Defaults to settings.SALT_BYTES (16).

    Returns:
        Base64-encoded salt string
    """
    if num_bytes is None:
        num_bytes = settings.SALT_BYTES

    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


def hash_password(password: str, salt: str) -> str:
    """
    Hash a password with the given salt.

    The salt is prepended to the password before digesting.

    Args:
        password: Plaintext password
        salt: Salt string produced by generate_salt()

    Returns:
        64-character lowercase hex SHA-256 digest
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update((salt + password).encode("utf-8"))
    return digest.finalize().hex()


def verify_password(password: str, stored_hash: Optional[str], stored_salt: Optional[str]) -> bool:
    """
    Check a password against a stored hash and salt.

    Uses a constant-time comparison of the hex digests.

    Returns:
        True if the password matches
    """
    if not stored_hash or stored_salt is None:
        return False

    candidate = hash_password(password, stored_salt)
    return constant_time.bytes_eq(candidate.encode("ascii"), stored_hash.encode("utf-8"))


def generate_account_number(prefix: Optional[str] = None) -> str:
    """
    Generate an account number like ACC1760000000000-9F2C4A0B1D3E.

    Millisecond timestamp plus 48 random bits. The users table still enforces
    uniqueness; registration retries on a collision.
    """
    if prefix is None:
        prefix = settings.ACCOUNT_NUMBER_PREFIX

    millis = int(time.time() * 1000)
    return f"{prefix}{millis}-{secrets.token_hex(6).upper()}"
