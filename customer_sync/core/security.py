"""
Password hashing.

Dependencies: bcrypt
System role: Credential hashing for imported customers
"""

import bcrypt

BCRYPT_MAX_BYTES = 72


def hash_password(raw: str, rounds: int = 10) -> str:
    """
    Hash a password with bcrypt.

    Args:
        raw: Plain text password (at most 72 bytes once UTF-8 encoded)
        rounds: bcrypt cost factor

    Returns:
        str: bcrypt hash in modular crypt format
    """
    return bcrypt.hashpw(raw.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(raw: str, hashed: str) -> bool:
    return bcrypt.checkpw(raw.encode("utf-8"), hashed.encode("utf-8"))
