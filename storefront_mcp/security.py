"""Dealer passcode hashing and generation."""

from __future__ import annotations

import hashlib
import hmac
import secrets

DEFAULT_ITERATIONS = 120_000
_KEY_LENGTH = 32


def generate_passcode() -> str:
    """A random 6-digit passcode (100000-999999)."""
    return str(100_000 + secrets.randbelow(900_000))


def hash_passcode(passcode: str, salt: str | None = None, *, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Return ``salt$hexdigest`` using PBKDF2-HMAC-SHA256."""
    salt = salt or secrets.token_hex(16)
    derived = hashlib.pbkdf2_hmac(
        "sha256", str(passcode).encode("utf-8"), salt.encode("utf-8"), iterations, _KEY_LENGTH
    )
    return f"{salt}${derived.hex()}"


def verify_passcode(passcode: str, stored: str, *, iterations: int = DEFAULT_ITERATIONS) -> bool:
    if not stored or "$" not in stored:
        return False
    salt, expected = stored.split("$", 1)
    candidate = hash_passcode(passcode, salt, iterations=iterations).split("$", 1)[1]
    return hmac.compare_digest(candidate, expected)
