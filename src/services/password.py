"""Password hashing and strength policy."""

import os
import re
from dataclasses import dataclass

import bcrypt

from domain.model.errors import ValidationError

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class PasswordPolicy:
    """Minimum-strength rules applied before a password is hashed."""
    min_length: int = 8
    require_upper: bool = True
    require_lower: bool = True
    require_digit: bool = True
    require_symbol: bool = True

    @classmethod
    def from_env(cls) -> "PasswordPolicy":
        return cls(
            min_length=int(os.getenv("PASSWORD_MIN_LENGTH", "8")),
            require_symbol=os.getenv("PASSWORD_REQUIRE_SYMBOL", "true").lower() == "true",
        )


DEFAULT_POLICY = PasswordPolicy()


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash password using bcrypt. This is deliberately slow."""
    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Check a password against a bcrypt hash. Malformed hashes never match."""
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        return False


def validate_password(password: str, policy: PasswordPolicy = DEFAULT_POLICY) -> None:
    """Raise ValidationError listing every rule the password breaks."""
    problems = []
    if len(password) < policy.min_length:
        problems.append(f"Password must be at least {policy.min_length} characters")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        problems.append(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    if policy.require_upper and not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if policy.require_lower and not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if policy.require_digit and not re.search(r"[0-9]", password):
        problems.append("Password must contain at least one number")
    if policy.require_symbol and not re.search(r"[^A-Za-z0-9\s]", password):
        problems.append("Password must contain at least one symbol")

    if problems:
        raise ValidationError(
            problems[0],
            errors=[{"field": "password", "message": p} for p in problems],
        )
