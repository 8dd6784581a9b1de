from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Authorization scope of an account."""
    USER = 'user'
    ADMIN = 'admin'


@dataclass
class User:
    """Domain model representing a user account."""
    id: str
    username: str
    email: str
    created_at: datetime
    updated_at: datetime
    role: Role = Role.USER
    password_hash: str | None = None
    mfa_secret: str | None = None
    mfa_enabled: bool = False

    @property
    def mfa_setup_pending(self) -> bool:
        """Secret issued but not yet confirmed with a code."""
        return self.mfa_secret is not None and not self.mfa_enabled

    def to_safe_dict(self) -> dict:
        """Client-facing projection without password hash or MFA secret."""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': Role(self.role).value,
            'requireMFA': self.mfa_enabled,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved from a session token for the current request."""
    id: str
    email: str
    role: Role


def normalize_email(email: str) -> str:
    """Emails are compared case-insensitively; store them lower-cased."""
    return email.strip().lower()
