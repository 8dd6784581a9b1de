from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TokenKind(str, Enum):
    SESSION = 'session'
    MFA_PENDING = 'mfa_pending'


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a bearer token.

    Session tokens carry email and role. MFA-pending tokens carry only the
    subject and authorize nothing except completing the MFA step.
    """
    subject: str
    kind: TokenKind
    expires_at: datetime
    email: str | None = None
    role: str | None = None

    @property
    def pending_mfa(self) -> bool:
        return self.kind == TokenKind.MFA_PENDING
