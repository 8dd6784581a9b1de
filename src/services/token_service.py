"""Signed bearer tokens: full session tokens and short-lived MFA-pending tokens."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from jose import ExpiredSignatureError, JWTError, jwt

from domain.model.errors import InvalidTokenError, TokenExpiredError
from domain.model.token_claims import TokenClaims, TokenKind
from domain.model.user import Role, User

logger = logging.getLogger(__name__)

SESSION_TOKEN_TTL = timedelta(hours=24)
MFA_PENDING_TOKEN_TTL = timedelta(minutes=5)

PENDING_MFA_CLAIM = "pendingMFA"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Creates and verifies HMAC-signed JWTs.

    Verification is pure computation and never touches the user store.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        session_ttl: timedelta = SESSION_TOKEN_TTL,
        pending_ttl: timedelta = MFA_PENDING_TOKEN_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret_key:
            raise ValueError("Token signing secret must not be empty")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.session_ttl = session_ttl
        self.pending_ttl = pending_ttl
        self._clock = clock

    def _encode(self, claims: dict, ttl: timedelta) -> str:
        now = self._clock()
        payload = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def issue_session_token(self, user: User) -> str:
        """Create a session token for a fully authenticated user."""
        return self._encode(
            {"sub": user.id, "email": user.email, "role": Role(user.role).value},
            self.session_ttl,
        )

    def issue_pending_token(self, user: User) -> str:
        """Create a token that only authorizes submitting an MFA code."""
        return self._encode({"sub": user.id, PENDING_MFA_CLAIM: True}, self.pending_ttl)

    def decode(self, token: str) -> TokenClaims:
        """Verify signature and expiry, and check the claim shape.

        Raises:
            TokenExpiredError: signature valid but token past its expiry
            InvalidTokenError: bad signature, malformed token or claims
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.debug(f"JWT verification failed: {e}")
            raise InvalidTokenError()

        subject = payload.get("sub")
        exp = payload.get("exp")
        if not isinstance(subject, str) or not subject or not isinstance(exp, (int, float)):
            raise InvalidTokenError()
        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)

        if payload.get(PENDING_MFA_CLAIM) is True:
            return TokenClaims(subject=subject, kind=TokenKind.MFA_PENDING, expires_at=expires_at)

        email = payload.get("email")
        role = payload.get("role")
        if not isinstance(email, str) or role not in {r.value for r in Role}:
            raise InvalidTokenError()
        return TokenClaims(
            subject=subject,
            kind=TokenKind.SESSION,
            expires_at=expires_at,
            email=email,
            role=role,
        )
