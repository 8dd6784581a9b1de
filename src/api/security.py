"""JWT configuration and the request gate for protected routes."""

import os
import logging
from datetime import timedelta
from functools import lru_cache
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.dependencies import get_user_repo
from domain.model.errors import (
    MFARequiredError,
    MissingTokenError,
    PermissionDeniedError,
    UserNotFoundError,
)
from domain.model.permissions import has_permission
from domain.model.user import AuthContext, User
from port.user_repository import UserRepository
from services.token_service import TokenIssuer

logger = logging.getLogger(__name__)

# JWT Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    raise ValueError(
        "JWT_SECRET_KEY environment variable is required. "
        "Generate a secure key with: openssl rand -hex 32"
    )
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
SESSION_TOKEN_TTL_MINUTES = int(os.getenv("SESSION_TOKEN_TTL_MINUTES", str(24 * 60)))
MFA_PENDING_TOKEN_TTL_MINUTES = int(os.getenv("MFA_PENDING_TOKEN_TTL_MINUTES", "5"))

security = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(
        JWT_SECRET_KEY,
        algorithm=JWT_ALGORITHM,
        session_ttl=timedelta(minutes=SESSION_TOKEN_TTL_MINUTES),
        pending_ttl=timedelta(minutes=MFA_PENDING_TOKEN_TTL_MINUTES),
    )


def get_current_user_required(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> User:
    """Resolve the caller from a session bearer token (required).

    Pending-MFA tokens are refused here; they are only good for
    POST /auth/mfa/verify. The subject is looked up on every request so
    tokens of deleted users stop working immediately.

    Raises:
        MissingTokenError: no or malformed Authorization header
        TokenExpiredError / InvalidTokenError: token failed verification
        MFARequiredError: pending-MFA token presented
        UserNotFoundError: subject no longer exists
    """
    if not credentials or not credentials.credentials:
        raise MissingTokenError()

    claims = tokens.decode(credentials.credentials)
    if claims.pending_mfa:
        raise MFARequiredError()

    user = user_repo.get_by_id(claims.subject)
    if not user:
        logger.info("Token subject no longer exists", extra={"userId": claims.subject})
        raise UserNotFoundError()

    request.state.auth = AuthContext(id=user.id, email=user.email, role=user.role)
    return user


def require_permission(resource: str, action: str):
    """Dependency factory: authenticated caller must hold ``action`` on ``resource``."""

    def _check(current_user: User = Depends(get_current_user_required)) -> User:
        if not has_permission(current_user.role, resource, action):
            logger.warning(
                "Permission denied",
                extra={"userId": current_user.id, "resource": resource, "action": action},
            )
            raise PermissionDeniedError()
        return current_user

    return _check
