"""Authentication routes (register, login, MFA, profile).

Handlers that hash or check passwords are plain ``def`` so FastAPI runs
them in its threadpool instead of blocking the event loop on bcrypt.
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from api.dependencies import (
    get_login_rate_limiter,
    get_mfa_issuer,
    get_mfa_verify_rate_limiter,
    get_password_policy,
    get_user_repo,
)
from api.models import (
    AuthResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    MFADisableResponse,
    MFAEnableRequest,
    MFASetupResponse,
    MFAVerifyRequest,
    RegisterRequest,
    RoleUpdateRequest,
    SettingsResponse,
    SettingsUpdateRequest,
    TokenResponse,
    UserResponse,
)
from api.security import get_current_user_required, get_token_issuer, require_permission
from domain.model.errors import TooManyRequestsError
from domain.model.user import User
from port.rate_limiter import RateLimiter
from port.user_repository import UserRepository
from services import auth_service
from services.password import PasswordPolicy
from services.token_service import TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _throttle(limiter: RateLimiter, request: Request, step: str) -> None:
    address = _client_address(request)
    decision = limiter.hit(address)
    if not decision.allowed:
        logger.warning("Rate limit exceeded", extra={"clientAddress": address, "step": step})
        raise TooManyRequestsError(retry_after=decision.retry_after)


def enforce_login_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_login_rate_limiter),
) -> None:
    """Throttle login attempts per source address."""
    _throttle(limiter, request, "login")


def enforce_mfa_verify_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_mfa_verify_rate_limiter),
) -> None:
    """Throttle TOTP code submissions per source address."""
    _throttle(limiter, request, "mfa_verify")


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
    policy: PasswordPolicy = Depends(get_password_policy),
):
    """Register a new user and return a session token.

    Raises:
        400 if validation fails, 409 if the email is already registered
    """
    result = auth_service.register(
        repo,
        tokens,
        username=request.username,
        email=request.email,
        password=request.password,
        policy=policy,
    )
    return AuthResponse(token=result.token, user=UserResponse.from_domain(result.user))


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_login_rate_limit)],
)
def login(
    request: LoginRequest,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Check credentials.

    Returns ``{token, user}`` when MFA is off, otherwise
    ``{requireMFA: true, tempToken}`` to be exchanged at /auth/mfa/verify.
    """
    result = auth_service.login(repo, tokens, email=request.email, password=request.password)
    if result.require_mfa:
        return LoginResponse(require_mfa=True, temp_token=result.pending_token)
    return LoginResponse(token=result.token, user=UserResponse.from_domain(result.user))


@router.post(
    "/mfa/verify",
    response_model=TokenResponse,
    dependencies=[Depends(enforce_mfa_verify_rate_limit)],
)
def verify_mfa(
    request: MFAVerifyRequest,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Exchange a pending-MFA token and a TOTP code for a session token."""
    result = auth_service.verify_mfa(repo, tokens, pending_token=request.temp_token, code=request.code)
    return TokenResponse(token=result.token)


@router.post("/mfa/setup", response_model=MFASetupResponse)
def setup_mfa(
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
    issuer: str = Depends(get_mfa_issuer),
):
    """Start MFA enrollment: new secret plus QR code for the authenticator app."""
    setup = auth_service.setup_mfa(repo, current_user.id, issuer=issuer)
    return MFASetupResponse(qr_code=setup.qr_code, secret=setup.secret, otpauth_url=setup.otpauth_url)


@router.post("/mfa/enable", response_model=MessageResponse)
def enable_mfa(
    request: MFAEnableRequest,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    auth_service.enable_mfa(repo, current_user.id, code=request.code)
    return MessageResponse(message="MFA enabled successfully")


@router.post("/mfa/disable", response_model=MFADisableResponse)
def disable_mfa(
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    user = auth_service.disable_mfa(repo, current_user.id)
    return MFADisableResponse(message="MFA disabled successfully", user=UserResponse.from_domain(user))


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user_required)):
    """Current authenticated user (safe projection)."""
    return UserResponse.from_domain(current_user)


@router.get("/settings", response_model=SettingsResponse)
def get_settings(current_user: User = Depends(get_current_user_required)):
    """Account settings including MFA state."""
    return SettingsResponse.from_domain(current_user)


@router.patch("/settings", response_model=SettingsResponse)
def update_settings(
    request: SettingsUpdateRequest,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    """Update username and/or email. Unknown fields are rejected with 400.

    Raises:
        400 if validation fails, 409 if the new email belongs to another account
    """
    user = auth_service.update_settings(
        repo, current_user.id, username=request.username, email=request.email
    )
    return SettingsResponse.from_domain(user)


@router.patch("/role/{user_id}", response_model=UserResponse)
def update_role(
    user_id: str,
    request: RoleUpdateRequest,
    current_user: User = Depends(require_permission("users", "manage")),
    repo: UserRepository = Depends(get_user_repo),
):
    """Change another user's role (requires users:manage)."""
    user = auth_service.update_role(repo, user_id, request.role)
    logger.info("Role changed by admin", extra={"userId": user_id, "actorId": current_user.id})
    return UserResponse.from_domain(user)
