"""Auth service: registration, login state machine and MFA lifecycle.

Pure business logic with no HTTP dependencies.
Raises domain errors that route handlers map to HTTP status codes.

Login runs START -> CREDENTIALS_CHECKED and then either finishes with a
session token, or hands out a pending-MFA token. A second call to
``verify_mfa`` with that token and a TOTP code finishes the login.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache

from email_validator import EmailNotValidError, validate_email

from domain.model.errors import (
    DuplicateError,
    InvalidCredentialsError,
    InvalidMFACodeError,
    InvalidMFASetupCodeError,
    InvalidTokenError,
    MFAAlreadyEnabledError,
    MFANotSetupError,
    NotFoundError,
    TokenExpiredError,
    ValidationError,
)
from domain.model.user import Role, User, normalize_email
from port.user_repository import UserRepository
from services import totp_service
from services.password import (
    DEFAULT_POLICY,
    PasswordPolicy,
    hash_password,
    validate_password,
    verify_password,
)
from services.token_service import TokenIssuer

logger = logging.getLogger(__name__)

MFA_SESSION_EXPIRED_MESSAGE = "MFA session expired, please login again"
DEFAULT_MFA_ISSUER = "FormRegistration"


@dataclass
class AuthResult:
    """Outcome of a register/login/verify step.

    Exactly one of ``token`` (session) or ``pending_token`` is set.
    """
    user: User
    token: str | None = None
    pending_token: str | None = None

    @property
    def require_mfa(self) -> bool:
        return self.pending_token is not None


@dataclass
class MFASetup:
    """Enrollment material returned to the caller for QR rendering."""
    secret: str
    otpauth_url: str
    qr_code: str


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Compared against when the email is unknown so both failure paths cost one bcrypt check
    return hash_password("timing-equalizer-not-a-password")


def _require_user(repo: UserRepository, user_id: str) -> User:
    user = repo.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def register(
    repo: UserRepository,
    tokens: TokenIssuer,
    username: str,
    email: str,
    password: str,
    policy: PasswordPolicy = DEFAULT_POLICY,
) -> AuthResult:
    """Register a new user and log them in.

    The account starts with role ``user`` and MFA disabled; MFA is opt-in
    after registration, so a session token is issued immediately.

    Raises:
        ValidationError: malformed username/email or weak password
        DuplicateError: email already registered
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required", errors=[{"field": "username", "message": "Username is required"}])

    try:
        email = normalize_email(validate_email(email, check_deliverability=False).normalized)
    except EmailNotValidError:
        raise ValidationError(
            "Please enter a valid email address",
            errors=[{"field": "email", "message": "Please enter a valid email address"}],
        )

    validate_password(password, policy)

    # Fast path only; the store's unique index decides under concurrency
    if repo.get_by_email(email):
        raise DuplicateError("Email already registered")

    user = repo.create(username=username, email=email, password_hash=hash_password(password), role=Role.USER)

    logger.info("User registered", extra={"userId": user.id})
    return AuthResult(user=user, token=tokens.issue_session_token(user))


def login(repo: UserRepository, tokens: TokenIssuer, email: str, password: str) -> AuthResult:
    """Check credentials and either finish login or start the MFA step.

    Uses the same error for unknown email and wrong password, and spends one
    bcrypt comparison either way.

    Raises:
        InvalidCredentialsError: invalid credentials (deliberately vague)
    """
    user = repo.get_by_email(email)
    if not user or not user.password_hash:
        verify_password(password, _dummy_hash())
        raise InvalidCredentialsError()
    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()

    if user.mfa_enabled:
        logger.info("Password accepted, MFA required", extra={"userId": user.id})
        return AuthResult(user=user, pending_token=tokens.issue_pending_token(user))

    logger.info("User logged in", extra={"userId": user.id})
    return AuthResult(user=user, token=tokens.issue_session_token(user))


def verify_mfa(repo: UserRepository, tokens: TokenIssuer, pending_token: str, code: str) -> AuthResult:
    """Finish an MFA login with the pending token and a TOTP code.

    A wrong code leaves the pending token usable until it expires.

    Raises:
        TokenExpiredError: pending token expired
        InvalidTokenError: bad signature or not a pending-MFA token
        MFANotSetupError: account no longer has MFA enabled
        InvalidMFACodeError: code does not match
    """
    try:
        claims = tokens.decode(pending_token)
    except TokenExpiredError:
        raise TokenExpiredError(MFA_SESSION_EXPIRED_MESSAGE)
    if not claims.pending_mfa:
        raise InvalidTokenError()

    user = repo.get_by_id(claims.subject)
    if not user:
        raise InvalidTokenError()
    if not user.mfa_enabled or not user.mfa_secret:
        raise MFANotSetupError()

    if not totp_service.verify_code(user.mfa_secret, code):
        logger.warning("Invalid MFA code", extra={"userId": user.id})
        raise InvalidMFACodeError()

    logger.info("MFA verified", extra={"userId": user.id})
    return AuthResult(user=user, token=tokens.issue_session_token(user))


def setup_mfa(repo: UserRepository, user_id: str, issuer: str = DEFAULT_MFA_ISSUER) -> MFASetup:
    """Generate and store a fresh TOTP secret without enabling MFA.

    Restarting setup overwrites any in-progress secret.

    Raises:
        NotFoundError: user does not exist
        MFAAlreadyEnabledError: MFA must be disabled first
    """
    user = _require_user(repo, user_id)
    if user.mfa_enabled:
        raise MFAAlreadyEnabledError()

    secret = totp_service.generate_secret()
    if not repo.update_mfa(user.id, secret=secret, enabled=False):
        raise NotFoundError("User not found")

    uri = totp_service.provisioning_uri(secret, account_name=user.email, issuer=issuer)
    logger.info("MFA setup initiated", extra={"userId": user.id})
    return MFASetup(secret=secret, otpauth_url=uri, qr_code=totp_service.qr_code_data_url(uri))


def enable_mfa(repo: UserRepository, user_id: str, code: str) -> User:
    """Confirm the stored secret with a code and turn MFA on.

    On a wrong code the secret stays stored so the user can retry without
    scanning the QR code again.

    Raises:
        NotFoundError: user does not exist
        MFANotSetupError: setup was never started
        InvalidMFASetupCodeError: code does not match
    """
    user = _require_user(repo, user_id)
    if not user.mfa_secret:
        raise MFANotSetupError()

    if not totp_service.verify_code(user.mfa_secret, code):
        raise InvalidMFASetupCodeError()

    updated = repo.update_mfa(user.id, secret=user.mfa_secret, enabled=True)
    if not updated:
        raise NotFoundError("User not found")

    logger.info("MFA enabled", extra={"userId": user.id})
    return updated


def disable_mfa(repo: UserRepository, user_id: str) -> User:
    """Turn MFA off and drop the secret. Disabling twice is a no-op.

    No code is re-verified here; a valid session is enough.
    """
    user = _require_user(repo, user_id)
    if not user.mfa_enabled and user.mfa_secret is None:
        return user

    updated = repo.update_mfa(user.id, secret=None, enabled=False)
    if not updated:
        raise NotFoundError("User not found")

    logger.info("MFA disabled", extra={"userId": user.id})
    return updated


def get_user(repo: UserRepository, user_id: str) -> User:
    return _require_user(repo, user_id)


def update_settings(
    repo: UserRepository,
    user_id: str,
    username: str | None = None,
    email: str | None = None,
) -> User:
    """Change the caller's own username and/or email.

    Raises:
        ValidationError: nothing to update, blank username or malformed email
        DuplicateError: email already used by another account
        NotFoundError: user does not exist
    """
    if username is None and email is None:
        raise ValidationError("No settings to update")

    if username is not None:
        username = username.strip()
        if not username:
            raise ValidationError(
                "Username is required", errors=[{"field": "username", "message": "Username is required"}]
            )

    user = _require_user(repo, user_id)

    if email is not None:
        try:
            email = normalize_email(validate_email(email, check_deliverability=False).normalized)
        except EmailNotValidError:
            raise ValidationError(
                "Please enter a valid email address",
                errors=[{"field": "email", "message": "Please enter a valid email address"}],
            )
        if email == user.email:
            email = None
        else:
            other = repo.get_by_email(email)
            if other and other.id != user.id:
                raise DuplicateError("Email already registered")

    if username is None and email is None:
        return user

    updated = repo.update_profile(user.id, username=username, email=email)
    if not updated:
        raise NotFoundError("User not found")

    logger.info(
        "Settings updated",
        extra={"userId": user.id, "fields": [f for f, v in (("username", username), ("email", email)) if v]},
    )
    return updated


def update_role(repo: UserRepository, user_id: str, role: str) -> User:
    """Change a user's role.

    Raises:
        ValidationError: unknown role
        NotFoundError: user does not exist
    """
    try:
        new_role = Role(role)
    except ValueError:
        raise ValidationError(
            "Invalid role specified",
            errors=[{"field": "role", "message": "Invalid role specified"}],
        )

    updated = repo.update_role(user_id, new_role)
    if not updated:
        raise NotFoundError("User not found")

    logger.info("Role updated", extra={"userId": user_id, "role": new_role.value})
    return updated
