"""Domain-level exceptions.

Services raise these errors to express business rule violations.
The API layer maps each one to an HTTP status code and the stable
machine-readable ``code`` carried here.
"""


class DomainError(Exception):
    """Base class for all domain errors."""

    code = 'DOMAIN_ERROR'
    default_message = 'Request could not be processed'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    """Input violates a business validation rule."""

    code = 'VALIDATION_ERROR'
    default_message = 'Validation Error'

    def __init__(self, message: str | None = None, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidCredentialsError(DomainError):
    """Wrong email or password. Deliberately does not say which."""

    code = 'INVALID_CREDENTIALS'
    default_message = 'Invalid email or password'


class DuplicateError(DomainError):
    """Entity with the same unique key already exists."""

    code = 'ALREADY_EXISTS'
    default_message = 'Email already registered'


class NotFoundError(DomainError):
    """Requested entity does not exist."""

    code = 'NOT_FOUND'
    default_message = 'User not found'


class PermissionDeniedError(DomainError):
    """Caller lacks permission for the requested action."""

    code = 'PERMISSION_DENIED'
    default_message = 'Permission denied'


class StorageError(DomainError):
    """Credential store failed; details stay in the server log."""

    code = 'SERVER_ERROR'
    default_message = 'Something went wrong on our end. Please try again later.'


# ── token / request gate ─────────────────────────────────────

class AuthenticationError(DomainError):
    """Base for failures that mean the caller is not authenticated."""

    code = 'UNAUTHENTICATED'
    default_message = 'Not authenticated'


class MissingTokenError(AuthenticationError):
    code = 'MISSING_TOKEN'
    default_message = 'No token provided'


class InvalidTokenError(AuthenticationError):
    code = 'INVALID_TOKEN'
    default_message = 'Invalid token'


class TokenExpiredError(AuthenticationError):
    code = 'TOKEN_EXPIRED'
    default_message = 'Token expired'


class MFARequiredError(AuthenticationError):
    """A pending-MFA token was presented to a protected route."""

    code = 'MFA_REQUIRED'
    default_message = 'MFA verification required'


class UserNotFoundError(AuthenticationError):
    """Token subject no longer resolves to a user."""

    code = 'USER_NOT_FOUND'
    default_message = 'User not found'


# ── MFA ──────────────────────────────────────────────────────

class InvalidMFACodeError(AuthenticationError):
    code = 'INVALID_MFA_CODE'
    default_message = 'Invalid verification code'


class InvalidMFASetupCodeError(DomainError):
    code = 'INVALID_MFA_SETUP_CODE'
    default_message = 'Invalid verification code'


class MFANotSetupError(DomainError):
    code = 'MFA_NOT_SETUP'
    default_message = 'MFA not setup'


class MFAAlreadyEnabledError(DomainError):
    code = 'MFA_ALREADY_ENABLED'
    default_message = 'MFA is already enabled; disable it before setting up again'


class TooManyRequestsError(DomainError):
    """Attempt budget for the current window is exhausted."""

    code = 'TOO_MANY_REQUESTS'
    default_message = 'Too many login attempts, please try again later'

    def __init__(self, retry_after: int, message: str | None = None):
        super().__init__(message)
        self.retry_after = retry_after
