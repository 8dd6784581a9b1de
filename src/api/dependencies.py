import os
from functools import lru_cache

from fastapi import HTTPException

from adapter.memory.rate_limiter import InMemoryRateLimiter
from adapter.mongodb.connection import get_mongodb_client, DATABASE_NAME
from adapter.mongodb.user_repository import MongoUserRepository
from adapter.redis.rate_limiter import REDIS_URL, RedisRateLimiter
from port.rate_limiter import RateLimiter
from port.user_repository import UserRepository
from services.password import PasswordPolicy

LOGIN_RATE_LIMIT_ATTEMPTS = int(os.getenv("LOGIN_RATE_LIMIT_ATTEMPTS", "5"))
LOGIN_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
MFA_VERIFY_RATE_LIMIT_ATTEMPTS = int(os.getenv("MFA_VERIFY_RATE_LIMIT_ATTEMPTS", "5"))
MFA_VERIFY_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("MFA_VERIFY_RATE_LIMIT_WINDOW_SECONDS", str(5 * 60)))
MFA_ISSUER_NAME = os.getenv("MFA_ISSUER_NAME", "FormRegistration")


def _get_db():
    """Get MongoDB database, raising 503 if unavailable."""
    client = get_mongodb_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return client[DATABASE_NAME]


def get_user_repo() -> UserRepository:
    return MongoUserRepository(_get_db())


@lru_cache(maxsize=1)
def get_login_rate_limiter() -> RateLimiter:
    """Shared limiter for login attempts; Redis when configured, else in-process."""
    if REDIS_URL:
        return RedisRateLimiter(LOGIN_RATE_LIMIT_ATTEMPTS, LOGIN_RATE_LIMIT_WINDOW_SECONDS, scope='login')
    return InMemoryRateLimiter(LOGIN_RATE_LIMIT_ATTEMPTS, LOGIN_RATE_LIMIT_WINDOW_SECONDS)


@lru_cache(maxsize=1)
def get_mfa_verify_rate_limiter() -> RateLimiter:
    """Separate budget for TOTP code guesses at /auth/mfa/verify."""
    if REDIS_URL:
        return RedisRateLimiter(
            MFA_VERIFY_RATE_LIMIT_ATTEMPTS, MFA_VERIFY_RATE_LIMIT_WINDOW_SECONDS, scope='mfa_verify'
        )
    return InMemoryRateLimiter(MFA_VERIFY_RATE_LIMIT_ATTEMPTS, MFA_VERIFY_RATE_LIMIT_WINDOW_SECONDS)


@lru_cache(maxsize=1)
def get_password_policy() -> PasswordPolicy:
    return PasswordPolicy.from_env()


def get_mfa_issuer() -> str:
    return MFA_ISSUER_NAME
