"""In-memory implementation of UserRepository for testing."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

from domain.model.errors import DuplicateError
from domain.model.user import Role, User, normalize_email


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: Role = Role.USER,
    ) -> User:
        email = normalize_email(email)
        if any(u.email == email for u in self.store.values()):
            raise DuplicateError()

        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)

        user = User(
            id=user_id,
            username=username,
            email=email,
            created_at=now,
            updated_at=now,
            role=Role(role),
            password_hash=password_hash,
        )
        self.store[user_id] = user
        return replace(user)

    def update_mfa(self, user_id: str, secret: str | None, enabled: bool) -> User | None:
        if enabled and not secret:
            raise ValueError("MFA cannot be enabled without a secret")
        user = self.store.get(user_id)
        if not user:
            return None

        user.mfa_secret = secret
        user.mfa_enabled = enabled
        user.updated_at = datetime.now(timezone.utc)
        return replace(user)

    def update_profile(
        self,
        user_id: str,
        username: str | None = None,
        email: str | None = None,
    ) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None

        if email is not None:
            email = normalize_email(email)
            if any(u.email == email and u.id != user_id for u in self.store.values()):
                raise DuplicateError()
            user.email = email
        if username is not None:
            user.username = username
        user.updated_at = datetime.now(timezone.utc)
        return replace(user)

    def update_role(self, user_id: str, role: Role) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None

        user.role = Role(role)
        user.updated_at = datetime.now(timezone.utc)
        return replace(user)

    # ── read operations ──────────────────────────────────────

    def get_by_email(self, email: str) -> User | None:
        email = normalize_email(email)
        for user in self.store.values():
            if user.email == email:
                return replace(user)
        return None

    def get_by_id(self, user_id: str) -> User | None:
        user = self.store.get(user_id)
        return replace(user) if user else None
