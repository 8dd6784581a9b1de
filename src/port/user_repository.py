from typing import Protocol
from domain.model.user import Role, User


class UserRepository(Protocol):
    """Protocol defining the interface for the credential store.

    Implementations enforce email uniqueness themselves and raise
    DuplicateError when it is violated; storage failures surface as
    StorageError.
    """
    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: Role = Role.USER,
    ) -> User:
        """Create a new user with MFA disabled and no secret."""
        ...

    def get_by_email(self, email: str) -> User | None:
        """Find a user by (normalized) email. Return User or None if not found."""
        ...

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        ...

    def update_mfa(self, user_id: str, secret: str | None, enabled: bool) -> User | None:
        """Replace MFA secret and flag in one write. Return the updated User or None."""
        ...

    def update_profile(
        self,
        user_id: str,
        username: str | None = None,
        email: str | None = None,
    ) -> User | None:
        """Set the given profile fields (None leaves a field unchanged).

        Raises DuplicateError if the new email is taken. Return the updated
        User or None if not found.
        """
        ...

    def update_role(self, user_id: str, role: Role) -> User | None:
        """Set the user's role. Return the updated User or None."""
        ...
