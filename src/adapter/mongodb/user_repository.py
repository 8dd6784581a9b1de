"""MongoDB implementation of UserRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from adapter.mongodb.connection import USERS_COLLECTION_NAME
from domain.model.errors import DuplicateError, StorageError
from domain.model.user import Role, User, normalize_email

logger = getLogger(__name__)


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection.

        The unique email index is what actually guarantees one account per
        email under concurrent registrations.
        """
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('email', 1)], 'idx_users_email', unique=True)
            create_index_safe(self.collection, [('created_at', -1)], 'idx_users_created_at')
            return True
        except Exception as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            username=doc.get('username', ''),
            email=doc['email'],
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            role=Role(doc.get('role', Role.USER.value)),
            password_hash=doc.get('password_hash'),
            mfa_secret=doc.get('mfa_secret'),
            mfa_enabled=bool(doc.get('mfa_enabled', False)),
        )

    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: Role = Role.USER,
    ) -> User:
        """Create a new user and return the User object."""
        email = normalize_email(email)
        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user_id,
            'username': username,
            'email': email,
            'password_hash': password_hash,
            'role': Role(role).value,
            'mfa_secret': None,
            'mfa_enabled': False,
            'created_at': now,
            'updated_at': now,
        }
        try:
            self.collection.insert_one(user_doc)
        except DuplicateKeyError:
            logger.warning("User creation failed: email already exists", extra={"email": email})
            raise DuplicateError()
        except PyMongoError as e:
            logger.error("Failed to create user", extra={"email": email, "error": str(e)})
            raise StorageError() from e

        logger.info("User created", extra={"userId": user_id, "email": email})
        return self._to_domain(user_doc)

    def get_by_email(self, email: str) -> User | None:
        """Find a user by email. Return User or None if not found."""
        email = normalize_email(email)
        try:
            doc = self.collection.find_one({'email': email})
        except PyMongoError as e:
            logger.error("Failed to get user by email", extra={"email": email, "error": str(e)})
            raise StorageError() from e
        return self._to_domain(doc) if doc else None

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        try:
            doc = self.collection.find_one({'_id': user_id})
        except PyMongoError as e:
            logger.error("Failed to get user by ID", extra={"userId": user_id, "error": str(e)})
            raise StorageError() from e
        return self._to_domain(doc) if doc else None

    def update_mfa(self, user_id: str, secret: str | None, enabled: bool) -> User | None:
        """Replace MFA secret and flag together. Return the updated User or None."""
        if enabled and not secret:
            raise ValueError("MFA cannot be enabled without a secret")
        return self._update(user_id, {'mfa_secret': secret, 'mfa_enabled': enabled}, "update MFA")

    def update_profile(
        self,
        user_id: str,
        username: str | None = None,
        email: str | None = None,
    ) -> User | None:
        """Set username/email (None leaves a field unchanged). Return the updated User or None."""
        fields = {}
        if username is not None:
            fields['username'] = username
        if email is not None:
            fields['email'] = normalize_email(email)
        return self._update(user_id, fields, "update profile")

    def update_role(self, user_id: str, role: Role) -> User | None:
        """Set the user's role. Return the updated User or None."""
        return self._update(user_id, {'role': Role(role).value}, "update role")

    def _update(self, user_id: str, fields: dict, action: str) -> User | None:
        fields = {**fields, 'updated_at': datetime.now(timezone.utc)}
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id},
                {'$set': fields},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.warning(f"Cannot {action}: email already exists", extra={"userId": user_id})
            raise DuplicateError()
        except PyMongoError as e:
            logger.error(f"Failed to {action}", extra={"userId": user_id, "error": str(e)})
            raise StorageError() from e

        if not doc:
            logger.debug(f"Cannot {action}: user not found", extra={"userId": user_id})
            return None
        return self._to_domain(doc)
