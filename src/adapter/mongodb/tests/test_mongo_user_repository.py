"""Tests for MongoUserRepository with a mocked collection."""

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb.user_repository import MongoUserRepository
from domain.model.errors import DuplicateError, StorageError
from domain.model.user import Role


def _user_doc(**kwargs) -> dict:
    now = datetime(2026, 1, 23, 12, 0, 0, tzinfo=timezone.utc)
    doc = {
        '_id': 'user-123',
        'username': 'alice',
        'email': 'alice@example.com',
        'password_hash': '$2b$12$hashed',
        'role': 'user',
        'mfa_secret': None,
        'mfa_enabled': False,
        'created_at': now,
        'updated_at': now,
    }
    doc.update(kwargs)
    return doc


class MongoRepoTestCase(unittest.TestCase):

    def setUp(self):
        self.collection = MagicMock()
        db = MagicMock()
        db.__getitem__.return_value = self.collection
        self.repo = MongoUserRepository(db)


class TestCreate(MongoRepoTestCase):

    def test_create_inserts_normalized_document(self):
        user = self.repo.create(username='alice', email='Alice@Example.com', password_hash='$2b$12$hashed')

        doc = self.collection.insert_one.call_args[0][0]
        self.assertEqual(doc['email'], 'alice@example.com')
        self.assertEqual(doc['role'], 'user')
        self.assertFalse(doc['mfa_enabled'])
        self.assertIsNone(doc['mfa_secret'])
        self.assertEqual(user.id, doc['_id'])
        self.assertEqual(user.role, Role.USER)

    def test_duplicate_key_becomes_domain_error(self):
        self.collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key error")

        with self.assertRaises(DuplicateError):
            self.repo.create(username='alice', email='alice@example.com', password_hash='h')

    def test_other_driver_errors_become_storage_error(self):
        self.collection.insert_one.side_effect = PyMongoError("connection reset")

        with self.assertRaises(StorageError):
            self.repo.create(username='alice', email='alice@example.com', password_hash='h')


class TestReads(MongoRepoTestCase):

    def test_get_by_email_normalizes_query(self):
        self.collection.find_one.return_value = _user_doc()

        user = self.repo.get_by_email(' ALICE@example.com')

        self.collection.find_one.assert_called_once_with({'email': 'alice@example.com'})
        self.assertEqual(user.id, 'user-123')
        self.assertEqual(user.password_hash, '$2b$12$hashed')

    def test_get_by_id_not_found(self):
        self.collection.find_one.return_value = None
        self.assertIsNone(self.repo.get_by_id('missing'))

    def test_get_by_id_maps_mfa_fields(self):
        self.collection.find_one.return_value = _user_doc(mfa_secret='JBSWY3DPEHPK3PXP', mfa_enabled=True, role='admin')

        user = self.repo.get_by_id('user-123')

        self.assertTrue(user.mfa_enabled)
        self.assertEqual(user.mfa_secret, 'JBSWY3DPEHPK3PXP')
        self.assertEqual(user.role, Role.ADMIN)

    def test_read_errors_become_storage_error(self):
        self.collection.find_one.side_effect = PyMongoError("timeout")

        with self.assertRaises(StorageError):
            self.repo.get_by_id('user-123')
        with self.assertRaises(StorageError):
            self.repo.get_by_email('alice@example.com')


class TestUpdates(MongoRepoTestCase):

    def test_update_mfa_sets_both_fields(self):
        self.collection.find_one_and_update.return_value = _user_doc(mfa_secret='S', mfa_enabled=True)

        user = self.repo.update_mfa('user-123', secret='S', enabled=True)

        query, update = self.collection.find_one_and_update.call_args[0]
        self.assertEqual(query, {'_id': 'user-123'})
        self.assertEqual(update['$set']['mfa_secret'], 'S')
        self.assertTrue(update['$set']['mfa_enabled'])
        self.assertIn('updated_at', update['$set'])
        self.assertTrue(user.mfa_enabled)

    def test_update_mfa_refuses_enabled_without_secret(self):
        with self.assertRaises(ValueError):
            self.repo.update_mfa('user-123', secret=None, enabled=True)
        self.collection.find_one_and_update.assert_not_called()

    def test_update_role_missing_user(self):
        self.collection.find_one_and_update.return_value = None
        self.assertIsNone(self.repo.update_role('missing', Role.ADMIN))

    def test_update_profile_normalizes_email(self):
        self.collection.find_one_and_update.return_value = _user_doc(email='alice.new@example.com')

        user = self.repo.update_profile('user-123', email=' Alice.New@Example.com')

        _, update = self.collection.find_one_and_update.call_args[0]
        self.assertEqual(update['$set']['email'], 'alice.new@example.com')
        self.assertNotIn('username', update['$set'])
        self.assertEqual(user.email, 'alice.new@example.com')

    def test_update_profile_duplicate_key_becomes_domain_error(self):
        self.collection.find_one_and_update.side_effect = DuplicateKeyError("E11000 duplicate key error")

        with self.assertRaises(DuplicateError):
            self.repo.update_profile('user-123', email='bob@example.com')

    def test_update_errors_become_storage_error(self):
        self.collection.find_one_and_update.side_effect = PyMongoError("boom")
        with self.assertRaises(StorageError):
            self.repo.update_role('user-123', Role.ADMIN)


class TestEnsureIndexes(MongoRepoTestCase):

    @patch('adapter.mongodb.indexes.create_index_safe')
    def test_unique_email_index(self, mock_create):
        self.assertTrue(self.repo.ensure_indexes())
        mock_create.assert_any_call(self.collection, [('email', 1)], 'idx_users_email', unique=True)

    @patch('adapter.mongodb.indexes.create_index_safe', side_effect=PyMongoError("nope"))
    def test_index_failure_reported(self, _mock_create):
        self.assertFalse(self.repo.ensure_indexes())


if __name__ == '__main__':
    unittest.main()
