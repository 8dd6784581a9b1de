"""Tests for create_index_safe with a mocked collection."""

import unittest
from unittest.mock import MagicMock, patch

from pymongo.errors import OperationFailure

from adapter.mongodb.indexes import create_index_safe, ensure_all_indexes

EMAIL_KEYS = [('email', 1)]


def _conflict(code: int = 86) -> OperationFailure:
    return OperationFailure("Index already exists with different options", code=code)


class TestCreateIndexSafe(unittest.TestCase):

    def setUp(self):
        self.collection = MagicMock()

    def test_creates_index(self):
        self.assertTrue(create_index_safe(self.collection, EMAIL_KEYS, 'idx_users_email', unique=True))
        self.collection.create_index.assert_called_once_with(EMAIL_KEYS, name='idx_users_email', unique=True)

    def test_same_keys_other_name_is_replaced(self):
        self.collection.create_index.side_effect = [_conflict(85), None]
        self.collection.index_information.return_value = {
            '_id_': {'key': [('_id', 1)]},
            'email_1': {'key': [('email', 1)]},
        }

        self.assertTrue(create_index_safe(self.collection, EMAIL_KEYS, 'idx_users_email', unique=True))

        self.collection.drop_index.assert_called_once_with('email_1')
        self.assertEqual(self.collection.create_index.call_count, 2)

    def test_same_name_non_unique_is_replaced(self):
        self.collection.create_index.side_effect = [_conflict(86), None]
        self.collection.index_information.return_value = {
            'idx_users_email': {'key': [('email', 1)]},
        }

        self.assertTrue(create_index_safe(self.collection, EMAIL_KEYS, 'idx_users_email', unique=True))
        self.collection.drop_index.assert_called_once_with('idx_users_email')

    def test_conflict_without_match_reports_failure(self):
        self.collection.create_index.side_effect = _conflict()
        self.collection.index_information.return_value = {'_id_': {'key': [('_id', 1)]}}

        self.assertFalse(create_index_safe(self.collection, EMAIL_KEYS, 'idx_users_email'))
        self.collection.drop_index.assert_not_called()

    def test_other_failures_propagate(self):
        self.collection.create_index.side_effect = OperationFailure("not authorized", code=13)

        with self.assertRaises(OperationFailure):
            create_index_safe(self.collection, EMAIL_KEYS, 'idx_users_email')


class TestEnsureAllIndexes(unittest.TestCase):

    @patch('adapter.mongodb.user_repository.MongoUserRepository.ensure_indexes', return_value=True)
    def test_delegates_to_user_repository(self, mock_ensure):
        self.assertTrue(ensure_all_indexes(MagicMock()))
        mock_ensure.assert_called_once()


if __name__ == '__main__':
    unittest.main()
