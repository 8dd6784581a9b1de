"""Unit tests for the User domain model: safe projection and MFA state."""

import unittest
from datetime import datetime, timezone

from domain.model.user import Role, User, normalize_email


def _make_user(**kwargs) -> User:
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    defaults = dict(
        id='user-1', username='alice', email='alice@example.com',
        created_at=now, updated_at=now, password_hash='$2b$hash',
    )
    defaults.update(kwargs)
    return User(**defaults)


class TestSafeProjection(unittest.TestCase):

    def test_secrets_are_stripped(self):
        safe = _make_user(mfa_secret='JBSWY3DPEHPK3PXP', mfa_enabled=True).to_safe_dict()

        self.assertNotIn('password_hash', safe)
        self.assertNotIn('passwordHash', safe)
        self.assertNotIn('mfa_secret', safe)
        self.assertNotIn('mfaSecret', safe)
        self.assertNotIn('$2b$hash', safe.values())
        self.assertNotIn('JBSWY3DPEHPK3PXP', safe.values())

    def test_projection_fields(self):
        safe = _make_user(role=Role.ADMIN, mfa_secret='S', mfa_enabled=True).to_safe_dict()

        self.assertEqual(
            set(safe),
            {'id', 'username', 'email', 'role', 'requireMFA', 'createdAt', 'updatedAt'},
        )
        self.assertEqual(safe['role'], 'admin')
        self.assertTrue(safe['requireMFA'])


class TestMFAState(unittest.TestCase):

    def test_setup_pending_when_secret_without_enable(self):
        self.assertTrue(_make_user(mfa_secret='S').mfa_setup_pending)

    def test_not_pending_when_enabled_or_empty(self):
        self.assertFalse(_make_user(mfa_secret='S', mfa_enabled=True).mfa_setup_pending)
        self.assertFalse(_make_user().mfa_setup_pending)


class TestNormalizeEmail(unittest.TestCase):

    def test_lowercases_and_trims(self):
        self.assertEqual(normalize_email('  Alice@Example.COM '), 'alice@example.com')


if __name__ == '__main__':
    unittest.main()
