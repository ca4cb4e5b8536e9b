"""Tests for app.services.sessions: register, login, logout, logout-all and write-conflict retry."""

import os
import tempfile
import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import init_db
from app.core.errors import (
    AuthenticationError,
    ConcurrentUpdateError,
    ConflictError,
    OperationError,
)
from app.core.security import PasswordHasher, TokenIssuer
from app.services.credential_store import CredentialStore
from app.services.sessions import MAX_SAVE_ATTEMPTS, SessionManager

SECRET = "test-secret"


class SessionManagerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        fd, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        self.engine = create_engine(
            f"sqlite:///{self.db_path}", connect_args={"check_same_thread": False}
        )
        init_db(self.engine)
        self.Session = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self.hasher = PasswordHasher(rounds=4)
        self.issuer = TokenIssuer(SECRET, ttl=timedelta(minutes=30))
        self.sessions = self.manager()

    def tearDown(self) -> None:
        self.engine.dispose()
        os.unlink(self.db_path)

    def manager(self, issuer: TokenIssuer | None = None) -> SessionManager:
        db = self.Session()
        self.addCleanup(db.close)
        return SessionManager(CredentialStore(db, self.hasher), self.hasher, issuer or self.issuer)

    def register_alice(self) -> None:
        self.sessions.register("alice", "a@x.com", "pw1")


class TestRegisterAndLogin(SessionManagerTestCase):
    def test_register_then_login(self) -> None:
        self.register_alice()
        result = self.sessions.login("a@x.com", "pw1")
        self.assertEqual(result.user.username, "alice")
        self.assertTrue(self.issuer.verify(result.token).valid)
        self.assertEqual(self.issuer.verify(result.token).user_id, result.user.id)
        self.assertEqual(result.user.token_strings(), [result.token])

    def test_register_does_not_log_in(self) -> None:
        user = self.sessions.register("alice", "a@x.com", "pw1")
        self.assertEqual(user.tokens, [])

    def test_register_propagates_conflict(self) -> None:
        self.register_alice()
        with self.assertRaises(ConflictError):
            self.sessions.register("alice", "other@x.com", "pw1")

    def test_wrong_password_and_unknown_email_fail_identically(self) -> None:
        self.register_alice()
        with self.assertRaises(AuthenticationError) as wrong_pw:
            self.sessions.login("a@x.com", "nope")
        with self.assertRaises(AuthenticationError) as unknown:
            self.sessions.login("nobody@x.com", "pw1")
        self.assertEqual(wrong_pw.exception.message, "Unable to login")
        self.assertEqual(wrong_pw.exception.message, unknown.exception.message)

    def test_unknown_email_still_runs_a_hash_check(self) -> None:
        store = MagicMock()
        store.find_by_email.return_value = None
        hasher = MagicMock()
        hasher.dummy_hash = "$2b$04$" + "x" * 53
        hasher.verify.return_value = False
        manager = SessionManager(store, hasher, self.issuer)
        with self.assertRaises(AuthenticationError):
            manager.login("nobody@x.com", "pw1")
        hasher.verify.assert_called_once_with("pw1", hasher.dummy_hash)

    def test_dummy_hash_never_matches_user_password(self) -> None:
        self.assertFalse(self.hasher.verify("pw1", self.hasher.dummy_hash))

    def test_empty_credentials_fail_as_bad_login(self) -> None:
        with self.assertRaises(AuthenticationError):
            self.sessions.login("", "")

    def test_two_logins_keep_both_tokens_in_order(self) -> None:
        self.register_alice()
        t1 = self.sessions.login("a@x.com", "pw1").token
        result = self.sessions.login("a@x.com", "pw1")
        self.assertNotEqual(t1, result.token)
        self.assertEqual(result.user.token_strings(), [t1, result.token])

    def test_login_prunes_expired_tokens(self) -> None:
        self.register_alice()
        stale_issuer = TokenIssuer(
            SECRET,
            ttl=timedelta(minutes=1),
            clock=lambda: datetime.now(UTC) - timedelta(hours=1),
        )
        stale = self.manager(stale_issuer).login("a@x.com", "pw1").token
        result = self.manager().login("a@x.com", "pw1")
        self.assertNotIn(stale, result.user.token_strings())
        self.assertEqual(result.user.token_strings(), [result.token])


class TestLogout(SessionManagerTestCase):
    def test_logout_removes_only_presented_token(self) -> None:
        self.register_alice()
        t1 = self.sessions.login("a@x.com", "pw1").token
        result = self.sessions.login("a@x.com", "pw1")
        user = self.sessions.logout(result.user, t1)
        self.assertEqual(user.token_strings(), [result.token])

    def test_logout_all_clears_every_token(self) -> None:
        self.register_alice()
        self.sessions.login("a@x.com", "pw1")
        result = self.sessions.login("a@x.com", "pw1")
        user = self.sessions.logout_all(result.user)
        self.assertEqual(user.tokens, [])

    def test_logout_requires_user_and_token(self) -> None:
        self.register_alice()
        result = self.sessions.login("a@x.com", "pw1")
        with self.assertRaises(OperationError):
            self.sessions.logout(None, result.token)
        with self.assertRaises(OperationError):
            self.sessions.logout(result.user, None)
        with self.assertRaises(OperationError):
            self.sessions.logout_all(None)


class TestConcurrentUpdates(SessionManagerTestCase):
    """Token-list writes for the same user are retried instead of lost."""

    def test_stale_logout_does_not_drop_newer_login(self) -> None:
        self.register_alice()
        mine = self.manager()
        theirs = self.manager()
        t1 = theirs.login("a@x.com", "pw1").token
        my_user = mine.store.find_by_email("a@x.com")
        t2 = theirs.login("a@x.com", "pw1").token

        # my_user still holds the list without t2; the save must not overwrite it.
        user = mine.logout(my_user, t1)
        self.assertEqual(user.token_strings(), [t2])
        persisted = self.manager().store.find_by_email("a@x.com")
        self.assertEqual(persisted.token_strings(), [t2])

    def test_retries_are_bounded(self) -> None:
        store = MagicMock()
        store.save.side_effect = ConcurrentUpdateError("conflict")
        user = MagicMock()
        user.tokens = [{"token": "t1"}]
        store.reload.return_value = user
        manager = SessionManager(store, self.hasher, self.issuer)
        with self.assertRaises(OperationError):
            manager.logout_all(user)
        self.assertEqual(store.save.call_count, MAX_SAVE_ATTEMPTS)

    def test_retry_reapplies_mutation_to_fresh_record(self) -> None:
        store = MagicMock()
        stale = MagicMock()
        stale.tokens = [{"token": "t1"}]
        fresh = MagicMock()
        fresh.tokens = [{"token": "t1"}, {"token": "t2"}]
        store.save.side_effect = [ConcurrentUpdateError("conflict"), None]
        store.reload.return_value = fresh
        user = SessionManager(store, self.hasher, self.issuer).logout(stale, "t1")
        self.assertIs(user, fresh)
        self.assertEqual(fresh.tokens, [{"token": "t2"}])


if __name__ == "__main__":
    unittest.main()
