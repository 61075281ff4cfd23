"""Unit tests for account field limits, assignable roles and password hashing."""

import unittest
from unittest.mock import MagicMock, patch

import bcrypt

from usogui.core.principal import Role
from usogui.core.security import (
    ASSIGNABLE_ROLES,
    BCRYPT_MAX_BYTES,
    CredentialsError,
    check_password,
    check_username,
    hash_password,
    needs_rehash,
    parse_assignable_role,
    verify_password,
)
from usogui.scripts import create_user


class TestCheckUsername(unittest.TestCase):
    def test_stripped(self) -> None:
        self.assertEqual(check_username("  kaji  "), "kaji")

    def test_blank_or_too_long(self) -> None:
        for bad in ("", "   ", "x" * 256):
            with self.subTest(length=len(bad)):
                with self.assertRaises(CredentialsError):
                    check_username(bad)

    def test_control_characters_rejected(self) -> None:
        with self.assertRaises(CredentialsError):
            check_username("kaji\x00admin")


class TestCheckPassword(unittest.TestCase):
    def test_length_bounds(self) -> None:
        check_password("x" * 8)
        check_password("x" * 128)
        for bad in ("x" * 7, "x" * 129):
            with self.subTest(length=len(bad)):
                with self.assertRaises(CredentialsError):
                    check_password(bad)

    def test_error_is_value_error(self) -> None:
        self.assertTrue(issubclass(CredentialsError, ValueError))


class TestParseAssignableRole(unittest.TestCase):
    def test_case_insensitive(self) -> None:
        self.assertEqual(parse_assignable_role("Moderator"), Role.MODERATOR)
        self.assertEqual(parse_assignable_role(" ADMIN "), Role.ADMIN)
        self.assertEqual(parse_assignable_role(Role.USER), Role.USER)

    def test_anon_and_unknown_rejected(self) -> None:
        """Tokens fold unknown roles to anon; account rows must never hold one."""
        for bad in ("anon", "owner", "", Role.ANON):
            with self.subTest(role=bad):
                with self.assertRaises(CredentialsError):
                    parse_assignable_role(bad)

    def test_anon_not_assignable(self) -> None:
        self.assertNotIn(Role.ANON, ASSIGNABLE_ROLES)


class TestPasswordHashing(unittest.TestCase):
    def test_round_trip(self) -> None:
        hashed = hash_password("password123")
        self.assertTrue(verify_password("password123", hashed))
        self.assertFalse(verify_password("password124", hashed))

    def test_input_cut_at_bcrypt_limit(self) -> None:
        base = "k" * BCRYPT_MAX_BYTES
        self.assertTrue(verify_password(base + "ignored", hash_password(base)))

    def test_malformed_hash_is_mismatch(self) -> None:
        self.assertFalse(verify_password("password123", "not-a-bcrypt-hash"))


class TestNeedsRehash(unittest.TestCase):
    def test_weaker_cost_flagged(self) -> None:
        weak = bcrypt.hashpw(b"password123", bcrypt.gensalt(rounds=4)).decode("utf-8")
        self.assertTrue(needs_rehash(weak))

    def test_current_cost_not_flagged(self) -> None:
        self.assertFalse(needs_rehash(hash_password("password123")))

    def test_unrecognised_format_not_flagged(self) -> None:
        self.assertFalse(needs_rehash("plain"))
        self.assertFalse(needs_rehash("$argon2id$v=19$m=65536"))


class TestCreateUserScript(unittest.TestCase):
    def setUp(self) -> None:
        self.db = MagicMock()
        self.db.query.return_value.filter.return_value.first.return_value = None
        patcher = patch("usogui.scripts.create_user.SessionLocal", return_value=self.db)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_role_normalized_before_storing(self) -> None:
        self.assertEqual(create_user.main(["kaji", "password123", "Moderator"]), 0)
        user = self.db.add.call_args[0][0]
        self.assertEqual((user.username, user.role), ("kaji", "moderator"))
        self.assertTrue(verify_password("password123", user.password_hash))

    def test_anon_role_refused(self) -> None:
        self.assertEqual(create_user.main(["kaji", "password123", "anon"]), 1)
        self.db.add.assert_not_called()

    def test_short_password_refused(self) -> None:
        self.assertEqual(create_user.main(["kaji", "short"]), 1)
        self.db.query.assert_not_called()


if __name__ == "__main__":
    unittest.main()
