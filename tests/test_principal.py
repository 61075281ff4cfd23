"""Unit tests for claim parsing: Principal, role normalization, and token handling."""

import base64
import unittest

import jwt

from usogui.core.principal import Principal, Role, normalize_role, parse_user_id
from usogui.core.security import create_access_token, principal_from_token


class TestNormalizeRole(unittest.TestCase):
    """Role casing is folded once; unknown values become anon."""

    def test_case_and_whitespace_folded(self) -> None:
        for raw, expected in (
            ("admin", Role.ADMIN),
            ("ADMIN", Role.ADMIN),
            (" Moderator ", Role.MODERATOR),
            ("User", Role.USER),
            ("anon", Role.ANON),
        ):
            with self.subTest(raw=raw):
                self.assertEqual(normalize_role(raw), expected)

    def test_unknown_values_are_anon(self) -> None:
        for raw in (None, "", "root", "superuser", 1, ["admin"], {"role": "admin"}):
            with self.subTest(raw=raw):
                self.assertEqual(normalize_role(raw), Role.ANON)


class TestParseUserId(unittest.TestCase):
    def test_accepted_values(self) -> None:
        self.assertEqual(parse_user_id(7), 7)
        self.assertEqual(parse_user_id("42"), 42)
        self.assertEqual(parse_user_id(" 42 "), 42)
        self.assertEqual(parse_user_id("999999999"), 999999999)

    def test_rejected_values(self) -> None:
        for raw in (None, 0, -3, "0", "-3", "abc", "1e3", "4.2", "1234567890", True, "", "١٢"):
            with self.subTest(raw=raw):
                self.assertIsNone(parse_user_id(raw))


class TestPrincipalFromClaims(unittest.TestCase):
    def test_missing_claims_are_anonymous(self) -> None:
        for claims in (None, {}):
            with self.subTest(claims=claims):
                p = Principal.from_claims(claims)
                self.assertIsNone(p.user_id)
                self.assertEqual(p.role, Role.ANON)
                self.assertTrue(p.is_anonymous)

    def test_regular_user(self) -> None:
        p = Principal.from_claims({"sub": "12", "role": "user"})
        self.assertEqual(p.user_id, 12)
        self.assertFalse(p.is_privileged)
        self.assertFalse(p.is_superuser)

    def test_uppercase_role_grants_same_privileges(self) -> None:
        lower = Principal.from_claims({"sub": "1", "role": "admin"})
        upper = Principal.from_claims({"sub": "1", "role": "ADMIN"})
        self.assertEqual(lower, upper)
        self.assertTrue(upper.is_superuser)
        self.assertTrue(upper.is_privileged)

    def test_moderator_is_privileged_not_superuser(self) -> None:
        p = Principal.from_claims({"sub": "3", "role": "MODERATOR"})
        self.assertTrue(p.is_privileged)
        self.assertFalse(p.is_superuser)

    def test_role_without_sub_keeps_no_identity(self) -> None:
        p = Principal.from_claims({"role": "admin"})
        self.assertIsNone(p.user_id)
        self.assertTrue(p.is_anonymous)
        self.assertEqual(p.role, Role.ADMIN)

    def test_malformed_sub_yields_no_identity(self) -> None:
        p = Principal.from_claims({"sub": "abc", "role": "user"})
        self.assertIsNone(p.user_id)

    def test_to_claims(self) -> None:
        self.assertEqual(
            Principal(user_id=5, role=Role.MODERATOR).to_claims(),
            {"sub": "5", "role": "moderator"},
        )
        self.assertEqual(Principal.anonymous().to_claims(), {"sub": None, "role": "anon"})

    def test_principal_is_immutable(self) -> None:
        p = Principal(user_id=1, role=Role.USER)
        with self.assertRaises(Exception):
            p.role = Role.ADMIN  # type: ignore[misc]


class TestAccessToken(unittest.TestCase):
    def test_token_role_is_normalized(self) -> None:
        token = create_access_token(sub=9, role="ADMIN")
        p = principal_from_token(token)
        self.assertEqual(p.user_id, 9)
        self.assertEqual(p.role, Role.ADMIN)

    def test_unknown_stored_role_becomes_anon(self) -> None:
        p = principal_from_token(create_access_token(sub=9, role="owner"))
        self.assertEqual(p.role, Role.ANON)

    def test_tampered_token_rejected(self) -> None:
        header, _, signature = create_access_token(sub=9, role=Role.USER).split(".")
        escalated = base64.urlsafe_b64encode(b'{"sub":"9","role":"admin"}').rstrip(b"=").decode()
        with self.assertRaises(jwt.PyJWTError):
            principal_from_token(f"{header}.{escalated}.{signature}")

    def test_foreign_secret_rejected(self) -> None:
        forged = jwt.encode(
            {"sub": "1", "role": "admin"},
            "a-different-secret-of-sufficient-length-0123",
            algorithm="HS256",
        )
        with self.assertRaises(jwt.PyJWTError):
            principal_from_token(forged)


if __name__ == "__main__":
    unittest.main()
