"""Settings validation: database URL, request role and production requirements."""

import unittest

from pydantic import ValidationError

from usogui.core.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestAppRoleSetting(unittest.TestCase):
    def test_production_without_app_role_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            _settings(NODE_ENV="production", DB_APP_ROLE=None)
        self.assertIn("DB_APP_ROLE must be set", str(ctx.exception))

    def test_blank_app_role_counts_as_unset(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(NODE_ENV="production", DB_APP_ROLE="  ")

    def test_production_with_app_role(self) -> None:
        s = _settings(NODE_ENV="production", DB_APP_ROLE="web_user")
        self.assertTrue(s.is_production)
        self.assertEqual(s.DB_APP_ROLE, "web_user")

    def test_other_environments_may_omit_app_role(self) -> None:
        for env in ("development", "", "Production"):
            with self.subTest(env=env):
                self.assertIsNone(_settings(NODE_ENV=env, DB_APP_ROLE=None).DB_APP_ROLE)

    def test_app_role_must_be_plain_identifier(self) -> None:
        for bad in ("Web_User", "web-user", "web_user; DROP TABLE guide", "1web"):
            with self.subTest(role=bad):
                with self.assertRaises(ValidationError):
                    _settings(DB_APP_ROLE=bad)


class TestDatabaseUrl(unittest.TestCase):
    def test_non_postgres_url_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(DATABASE_URL="sqlite:///usogui.db")

    def test_url_trimmed(self) -> None:
        s = _settings(DATABASE_URL=" postgresql://u:p@db:5432/usogui ")
        self.assertEqual(s.DATABASE_URL, "postgresql://u:p@db:5432/usogui")


if __name__ == "__main__":
    unittest.main()
