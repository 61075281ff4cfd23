"""Unit tests for guide services and single-row mutation error mapping (mocked sessions)."""

import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, OperationalError

from usogui.core.principal import Principal, Role
from usogui.models import EditAction, EditLog, Guide
from usogui.rls.catalog import SubmissionStatus
from usogui.schemas.guide import GuideCreate, GuideUpdate
from usogui.services.guides import (
    create_guide,
    delete_guide,
    list_edit_log,
    record_edit,
    set_guide_status,
    toggle_like,
    update_guide,
)
from usogui.services.rows import (
    PermissionDeniedError,
    RowNotFoundError,
    insert_one,
    is_rls_violation,
    mutate_one,
)

AUTHOR = Principal(user_id=11, role=Role.USER)
MODERATOR = Principal(user_id=2, role=Role.MODERATOR)


class _PgError(Exception):
    def __init__(self, pgcode: str) -> None:
        super().__init__(f"pgcode {pgcode}")
        self.pgcode = pgcode


def _dbapi_error(pgcode: str) -> DBAPIError:
    return DBAPIError("UPDATE guide", {}, _PgError(pgcode))


def _stmt() -> object:
    return update(Guide).where(Guide.id == 1).values({Guide.title: "x"}).returning(Guide.id)


class TestIsRlsViolation(unittest.TestCase):
    def test_insufficient_privilege(self) -> None:
        self.assertTrue(is_rls_violation(_dbapi_error("42501")))

    def test_other_errors(self) -> None:
        self.assertFalse(is_rls_violation(_dbapi_error("23505")))
        self.assertFalse(is_rls_violation(ValueError("42501")))


class TestMutateOne(unittest.TestCase):
    def test_one_row_commits(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = 1
        self.assertEqual(mutate_one(db, _stmt()), 1)
        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_zero_rows_is_not_found(self) -> None:
        """A hidden row and a missing row both affect zero rows."""
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = None
        with self.assertRaises(RowNotFoundError):
            mutate_one(db, _stmt())
        db.rollback.assert_called_once()
        db.commit.assert_not_called()

    def test_rls_rejection_is_not_found(self) -> None:
        db = MagicMock()
        db.execute.side_effect = _dbapi_error("42501")
        with self.assertRaises(RowNotFoundError):
            mutate_one(db, _stmt())
        db.rollback.assert_called_once()

    def test_other_database_errors_propagate(self) -> None:
        db = MagicMock()
        db.execute.side_effect = _dbapi_error("23505")
        with self.assertRaises(DBAPIError):
            mutate_one(db, _stmt())
        db.rollback.assert_called_once()


class TestInsertOne(unittest.TestCase):
    def test_success_refreshes(self) -> None:
        db = MagicMock()
        obj = Guide(title="t", content="c", author_id=1)
        self.assertIs(insert_one(db, obj), obj)
        db.add.assert_called_once_with(obj)
        db.refresh.assert_called_once_with(obj)

    def test_rls_rejection_is_forbidden(self) -> None:
        db = MagicMock()
        db.commit.side_effect = _dbapi_error("42501")
        with self.assertRaises(PermissionDeniedError):
            insert_one(db, Guide(title="t", content="c", author_id=1))
        db.rollback.assert_called_once()
        db.refresh.assert_not_called()


class TestCreateGuide(unittest.TestCase):
    def test_anonymous_rejected_before_touching_db(self) -> None:
        db = MagicMock()
        with self.assertRaises(PermissionDeniedError):
            create_guide(db, Principal.anonymous(), GuideCreate(title="t", content="c"))
        db.add.assert_not_called()

    def test_author_is_caller_and_status_pending(self) -> None:
        db = MagicMock()
        guide = create_guide(db, AUTHOR, GuideCreate(title="Tower of Karma", content="..."))
        self.assertEqual(guide.author_id, AUTHOR.user_id)
        self.assertEqual(guide.status, SubmissionStatus.PENDING.value)
        db.commit.assert_called_once()

    def test_creation_audited_on_system_session(self) -> None:
        db = MagicMock()
        db.refresh.side_effect = lambda guide: setattr(guide, "id", 42)
        audit_db = MagicMock()
        create_guide(db, AUTHOR, GuideCreate(title="t", content="c"), audit_db=audit_db)
        entry = audit_db.add.call_args[0][0]
        self.assertEqual((entry.entity_type, entry.entity_id, entry.action), ("guide", 42, "create"))
        self.assertEqual(entry.user_id, AUTHOR.user_id)
        db.add.assert_called_once()

    def test_rejected_insert_not_audited(self) -> None:
        db = MagicMock()
        db.commit.side_effect = _dbapi_error("42501")
        audit_db = MagicMock()
        with self.assertRaises(PermissionDeniedError):
            create_guide(db, AUTHOR, GuideCreate(title="t", content="c"), audit_db=audit_db)
        audit_db.add.assert_not_called()


class TestUpdateGuide(unittest.TestCase):
    def test_hidden_or_locked_guide_is_not_found(self) -> None:
        db = MagicMock()
        audit_db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = None
        with self.assertRaises(RowNotFoundError):
            update_guide(db, AUTHOR, 5, GuideUpdate(title="new"), audit_db=audit_db)
        db.query.assert_not_called()
        audit_db.add.assert_not_called()

    def test_empty_patch_only_reads(self) -> None:
        db = MagicMock()
        current = Guide(id=5, title="t", content="c", author_id=1)
        db.query.return_value.filter.return_value.first.return_value = current
        audit_db = MagicMock()
        self.assertIs(update_guide(db, AUTHOR, 5, GuideUpdate(), audit_db=audit_db), current)
        db.execute.assert_not_called()
        audit_db.add.assert_not_called()

    def test_edit_audited_with_changed_fields(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = 5
        db.query.return_value.filter.return_value.first.return_value = Guide(id=5)
        audit_db = MagicMock()
        update_guide(db, AUTHOR, 5, GuideUpdate(title="new", content="body"), audit_db=audit_db)
        entry = audit_db.add.call_args[0][0]
        self.assertEqual((entry.entity_id, entry.action, entry.user_id), (5, "update", AUTHOR.user_id))
        self.assertEqual(entry.changed_fields, ["content", "title"])
        audit_db.commit.assert_called_once()


class TestDeleteGuide(unittest.TestCase):
    def test_delete_audited(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = 5
        audit_db = MagicMock()
        with self.assertLogs("usogui.services.guides", level="INFO"):
            delete_guide(db, MODERATOR, 5, audit_db=audit_db)
        entry = audit_db.add.call_args[0][0]
        self.assertEqual((entry.entity_type, entry.entity_id, entry.action), ("guide", 5, "delete"))
        self.assertEqual(entry.user_id, MODERATOR.user_id)
        self.assertIsNone(entry.changed_fields)

    def test_hidden_guide_not_audited(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = None
        audit_db = MagicMock()
        with self.assertRaises(RowNotFoundError):
            delete_guide(db, AUTHOR, 5, audit_db=audit_db)
        audit_db.add.assert_not_called()


class TestSetGuideStatus(unittest.TestCase):
    def test_regular_user_cannot_moderate(self) -> None:
        db = MagicMock()
        for status in (SubmissionStatus.APPROVED, SubmissionStatus.REJECTED):
            with self.subTest(status=status):
                with self.assertRaises(PermissionDeniedError):
                    set_guide_status(db, AUTHOR, 1, status)
        db.execute.assert_not_called()

    def test_uppercase_moderator_claim_can_moderate(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = 1
        moderator = Principal.from_claims({"sub": "2", "role": "MODERATOR"})
        set_guide_status(db, moderator, 1, SubmissionStatus.APPROVED)
        db.commit.assert_called_once()

    def test_approval_audited_on_system_session(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = 1
        audit_db = MagicMock()
        with self.assertLogs("usogui.services.guides", level="INFO"):
            set_guide_status(db, MODERATOR, 1, SubmissionStatus.APPROVED, audit_db=audit_db)
        entry = audit_db.add.call_args[0][0]
        self.assertIsInstance(entry, EditLog)
        self.assertEqual((entry.entity_type, entry.entity_id, entry.user_id), ("guide", 1, 2))
        self.assertEqual(entry.changed_fields, ["status"])
        audit_db.commit.assert_called_once()
        db.add.assert_not_called()

    def test_missing_guide_not_audited(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = None
        audit_db = MagicMock()
        with self.assertRaises(RowNotFoundError):
            set_guide_status(db, MODERATOR, 99, SubmissionStatus.REJECTED, "spam", audit_db=audit_db)
        audit_db.add.assert_not_called()

    def test_rejection_records_reason_change(self) -> None:
        db = MagicMock()
        db.execute.return_value.scalar_one_or_none.return_value = 1
        audit_db = MagicMock()
        set_guide_status(db, MODERATOR, 1, SubmissionStatus.REJECTED, "spam", audit_db=audit_db)
        entry = audit_db.add.call_args[0][0]
        self.assertEqual(entry.changed_fields, ["rejection_reason", "status"])


class TestToggleLike(unittest.TestCase):
    def test_anonymous_rejected(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            toggle_like(MagicMock(), Principal.anonymous(), 1)

    def test_invisible_guide_cannot_be_liked(self) -> None:
        db = MagicMock()
        db.query.return_value.filter.return_value.first.return_value = None
        with self.assertRaises(RowNotFoundError):
            toggle_like(db, AUTHOR, 1)
        db.add.assert_not_called()

    def test_like_then_unlike(self) -> None:
        db = MagicMock()
        db.query.return_value.filter.return_value.first.return_value = Guide(id=1)
        db.execute.return_value.scalar_one_or_none.return_value = None
        self.assertTrue(toggle_like(db, AUTHOR, 1))
        like = db.add.call_args[0][0]
        self.assertEqual((like.user_id, like.guide_id), (AUTHOR.user_id, 1))

        db.execute.return_value.scalar_one_or_none.return_value = 1
        with patch("usogui.services.guides.mutate_one") as mutate:
            self.assertFalse(toggle_like(db, AUTHOR, 1))
        mutate.assert_called_once()


class TestRecordEdit(unittest.TestCase):
    def test_entry_fields(self) -> None:
        audit_db = MagicMock()
        entry = record_edit(audit_db, "guide", 3, "update", 4, ["status"])
        self.assertEqual(entry.changed_fields, ["status"])
        audit_db.commit.assert_called_once()

    def test_unknown_action_rejected(self) -> None:
        audit_db = MagicMock()
        with self.assertRaises(ValueError):
            record_edit(audit_db, "guide", 3, "approve", 4)
        audit_db.add.assert_not_called()

    def test_failed_commit_rolls_back_and_propagates(self) -> None:
        audit_db = MagicMock()
        audit_db.commit.side_effect = OperationalError("INSERT INTO edit_log", {}, Exception("gone"))
        with self.assertLogs("usogui.services.guides", level="ERROR"):
            with self.assertRaises(OperationalError):
                record_edit(audit_db, "guide", 3, EditAction.DELETE, 4)
        audit_db.rollback.assert_called_once()


def _query_chain(db: MagicMock) -> MagicMock:
    """Make filter/order_by/limit return the same query mock so filters can be counted."""
    query = db.query.return_value
    query.filter.return_value = query
    query.order_by.return_value = query
    query.limit.return_value = query
    query.all.return_value = []
    return query


class TestListEditLog(unittest.TestCase):
    def test_unfiltered(self) -> None:
        db = MagicMock()
        query = _query_chain(db)
        self.assertEqual(list_edit_log(db), [])
        query.filter.assert_not_called()
        query.limit.assert_called_once_with(50)

    def test_entity_filters(self) -> None:
        db = MagicMock()
        query = _query_chain(db)
        list_edit_log(db, entity_type="guide", entity_id=7, limit=500)
        self.assertEqual(query.filter.call_count, 2)
        criteria = " ".join(str(c.args[0]) for c in query.filter.call_args_list)
        self.assertIn('edit_log."entityType"', criteria)
        self.assertIn('edit_log."entityId"', criteria)
        query.limit.assert_called_once_with(100)

    def test_user_filter(self) -> None:
        db = MagicMock()
        query = _query_chain(db)
        list_edit_log(db, user_id=4)
        query.filter.assert_called_once()
        self.assertIn('edit_log."userId"', str(query.filter.call_args.args[0]))


if __name__ == "__main__":
    unittest.main()
