# backend/tests/test_transaction_scope.py
"""
transaction_scope: commit, rollback, storage error mapping.
"""

import sqlite3

import pytest
from sqlalchemy.exc import OperationalError

from app.database import transaction_scope
from app.models.generated import Coaches
from app.services.errors import StorageFailure


def _locked_error() -> OperationalError:
    return OperationalError("UPDATE coach_availability", {}, sqlite3.OperationalError("database is locked"))


class TestTransactionScope:
    def test_commits_on_success(self, db):
        with transaction_scope(db):
            db.add(Coaches(name="Marc Leroy", specialty="Boxing"))

        db.rollback()
        assert db.query(Coaches).filter(Coaches.name == "Marc Leroy").count() == 1

    def test_lock_error_becomes_retryable_storage_failure(self, db):
        with pytest.raises(StorageFailure) as exc_info:
            with transaction_scope(db, lock_timeout_seconds=1):
                db.add(Coaches(name="Marc Leroy", specialty="Boxing"))
                db.flush()
                raise _locked_error()

        exc = exc_info.value
        assert exc.code == "LockTimeout"
        assert exc.retryable is True
        assert exc.status_code == 503
        assert db.query(Coaches).count() == 0

    def test_other_operational_error_is_storage_unavailable(self, db):
        error = OperationalError("SELECT 1", {}, sqlite3.OperationalError("disk I/O error"))
        with pytest.raises(StorageFailure) as exc_info:
            with transaction_scope(db):
                raise error
        assert exc_info.value.code == "StorageUnavailable"

    def test_other_exceptions_roll_back_and_propagate(self, db):
        with pytest.raises(RuntimeError):
            with transaction_scope(db):
                db.add(Coaches(name="Marc Leroy", specialty="Boxing"))
                db.flush()
                raise RuntimeError("boom")

        assert db.query(Coaches).count() == 0
