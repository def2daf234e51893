# Overview: Pytest coverage for the write-unit helpers shared by all services.

import pytest
from sqlalchemy.exc import OperationalError

from tillpoint.extensions import db
from tillpoint.models import Tenant
from tillpoint.services.concurrency import atomic, begin_write, run_with_retry


class TestBeginWrite:
    def test_starts_from_idle_session(self, db_session):
        begin_write()
        assert db.session().in_transaction()
        db.session.rollback()

    def test_discards_open_read_transaction(self, db_session, tenant_a):
        # A plain read leaves the session inside a transaction
        db.session.query(Tenant).count()
        assert db.session().in_transaction()

        begin_write()
        with atomic():
            db.session.add(Tenant(name="Second Shop", slug="second", timezone="UTC"))

        assert db.session.query(Tenant).filter_by(slug="second").count() == 1


class TestAtomic:
    def test_rolls_back_on_error(self, db_session):
        with pytest.raises(RuntimeError):
            begin_write()
            with atomic():
                db.session.add(Tenant(name="Ghost", slug="ghost", timezone="UTC"))
                db.session.flush()
                raise RuntimeError("boom")

        assert db.session.query(Tenant).filter_by(slug="ghost").count() == 0


class TestRunWithRetry:
    def test_retries_operational_errors(self, db_session):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return "ok"

        assert run_with_retry(flaky, backoff_base=0) == "ok"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self, db_session):
        def always_locked():
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            run_with_retry(always_locked, attempts=2, backoff_base=0)
