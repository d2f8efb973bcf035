"""Tests for the monitoring job registry."""
from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest

from flightwatch.exceptions import JobNotFoundError
from flightwatch.models import MonitoringJob, PriceAlert, PriceHistory, TravelClass
from flightwatch.services.job_registry import JobRegistry
from flightwatch.utils import utcnow


def _alert(job_id, old, new, created_at=None):
    return PriceAlert(
        monitoring_job_id=job_id,
        old_price=old,
        new_price=new,
        percentage_change=-10.0,
        flight_details={"flight_id": "F1"},
        created_at=created_at or utcnow(),
    )


class TestCreate:
    def test_defaults_and_normalization(self, db_session):
        job = JobRegistry(db_session).create(
            origin="sfo",
            destination="cdg",
            departure_date=date(2026, 11, 2),
            airlines=["af", "KL"],
        )

        assert job.id
        assert job.origin == "SFO"
        assert job.destination == "CDG"
        assert job.travel_class == TravelClass.ECONOMY
        assert job.airlines == ["AF", "KL"]
        assert job.is_active is True
        assert job.check_interval_hours == 6
        assert job.last_checked_at is None

    def test_no_airlines_stored_as_null(self, db_session):
        job = JobRegistry(db_session).create("SFO", "CDG", date(2026, 11, 2), airlines=[])
        assert job.airlines is None
        assert job.airline_codes == []


class TestQueries:
    def test_get_unknown_raises(self, db_session):
        with pytest.raises(JobNotFoundError) as exc:
            JobRegistry(db_session).get("missing")
        assert "missing" in str(exc.value)

    def test_active_jobs_stalest_first(self, db_session, make_job):
        now = utcnow()
        c = make_job(origin="AAA", last_checked_at=now - timedelta(minutes=1))
        a = make_job(origin="BBB", last_checked_at=None)
        b = make_job(origin="CCC", last_checked_at=now - timedelta(hours=1))
        make_job(origin="DDD", is_active=False)

        active = JobRegistry(db_session).get_active()

        assert [j.id for j in active] == [a.id, b.id, c.id]

    def test_list_jobs_filter(self, db_session, make_job):
        make_job(origin="AAA")
        make_job(origin="BBB", is_active=False)
        registry = JobRegistry(db_session)

        assert len(registry.list_jobs()) == 2
        assert [j.origin for j in registry.list_jobs(is_active=True)] == ["AAA"]
        assert [j.origin for j in registry.list_jobs(is_active=False)] == ["BBB"]

    def test_detail_bounds_history_and_alerts(self, db_session, make_job, make_history):
        job = make_job()
        base = datetime(2026, 10, 1)
        for i in range(5):
            make_history(job.id, "F1", 400 + i, base + timedelta(hours=i))
        for i in range(4):
            db_session.add(_alert(job.id, 500, 400 + i, created_at=base + timedelta(hours=i)))
        db_session.commit()

        detail = JobRegistry(db_session).get_detail(job.id, history_limit=3, alert_limit=2)

        assert detail.job.id == job.id
        assert [h.recorded_at.hour for h in detail.price_history] == [4, 3, 2]
        assert [a.created_at.hour for a in detail.price_alerts] == [3, 2]


class TestLifecycle:
    def test_deactivate_keeps_data(self, db_session, make_job, make_history):
        job = make_job()
        make_history(job.id, "F1", 420, datetime(2026, 10, 1))

        JobRegistry(db_session).deactivate(job.id)

        assert db_session.get(MonitoringJob, job.id).is_active is False
        assert db_session.query(PriceHistory).count() == 1

    def test_delete_cascades(self, db_session, make_job, make_history):
        job = make_job()
        other = make_job(origin="LAX")
        make_history(job.id, "F1", 420, datetime(2026, 10, 1))
        make_history(other.id, "F1", 420, datetime(2026, 10, 1))
        db_session.add(_alert(job.id, 420, 378))
        db_session.commit()
        registry = JobRegistry(db_session)

        registry.delete(job.id)

        with pytest.raises(JobNotFoundError):
            registry.get(job.id)
        assert db_session.query(PriceHistory).filter_by(monitoring_job_id=job.id).count() == 0
        assert db_session.query(PriceAlert).filter_by(monitoring_job_id=job.id).count() == 0
        assert db_session.query(PriceHistory).filter_by(monitoring_job_id=other.id).count() == 1

    def test_failed_delete_rolls_back(self, db_session, make_job, make_history):
        job = make_job()
        make_history(job.id, "F1", 420, datetime(2026, 10, 1))
        db_session.add(_alert(job.id, 420, 378))
        db_session.commit()
        job_id = job.id

        with patch.object(db_session, "commit", side_effect=RuntimeError("lost connection")):
            with pytest.raises(RuntimeError):
                JobRegistry(db_session).delete(job_id)

        assert db_session.get(MonitoringJob, job_id) is not None
        assert db_session.query(PriceHistory).count() == 1
        assert db_session.query(PriceAlert).count() == 1

    def test_delete_unknown(self, db_session):
        with pytest.raises(JobNotFoundError):
            JobRegistry(db_session).delete("missing")

    def test_touch_last_checked(self, db_session, make_job):
        job = make_job()
        before = utcnow()

        JobRegistry(db_session).touch_last_checked(job.id)

        db_session.expire_all()
        assert db_session.get(MonitoringJob, job.id).last_checked_at >= before
