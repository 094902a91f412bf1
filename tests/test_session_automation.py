"""Tests for the expiry sweep, session completion and worker tasks."""

import asyncio
from datetime import timedelta

import pytest

from booking_app import worker
from booking_app.models import ConsultationSession, Period, PeriodStatus, SessionStatus
from booking_app.services import session_automation
from booking_app.services.session_automation import (
    complete_finished_sessions,
    sweep_expired_sessions,
)
from booking_app.shared.validators import utcnow
from tests.conftest import future_slot


class TestSweepExpiredSessions:
    def test_expires_unpaid_sessions_and_frees_periods(
        self, db, doctor, patient, make_period, make_session
    ):
        now = utcnow()
        period = make_period(doctor, *future_slot())
        session = make_session(period, patient, expires_at=now - timedelta(minutes=1))

        summary = sweep_expired_sessions(db, now=now)

        assert summary == {"expired_sessions": 1, "released_periods": 1}
        db.expire_all()
        session = db.get(ConsultationSession, session.id)
        assert session.status == SessionStatus.CANCELLED_DUE_TO_TIMEOUT
        assert session.cancelled_at == now
        assert db.get(Period, period.id).status == PeriodStatus.AVAILABLE

    def test_failed_release_rolls_back_the_whole_run(
        self, db, doctor, patient, make_period, make_session, monkeypatch
    ):
        now = utcnow()
        period = make_period(doctor, *future_slot())
        session = make_session(period, patient, expires_at=now - timedelta(minutes=1))
        real_query = db.query

        def query_failing_on_periods(*entities, **kwargs):
            # Sessions are already updated when the period release is issued
            if entities and entities[0] is Period:
                raise RuntimeError("connection lost")
            return real_query(*entities, **kwargs)

        monkeypatch.setattr(db, "query", query_failing_on_periods)

        with pytest.raises(RuntimeError):
            sweep_expired_sessions(db, now=now)

        db.expire_all()
        assert db.get(ConsultationSession, session.id).status == SessionStatus.CREATED
        assert db.get(ConsultationSession, session.id).cancelled_at is None
        assert db.get(Period, period.id).status == PeriodStatus.OCCUPIED

    def test_second_run_changes_nothing(self, db, doctor, patient, make_period, make_session):
        now = utcnow()
        make_session(make_period(doctor, *future_slot()), patient, expires_at=now - timedelta(minutes=1))
        sweep_expired_sessions(db, now=now)

        assert sweep_expired_sessions(db, now=now) == {"expired_sessions": 0, "released_periods": 0}

    def test_unexpired_and_paid_sessions_untouched(
        self, db, doctor, patient, make_period, make_session
    ):
        now = utcnow()
        start, end = future_slot()
        pending = make_session(make_period(doctor, start, end), patient, expires_at=now + timedelta(minutes=5))
        paid = make_session(
            make_period(doctor, end, end + timedelta(hours=1)),
            patient,
            status=SessionStatus.PAID,
            expires_at=now - timedelta(minutes=5),
        )

        assert sweep_expired_sessions(db, now=now)["expired_sessions"] == 0

        db.expire_all()
        assert db.get(ConsultationSession, pending.id).status == SessionStatus.CREATED
        assert db.get(ConsultationSession, paid.id).status == SessionStatus.PAID
        assert db.get(Period, paid.period_id).status == PeriodStatus.OCCUPIED

    def test_expired_period_can_be_booked_again(
        self, client, db, doctor, patient, patient_headers, make_period, make_session
    ):
        now = utcnow()
        period = make_period(doctor, *future_slot())
        make_session(period, patient, expires_at=now - timedelta(minutes=1))
        sweep_expired_sessions(db, now=now)

        response = client.post(f"/sessions/book/{period.id}", headers=patient_headers)

        assert response.status_code == 201


class TestCompleteFinishedSessions:
    def test_completes_paid_sessions_after_period_end(
        self, db, doctor, patient, make_period, make_session
    ):
        now = utcnow()
        start = now - timedelta(hours=2)
        ended = make_session(
            make_period(doctor, start, start + timedelta(hours=1)), patient, status=SessionStatus.PAID
        )
        upcoming = make_session(make_period(doctor, *future_slot()), patient, status=SessionStatus.PAID)
        unpaid = make_session(
            make_period(doctor, start + timedelta(hours=1), start + timedelta(hours=1, minutes=30)),
            patient,
        )

        assert complete_finished_sessions(db, now=now) == {"completed_sessions": 1}

        db.expire_all()
        assert db.get(ConsultationSession, ended.id).status == SessionStatus.COMPLETED
        assert db.get(ConsultationSession, ended.id).completed_at == now
        assert db.get(ConsultationSession, upcoming.id).status == SessionStatus.PAID
        assert db.get(ConsultationSession, unpaid.id).status == SessionStatus.CREATED


class TestWorkerTasks:
    def test_sweep_task_swallows_failures(self, db, monkeypatch):
        def broken_sweep(_db, now=None):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(session_automation, "sweep_expired_sessions", broken_sweep)

        result = asyncio.run(worker.sweep_expired_sessions_task({}))

        assert result == {"error": "database unavailable"}

    def test_sweep_task_runs_sweep(self, db, doctor, patient, make_period, make_session):
        make_session(
            make_period(doctor, *future_slot()), patient, expires_at=utcnow() - timedelta(minutes=1)
        )

        result = asyncio.run(worker.sweep_expired_sessions_task({}))

        assert result["expired_sessions"] == 1

    def test_sweep_runs_on_configured_cadence(self):
        sweep_job = next(
            job for job in worker.WorkerSettings.cron_jobs
            if job.coroutine is worker.sweep_expired_sessions_task
        )
        assert sweep_job.minute == set(range(0, 60, worker.WorkerSettings.cleanup_interval))
