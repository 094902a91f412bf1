"""Tests for session ratings and the doctor average."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from booking_app.domain.ratings.service import average_rating
from booking_app.models import Doctor, Rating, SessionStatus
from booking_app.shared.validators import utcnow


@pytest.fixture
def finished_session(doctor, patient, make_period, make_session):
    """Factory for completed sessions whose period ended in the past."""
    offsets = iter(range(2, 48, 2))

    def _make(status=SessionStatus.COMPLETED):
        start = utcnow() - timedelta(hours=next(offsets))
        return make_session(
            make_period(doctor, start, start + timedelta(hours=1)), patient, status=status
        )

    return _make


def rate(client, headers, session_id, score, message=None):
    return client.post(
        f"/ratings/session/{session_id}",
        json={"rating": score, "message": message},
        headers=headers,
    )


def doctor_average(db, doctor_id) -> float:
    db.expire_all()
    return db.get(Doctor, doctor_id).average_rating


class TestAverageRating:
    def test_empty(self):
        assert average_rating([]) == 0

    def test_rounds_half_up(self):
        # 2.25 would round to 2.2 with round()
        assert average_rating([2, 2, 2, 3]) == 2.3

    def test_one_decimal(self):
        assert average_rating([4, 4, 5]) == 4.3


class TestRatingLifecycle:
    def test_average_follows_creates_and_deletes(
        self, client, db, doctor, patient_headers, finished_session
    ):
        first, second = finished_session(), finished_session()

        four = rate(client, patient_headers, first.id, 4)
        assert four.status_code == 201
        assert doctor_average(db, doctor.id) == 4.0

        assert rate(client, patient_headers, second.id, 5).status_code == 201
        assert doctor_average(db, doctor.id) == 4.5

        assert client.delete(f"/ratings/{four.json()['id']}", headers=patient_headers).status_code == 200
        assert doctor_average(db, doctor.id) == 5.0

    def test_average_resets_when_last_rating_deleted(
        self, client, db, doctor, patient_headers, finished_session
    ):
        created = rate(client, patient_headers, finished_session().id, 3)

        client.delete(f"/ratings/{created.json()['id']}", headers=patient_headers)

        assert doctor_average(db, doctor.id) == 0

    def test_update_recomputes_average(self, client, db, doctor, patient_headers, finished_session):
        rate(client, patient_headers, finished_session().id, 5)
        created = rate(client, patient_headers, finished_session().id, 5)

        response = client.patch(
            f"/ratings/{created.json()['id']}",
            json={"rating": 2, "message": "Late start"},
            headers=patient_headers,
        )

        assert response.status_code == 200
        assert response.json()["rating"] == 2
        assert response.json()["message"] == "Late start"
        assert doctor_average(db, doctor.id) == 3.5

    def test_messages_are_trimmed_on_create_and_update(
        self, client, patient_headers, finished_session
    ):
        created = rate(client, patient_headers, finished_session().id, 4, message="  On time  ")
        assert created.json()["message"] == "On time"

        response = client.patch(
            f"/ratings/{created.json()['id']}",
            json={"message": "   "},
            headers=patient_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] is None
        assert response.json()["rating"] == 4

    def test_paid_session_with_ended_period_can_be_rated(
        self, client, patient_headers, finished_session
    ):
        session = finished_session(status=SessionStatus.PAID)

        assert rate(client, patient_headers, session.id, 4).status_code == 201


class TestRatingRules:
    def test_duplicate_rating(self, client, patient_headers, finished_session):
        session = finished_session()
        rate(client, patient_headers, session.id, 4)

        response = rate(client, patient_headers, session.id, 5)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "RATING_EXISTS_ALREADY"

    def test_can_rate_again_after_delete(self, client, patient_headers, finished_session):
        session = finished_session()
        created = rate(client, patient_headers, session.id, 4)
        client.delete(f"/ratings/{created.json()['id']}", headers=patient_headers)

        assert rate(client, patient_headers, session.id, 5).status_code == 201

    def test_unpaid_session(self, client, patient_headers, finished_session):
        session = finished_session(status=SessionStatus.CREATED)

        response = rate(client, patient_headers, session.id, 4)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "SESSION_NOT_COMPLETED"

    def test_period_not_ended(
        self, client, doctor, patient, patient_headers, make_period, make_session
    ):
        start = utcnow() - timedelta(minutes=30)
        session = make_session(
            make_period(doctor, start, start + timedelta(hours=1)), patient, status=SessionStatus.PAID
        )

        response = rate(client, patient_headers, session.id, 4)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "PERIOD_NOT_PASSED"

    def test_unknown_session(self, client, patient, patient_headers):
        response = rate(client, patient_headers, 9999, 4)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "SESSION_NOT_FOUND"

    @pytest.mark.parametrize("score", [0, 6])
    def test_score_out_of_range(self, client, patient_headers, finished_session, score):
        response = rate(client, patient_headers, finished_session().id, score)

        assert response.status_code == 422

    def test_unknown_rating(self, client, patient, patient_headers):
        response = client.delete("/ratings/9999", headers=patient_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "RATING_NOT_FOUND"

    def test_unique_live_rating_per_session_and_patient(self, db, patient, finished_session):
        session = finished_session()
        db.add(Rating(session_id=session.id, patient_id=patient.id, doctor_id=session.doctor_id, rating=4))
        db.commit()

        db.add(Rating(session_id=session.id, patient_id=patient.id, doctor_id=session.doctor_id, rating=5))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


class TestDoctorRatings:
    def test_lists_newest_first_with_filter(
        self, client, doctor, patient_headers, finished_session
    ):
        ids = [rate(client, patient_headers, finished_session().id, score).json()["id"] for score in (5, 3, 5)]

        response = client.get(f"/ratings/doctor/{doctor.id}")

        data = response.json()
        assert data["totalItems"] == 3
        assert data["averageRating"] == 4.3
        assert [r["id"] for r in data["items"]] == list(reversed(ids))

        filtered = client.get(f"/ratings/doctor/{doctor.id}", params={"rating": 5}).json()
        assert filtered["totalItems"] == 2
        assert {r["rating"] for r in filtered["items"]} == {5}

    def test_unknown_doctor(self, client, db):
        response = client.get("/ratings/doctor/9999")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "DOCTOR_NOT_FOUND"
