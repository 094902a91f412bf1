"""Tests for bearer token handling."""

from datetime import timedelta

from jose import jwt

from booking_app.config import JWT_ALGORITHM, SECRET_KEY
from tests.conftest import make_token


def test_missing_token(client):
    response = client.get("/sessions/patient")

    assert response.status_code == 401


def test_wrong_role(client, doctor_headers):
    response = client.get("/sessions/patient", headers=doctor_headers)

    assert response.status_code == 403


def test_expired_token(client):
    token = make_token("patient-user-1", "patient", expires_in=timedelta(minutes=-5))

    response = client.get("/sessions/patient", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.headers["X-Token-Expired"] == "true"


def test_bad_signature(client):
    token = jwt.encode({"sub": "patient-user-1", "role": "patient"}, "other-key", algorithm=JWT_ALGORITHM)

    response = client.get("/sessions/patient", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_missing_role_claim(client):
    token = jwt.encode({"sub": "patient-user-1"}, SECRET_KEY, algorithm=JWT_ALGORITHM)

    response = client.get("/sessions/patient", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
