import os
import tempfile

import pytest

# keep the module-level app in backend.main away from backend/data
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="bus-tracking-"))

from fastapi.testclient import TestClient

from backend.config import Settings
from backend.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret="test-secret",
        data_dir=tmp_path / "data",
        observer_queue_size=10,
        admin_email="admin@campus.edu",
        admin_password="adminpass",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def register_and_login(client, path, email, university_id, password="secret123", name="Test"):
    response = client.post(
        path,
        json={"name": name, "email": email, "universityID": university_id, "password": password},
    )
    assert response.status_code == 201, response.text
    return login(client, email, password)


def login(client, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_token(client):
    return register_and_login(client, "/api/auth/register", "rider@campus.edu", "U-100", name="Rider")


@pytest.fixture
def driver_token(client):
    return register_and_login(client, "/api/auth/register-driver", "driver@campus.edu", "D-200", name="Driver")


@pytest.fixture
def admin_token(client):
    return login(client, "admin@campus.edu", "adminpass")
