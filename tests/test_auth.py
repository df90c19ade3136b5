from datetime import timedelta

from backend.utils.security import create_access_token, hash_password, verify_password
from conftest import bearer, login


def register(client, path="/api/auth/register", **overrides):
    body = {"name": "Asha", "email": "asha@campus.edu", "universityID": "U-1", "password": "pw12345"}
    body.update(overrides)
    return client.post(path, json=body)


def test_password_hashing():
    hashed = hash_password("pw12345")
    assert hashed != "pw12345"
    assert verify_password("pw12345", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("pw12345", "not-a-hash")


def test_register_user_and_login(client):
    response = register(client)
    assert response.status_code == 201
    assert response.json() == {"message": "User registered successfully"}

    response = client.post("/api/auth/login", json={"email": "asha@campus.edu", "password": "pw12345"})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["name"] == "Asha"
    assert body["user"]["role"] == "user"


def test_register_driver_sets_driver_role(client):
    response = register(client, path="/api/auth/register-driver")
    assert response.status_code == 201
    assert response.json() == {"message": "Driver registered successfully"}

    token = login(client, "asha@campus.edu", "pw12345")
    me = client.get("/api/auth/me", headers=bearer(token)).json()
    assert me["role"] == "driver"


def test_duplicate_email_is_rejected(client):
    register(client)
    response = register(client, universityID="U-2")
    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists"

    response = register(client, path="/api/auth/register-driver", universityID="U-3")
    assert response.json()["detail"] == "Driver already exists"


def test_duplicate_university_id_is_rejected(client):
    register(client)
    response = register(client, email="other@campus.edu")
    assert response.status_code == 400
    assert response.json()["detail"] == "University ID already registered"


def test_register_requires_all_fields(client):
    response = client.post("/api/auth/register", json={"email": "x@campus.edu", "password": "pw"})
    assert response.status_code == 422


def test_login_with_bad_credentials(client):
    register(client)
    response = client.post("/api/auth/login", json={"email": "asha@campus.edu", "password": "nope"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid credentials"

    response = client.post("/api/auth/login", json={"email": "ghost@campus.edu", "password": "nope"})
    assert response.status_code == 400


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    response = client.get("/api/auth/me", headers=bearer("garbage"))
    assert response.status_code == 401


def test_expired_token_is_rejected(client, settings, user_token):
    me = client.get("/api/auth/me", headers=bearer(user_token)).json()
    expired = create_access_token(
        {"sub": me["id"], "name": me["name"], "role": me["role"]},
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=-1),
    )
    assert client.get("/api/auth/me", headers=bearer(expired)).status_code == 401


def test_token_signed_with_other_secret_is_rejected(client, settings, user_token):
    me = client.get("/api/auth/me", headers=bearer(user_token)).json()
    forged = create_access_token(
        {"sub": me["id"], "name": me["name"], "role": "admin"},
        secret="other-secret",
        algorithm=settings.jwt_algorithm,
    )
    assert client.get("/api/auth/me", headers=bearer(forged)).status_code == 401


def test_users_persist_to_data_dir(client, settings, app):
    register(client)
    assert (settings.data_dir / "users.json").exists()
    stored = app.state.users.find_by_email("asha@campus.edu")
    assert stored["password"] != "pw12345"
