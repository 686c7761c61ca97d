from datetime import timedelta
from todo_api.core.security import create_access_token, create_user_token


def test_register_returns_identity_and_token(client):
    response = client.post("/api/users", json={
        "name": "Ann", "email": "ann@x.com", "password": "secret1"
    })

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Ann"
    assert data["email"] == "ann@x.com"
    assert isinstance(data["id"], int)
    assert data["token"]
    assert "password" not in data
    assert "hashed_password" not in data


def test_register_duplicate_email(client, make_user):
    make_user(email="ann@x.com")

    response = client.post("/api/users", json={
        "name": "Another Ann", "email": "ann@x.com", "password": "secret2"
    })

    assert response.status_code == 400
    assert response.json()["message"] == "User already exists"


def test_register_rejects_invalid_email(client):
    response = client.post("/api/users", json={
        "name": "Ann", "email": "not-an-email", "password": "secret1"
    })

    assert response.status_code == 400
    assert "email" in response.json()["message"]


def test_register_rejects_short_password(client):
    response = client.post("/api/users", json={
        "name": "Ann", "email": "ann@x.com", "password": "123"
    })

    assert response.status_code == 400
    assert "password" in response.json()["message"]


def test_register_rejects_short_name(client):
    response = client.post("/api/users", json={
        "name": "A", "email": "ann@x.com", "password": "secret1"
    })

    assert response.status_code == 400
    assert "name" in response.json()["message"]


def test_login_success(client, make_user):
    registered = make_user(name="Ann", email="ann@x.com", password="secret1")

    response = client.post("/api/users/login", json={
        "email": "ann@x.com", "password": "secret1"
    })

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == registered["id"]
    assert data["name"] == "Ann"
    assert data["token"]


def test_login_failures_are_indistinguishable(client, make_user):
    make_user(email="ann@x.com", password="secret1")

    wrong_password = client.post("/api/users/login", json={
        "email": "ann@x.com", "password": "wrong-password"
    })
    unknown_email = client.post("/api/users/login", json={
        "email": "nobody@x.com", "password": "secret1"
    })

    assert wrong_password.status_code == 400
    assert unknown_email.status_code == 400
    assert wrong_password.json()["message"] == "Invalid credentials"
    assert unknown_email.json()["message"] == "Invalid credentials"


def test_get_current_user(client, user):
    response = client.get("/api/users/me", headers=user["headers"])

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == user["id"]
    assert data["email"] == user["email"]
    assert data["created_at"]
    assert "hashed_password" not in data


def test_me_without_token(client):
    response = client.get("/api/users/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, no token"
    assert response.headers["www-authenticate"] == "Bearer"


def test_me_with_malformed_header(client, user):
    response = client.get("/api/users/me", headers={"Authorization": user["token"]})

    assert response.status_code == 401


def test_me_with_wrong_scheme(client, user):
    response = client.get(
        "/api/users/me", headers={"Authorization": f"Token {user['token']}"}
    )

    assert response.status_code == 401


def test_me_with_invalid_token(client):
    response = client.get("/api/users/me", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, invalid token"


def test_me_with_expired_token(client, user):
    token = create_access_token({"sub": str(user["id"])}, expires_delta=timedelta(minutes=-1))

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_me_with_token_for_missing_user(client, db_session):
    token = create_user_token(9999)

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, user not found"


def test_me_with_non_numeric_subject(client, db_session):
    token = create_access_token({"sub": "ann@x.com"})

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
