"""
Todo API - Test Configuration and Fixtures
"""
import os
import itertools
import tempfile

# Set testing environment before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="todo-api-uploads-")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from todo_api.main import app
from todo_api.core.database import Base, get_db
from todo_api.storage.local_storage import storage

fake = Faker()
_email_counter = itertools.count(1)

# One in-memory database shared by every session of a test
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def unique_email() -> str:
    return f"user{next(_email_counter)}@mail.com"


@pytest.fixture
def db_session():
    """Fresh schema for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point attachment storage at a per-test directory"""
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(storage, "upload_dir", path)
    return path


@pytest.fixture
def client(db_session, upload_dir):
    """Test client with database override"""
    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Register a user through the API; returns the body plus ready auth headers"""
    def _make_user(name=None, email=None, password="secret1"):
        response = client.post("/api/users", json={
            "name": name or fake.name(),
            "email": email or unique_email(),
            "password": password,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        body["password"] = password
        body["headers"] = {"Authorization": f"Bearer {body['token']}"}
        return body
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def auth_headers(user):
    return user["headers"]


@pytest.fixture
def make_todo(client):
    """Create a todo through the API for the given headers"""
    def _make_todo(headers, title=None, **fields):
        data = {"title": title or fake.sentence(nb_words=3)}
        data.update(fields)
        response = client.post("/api/todos", data=data, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _make_todo
