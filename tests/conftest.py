import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from accounts.api import create_app
from accounts.config import Settings
from accounts.database import Database


@pytest.fixture
def database():
    """Provide an isolated in-memory database for each test."""
    db = Database("sqlite://", poolclass=StaticPool)
    db.init_db()
    yield db
    db.close()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", root_name="", root_email="", root_password="")


@pytest.fixture
def client(database, settings):
    return TestClient(create_app(settings, database))


@pytest.fixture
def create_user(client):
    def create(email="ada@example.com", password="secret", **fields):
        user = {"name": "Ada", "email": email, "institute": "Analytical", "admin": False}
        user.update(fields)
        resp = client.post("/users", json={"user": user, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()

    return create
