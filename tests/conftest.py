import pytest
from fastapi.testclient import TestClient

from expense_api.config import Settings
from expense_api.main import create_app


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        log_json=True,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    def _register(username="alice", email=None, password="pw123"):
        email = email or f"{username}@x.com"
        response = client.post(
            "/api/register",
            json={"username": username, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def alice(register):
    """Authorization headers for a freshly registered user."""
    return {"Authorization": register("alice", "a@x.com")["token"]}


@pytest.fixture
def bob(register):
    return {"Authorization": register("bob", "b@x.com")["token"]}


@pytest.fixture
def add_expense(client):
    def _add_expense(headers, amount, category, created_at=None, description=None):
        payload = {"amount": amount, "category": category, "description": description}
        if created_at is not None:
            payload["created_at"] = created_at
        response = client.post("/expenses", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _add_expense
