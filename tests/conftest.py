import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from budget_api import models
from budget_api.auth import Identity, InvalidToken, TokenVerifier, get_verifier
from budget_api.database import get_db
from budget_api.main import app


class FakeVerifier(TokenVerifier):
    """Accepts "token-<user>" and treats <user> as the subject."""

    def verify_token(self, token):
        if not token.startswith("token-"):
            raise InvalidToken("unknown token")
        user_id = token[len("token-"):]
        return Identity(user_id=user_id, claims={"sub": user_id, "email": f"{user_id}@budgetbuddy.app"})


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_verifier] = lambda: FakeVerifier()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def headers(user="alice"):
        return {"Authorization": f"Bearer token-{user}"}

    return headers


@pytest.fixture
def account(client, auth):
    response = client.post("/accounts", json={"name": "Main Wallet", "type": "cash"}, headers=auth())
    assert response.status_code == 200
    return response.json()
