import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from budget_api.database import get_db
from budget_api.main import app


class UnavailableSession(Session):
    def query(self, *entities, **kwargs):
        raise OperationalError("SELECT users.id FROM users", {}, Exception("disk I/O error at /var/lib/budget.db"))


def test_store_failure_is_generic_500(client, auth, caplog):
    def broken_db():
        db = UnavailableSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = broken_db

    with caplog.at_level(logging.ERROR, logger="budget_api.main"):
        response = client.get("/user/profile", headers=auth())

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert "disk I/O" not in response.text
    assert "users" not in response.text

    records = [r for r in caplog.records if r.name == "budget_api.main"]
    assert any(r.getMessage() == "Database error on GET /user/profile" for r in records)
    assert any(r.exc_info and isinstance(r.exc_info[1], OperationalError) for r in records)
