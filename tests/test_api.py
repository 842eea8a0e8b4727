"""HTTP-level tests: routing, auth guard and error-to-status mapping."""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from expense_tracker.core.session_store import SESSION_KEY, MemorySessionStore
from expense_tracker.db.session import build_engine
from expense_tracker.main import create_app


def _register(client, username="alice", email="alice@example.com", password="secret1"):
    return client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )


@pytest.fixture
def logged_in(client):
    assert _register(client).status_code == 200
    res = client.post("/api/auth/login", json={"username": "alice", "password": "secret1"})
    assert res.status_code == 200
    return res.json()


class TestStartup:
    def test_schema_failure_aborts_startup(self, settings):
        app = create_app(settings, engine=create_engine("sqlite://"), store=MemorySessionStore())
        with pytest.raises(RuntimeError):
            with TestClient(app):
                pass

    @pytest.mark.parametrize("saved", ["99999999999999999999", "garbage"])
    def test_bad_saved_session_boots_anonymous(self, settings, saved):
        store = MemorySessionStore({SESSION_KEY: saved})
        app = create_app(settings, engine=build_engine("sqlite://"), store=store)
        with TestClient(app) as client:
            assert client.get("/api/auth/session").json() == {"status": "anonymous", "user": None}


class TestAuthRoutes:
    def test_session_starts_anonymous_after_startup(self, client):
        res = client.get("/api/auth/session")
        assert res.json() == {"status": "anonymous", "user": None}

    def test_register_login_me(self, client, store):
        created = _register(client).json()
        assert created["username"] == "alice"
        assert "password_hash" not in created
        # Registering alone does not sign in.
        assert client.get("/api/auth/me").status_code == 401

        client.post("/api/auth/login", json={"username": "alice", "password": "secret1"})

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json() == created
        assert store.get(SESSION_KEY) == str(created["id"])

    def test_duplicate_username_is_409_with_field(self, client):
        _register(client)
        res = _register(client, email="other@example.com")
        assert res.status_code == 409
        assert res.json() == {"detail": "Username already exists", "field": "username"}

    def test_invalid_email_is_400(self, client):
        res = _register(client, email="nope")
        assert res.status_code == 400
        assert res.json()["field"] == "email"

    def test_wrong_password_is_401(self, client):
        _register(client)
        res = client.post("/api/auth/login", json={"username": "alice", "password": "bad"})
        assert res.status_code == 401
        assert res.json() == {"detail": "Invalid password", "field": "password"}

    def test_unknown_user_is_401(self, client):
        res = client.post("/api/auth/login", json={"username": "ghost", "password": "secret1"})
        assert res.status_code == 401
        assert res.json()["field"] == "username"

    def test_logout(self, client, logged_in, store):
        assert client.post("/api/auth/logout").json() == {"ok": True}
        assert client.get("/api/auth/me").status_code == 401
        assert store.get(SESSION_KEY) is None


class TestGuard:
    @pytest.mark.parametrize(
        "method,url",
        [
            ("get", "/api/categories"),
            ("get", "/api/expenses"),
            ("get", "/api/expenses/sections"),
            ("get", "/api/stats/month-total?month=2025-03"),
            ("get", "/api/stats/month-summary"),
        ],
    )
    def test_anonymous_requests_rejected(self, client, method, url):
        assert getattr(client, method)(url).status_code == 401


class TestCategoryRoutes:
    def test_list_seeds_defaults(self, client, logged_in):
        names = [c["name"] for c in client.get("/api/categories").json()]
        assert sorted(names) == ["Bill", "Food", "Health", "Other", "Shopping", "Transport"]

    def test_create_rename_delete(self, client, logged_in):
        created = client.post("/api/categories", json={"name": "  Gym  "}).json()
        assert created["name"] == "Gym"

        renamed = client.patch(f"/api/categories/{created['id']}", json={"name": "Sport"})
        assert renamed.json() == {"id": created["id"], "name": "Sport"}

        res = client.delete(f"/api/categories/{created['id']}")
        assert res.json() == {"ok": True, "mode": "disabled"}
        assert "Sport" not in [c["name"] for c in client.get("/api/categories").json()]

    def test_duplicate_is_409(self, client, logged_in):
        client.post("/api/categories", json={"name": "Gym"})
        res = client.post("/api/categories", json={"name": "gym"})
        assert res.status_code == 409
        assert res.json()["field"] == "name"

    def test_blank_is_400(self, client, logged_in):
        assert client.post("/api/categories", json={"name": "   "}).status_code == 400

    def test_missing_is_404(self, client, logged_in):
        assert client.get("/api/categories/999").status_code == 404
        assert client.patch("/api/categories/999", json={"name": "X"}).status_code == 404
        assert client.delete("/api/categories/999").status_code == 404

    def test_id_past_integer_range_is_422(self, client, logged_in):
        huge = 2**70
        assert client.get(f"/api/categories/{huge}").status_code == 422
        assert client.delete(f"/api/categories/{huge}").status_code == 422


class TestExpenseRoutes:
    @pytest.fixture
    def category_id(self, client, logged_in):
        return client.post("/api/categories", json={"name": "Food"}).json()["id"]

    def test_create_and_list_today(self, client, category_id):
        res = client.post(
            "/api/expenses",
            json={"amount": "12.50", "category_id": category_id, "note": " lunch "},
        )
        assert res.status_code == 200
        body = res.json()
        assert body["amount"] == 12.5
        assert body["date"] == date.today().isoformat()
        assert body["note"] == "lunch"

        rows = client.get("/api/expenses", params={"filter": "today"}).json()
        assert [(r["id"], r["category"]) for r in rows] == [(body["id"], "Food")]

        sections = client.get("/api/expenses/sections", params={"filter": "today"}).json()
        assert [len(s["items"]) for s in sections] == [1]

    @pytest.mark.parametrize("amount", [0, -5, "abc"])
    def test_bad_amount_is_400(self, client, category_id, amount):
        res = client.post("/api/expenses", json={"amount": amount, "category_id": category_id})
        assert res.status_code == 400
        assert res.json()["field"] == "amount"
        assert client.get("/api/expenses", params={"filter": "this month"}).json() == []

    def test_unknown_filter_is_422(self, client, logged_in):
        assert client.get("/api/expenses", params={"filter": "yesterday"}).status_code == 422

    def test_update_and_delete(self, client, category_id):
        created = client.post(
            "/api/expenses",
            json={"amount": 5, "category_id": category_id, "date": "2025-03-01"},
        ).json()

        updated = client.patch(
            f"/api/expenses/{created['id']}",
            json={"amount": 7, "category_id": category_id, "date": "2025-03-02"},
        ).json()
        assert (updated["amount"], updated["date"]) == (7, "2025-03-02")

        assert client.delete(f"/api/expenses/{created['id']}").json() == {"ok": True}
        assert client.get(f"/api/expenses/{created['id']}").status_code == 404

    def test_missing_expense_is_404(self, client, category_id):
        res = client.patch("/api/expenses/999", json={"amount": 1, "category_id": category_id})
        assert res.status_code == 404
        assert client.delete("/api/expenses/999").status_code == 404

    def test_ids_past_integer_range_are_422(self, client, category_id):
        huge = 2**70
        assert client.get(f"/api/expenses/{huge}").status_code == 422
        assert client.patch(f"/api/expenses/{huge}", json={"amount": 1, "category_id": category_id}).status_code == 422
        res = client.post("/api/expenses", json={"amount": 1, "category_id": huge})
        assert res.status_code == 422
        assert client.get("/api/expenses", params={"filter": "this month"}).json() == []


class TestStatsRoutes:
    def test_month_total(self, client, logged_in):
        category_id = client.post("/api/categories", json={"name": "Food"}).json()["id"]
        for amount in (100, 250, 50):
            client.post(
                "/api/expenses",
                json={"amount": amount, "category_id": category_id, "date": "2025-03-10"},
            )

        res = client.get("/api/stats/month-total", params={"month": "2025-03"})
        assert res.json() == {"month": "2025-03", "total": 400}
        assert client.get("/api/stats/month-total", params={"month": "2025-04"}).json()["total"] == 0

        summary = client.get("/api/stats/month-summary", params={"month": "2025-03"}).json()
        assert summary["count"] == 3
        assert summary["breakdown"][0]["percentage"] == 100
        assert summary["previous_month"] == "2025-02"

    def test_bad_month_is_400(self, client, logged_in):
        res = client.get("/api/stats/month-total", params={"month": "March"})
        assert res.status_code == 400
        assert res.json()["field"] == "date"
