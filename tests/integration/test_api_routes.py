"""
Integration tests for the HTTP API
"""

import pytest
from fastapi.testclient import TestClient

from spendwise.api.main import create_app
from spendwise.automation.supervisor import AutomationSupervisor
from spendwise.security.rate_limiter import InMemoryRateLimiter


@pytest.fixture
def app(container):
    return create_app(container, AutomationSupervisor(container.settings, enabled=False))


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def session_client(client, session_cookies):
    client.cookies.update(session_cookies)
    return client


def create_token(container, user, *scopes):
    return container.api_key_service.create_api_key(user.id, {"scopes": list(scopes)}).token


class TestHealthAndAuth:
    """Test the unauthenticated surface"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_anonymous_request(self, client):
        response = client.get("/api/expenses")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_starts_when_worker_cannot_spawn(self, container):
        """Test the API still serves when the automation worker fails to start"""

        def failing_popen(command, env=None):
            raise OSError("spawn failed")

        settings = container.settings.model_copy(
            update={
                "automation": container.settings.automation.model_copy(
                    update={"restart_delay_ms": 60_000}
                )
            }
        )
        supervisor = AutomationSupervisor(
            settings, command=["worker"], popen=failing_popen, enabled=True
        )
        app = create_app(container, supervisor)

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert supervisor.restart_pending

        assert not supervisor.restart_pending

    def test_malformed_key(self, client):
        response = client.get("/api/expenses", headers={"x-api-key": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid API key format"}


class TestExpenseRoutes:
    """Test expense endpoints with a session"""

    def test_create_list_update_delete(self, session_client):
        created = session_client.post(
            "/api/expenses",
            json={"amount": 80, "description": "Dinner", "occurredOn": "2024-03-09", "splitBy": 2},
        )
        assert created.status_code == 201
        expense = created.json()
        assert expense["impact_amount"] == 40

        listed = session_client.get("/api/expenses").json()
        assert [e["id"] for e in listed["expenses"]] == [expense["id"]]

        patched = session_client.patch(f"/api/expenses/{expense['id']}", json={"amount": 100})
        assert patched.status_code == 200
        assert patched.json()["amount"] == 100

        deleted = session_client.delete(f"/api/expenses/{expense['id']}")
        assert deleted.json() == {"ok": True}
        assert session_client.get(f"/api/expenses/{expense['id']}").status_code == 404

    def test_validation_issues(self, session_client):
        response = session_client.post("/api/expenses", json={"amount": "lots"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert {"amount", "description", "occurredOn"} <= {i["path"] for i in body["issues"]}

    def test_non_object_body(self, session_client):
        response = session_client.post("/api/expenses", json=[1, 2])

        assert response.status_code == 400
        assert response.json()["issues"] == [{"path": "root", "message": "Expected an object"}]

    def test_malformed_json(self, session_client):
        response = session_client.post(
            "/api/expenses", content=b"{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_materialized_entry_conflict(self, session_client):
        """Test a generated entry shows up on read and refuses edits"""
        template = session_client.post(
            "/api/recurring", json={"amount": 12, "description": "Music", "dueDayOfMonth": 5}
        )
        assert template.status_code == 201

        expenses = session_client.get("/api/expenses").json()["expenses"]
        assert len(expenses) == 1
        assert expenses[0]["recurring_source_id"] == template.json()["id"]
        assert expenses[0]["occurred_on"] == "2024-03-05"

        response = session_client.patch(f"/api/expenses/{expenses[0]['id']}", json={"amount": 1})
        assert response.status_code == 409

    def test_unexpected_error_is_opaque(self, app, container, session_cookies, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("database path /secret/leak")

        monkeypatch.setattr(container.expense_service, "list_expenses", explode)
        client = TestClient(app, raise_server_exceptions=False)
        client.cookies.update(session_cookies)

        response = client.get("/api/expenses")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}


class TestIncomeRoutes:
    """Test income and recurring income endpoints"""

    def test_recurring_income_and_summary(self, session_client):
        created = session_client.post(
            "/api/income/recurring", json={"amount": 2500, "description": "Salary"}
        )
        assert created.status_code == 201

        templates = session_client.get("/api/income/recurring").json()["templates"]
        assert [t["id"] for t in templates] == [created.json()["id"]]

        toggled = session_client.put(f"/api/income/recurring/{created.json()['id']}")
        assert toggled.json()["is_active"] is False

        summary = session_client.get("/api/income/summary", params={"month": "2024-03-01"})
        assert summary.json() == {"month": "2024-03-01", "total": 0, "currency": "EUR"}

        session_client.put(f"/api/income/recurring/{created.json()['id']}")
        summary = session_client.get("/api/income/summary").json()
        assert summary["total"] == 2500


class TestApiKeyAccess:
    """Test requests authenticated with API keys"""

    def test_scope_enforced(self, client, container, user):
        token = create_token(container, user, "expenses:read")
        headers = {"x-api-key": token}

        assert client.get("/api/expenses", headers=headers).status_code == 200
        response = client.post(
            "/api/income",
            headers=headers,
            json={"amount": 1, "description": "x", "occurredOn": "2024-03-01"},
        )
        assert response.status_code == 403
        assert response.json() == {"error": "API key scope insufficient"}

    def test_keys_cannot_manage_keys(self, client, container, user):
        token = create_token(container, user, "expenses:read", "expenses:write")

        response = client.get("/api/api-keys", headers={"x-api-key": token})

        assert response.status_code == 403
        assert response.json() == {"error": "Manage API keys through the dashboard."}

    def test_rate_limited(self, client, container, user, ms_clock):
        container.authenticator.rate_limiter = InMemoryRateLimiter(
            window_ms=60_000, max_requests=2, clock=ms_clock
        )
        headers = {"x-api-key": create_token(container, user, "expenses:read")}

        assert client.get("/api/expenses", headers=headers).status_code == 200
        assert client.get("/api/expenses", headers=headers).status_code == 200
        response = client.get("/api/expenses", headers=headers)

        assert response.status_code == 429
        assert response.headers["retry-after"] == "60"
        assert response.json() == {"error": "Too many requests"}


class TestApiKeyRoutes:
    """Test the key management lifecycle"""

    def test_create_use_revoke_delete(self, session_client):
        created = session_client.post(
            "/api/api-keys", json={"scopes": ["expenses:read"], "description": "Sheets"}
        )
        assert created.status_code == 201
        token = created.json()["token"]
        record = created.json()["record"]
        assert record["scopes"] == ["expenses:read"]
        assert "hashed_secret" not in record

        keys = session_client.get("/api/api-keys").json()["keys"]
        assert [k["id"] for k in keys] == [record["id"]]

        revoked = session_client.delete(f"/api/api-keys/{record['id']}")
        assert revoked.json() == {"ok": True, "action": "revoked"}

        session_client.cookies.clear()
        response = session_client.get("/api/expenses", headers={"x-api-key": token})
        assert response.status_code == 403
        assert response.json() == {"error": "API key has been revoked"}

    def test_second_delete_removes_key(self, session_client):
        record = session_client.post("/api/api-keys", json={"scopes": ["budget:read"]}).json()["record"]

        session_client.delete(f"/api/api-keys/{record['id']}")
        response = session_client.delete(f"/api/api-keys/{record['id']}")

        assert response.json() == {"ok": True, "action": "deleted"}
        assert session_client.get("/api/api-keys").json() == {"keys": []}
        assert session_client.delete(f"/api/api-keys/{record['id']}").status_code == 404

    def test_invalid_scopes(self, session_client):
        response = session_client.post("/api/api-keys", json={"scopes": ["root"]})

        assert response.status_code == 400
        assert response.json()["issues"] == [
            {"path": "scopes", "message": "At least one valid scope is required"}
        ]
