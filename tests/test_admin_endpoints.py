from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from zapdesk.database import get_db
from zapdesk.main import app


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestBasicEndpoints:
    def test_health(self, client):
        response = client.get("/health")
        assert response.json() == {"status": "ok"}

    def test_db_check_counts_tables(self, client, db):
        db.query.return_value.count.return_value = 7

        response = client.get("/db-check")

        assert response.json() == {"status": "ok", "contatos": 7, "conversas": 7, "mensagens": 7, "profiles": 7}

    def test_version(self, client, monkeypatch):
        monkeypatch.setenv("APP_VERSION", "1.2.3")
        monkeypatch.setenv("GIT_COMMIT", "abc123")

        response = client.get("/admin/version")

        assert response.json()["version"] == "1.2.3"
        assert response.json()["git_commit"] == "abc123"


class TestHeal:
    def test_requires_token(self, client, mock_env):
        response = client.post("/admin/heal")
        assert response.status_code == 401

    def test_rejects_wrong_token(self, client, mock_env):
        response = client.post("/admin/heal", headers={"X-Admin-Token": "nope"})
        assert response.status_code == 401

    def test_token_not_configured(self, client, monkeypatch):
        monkeypatch.delenv("ADMIN_TOKEN", raising=False)
        response = client.post("/admin/heal", headers={"X-Admin-Token": "anything"})
        assert response.status_code == 500

    @patch("zapdesk.routers.admin.alert_conversations_healed")
    @patch("zapdesk.routers.admin.check_and_heal_conversations")
    def test_heals_with_valid_token(self, mock_heal, mock_alert, client, db, mock_env):
        details = [{"conversa_id": "c1", "issue": "pendente_with_agent"}, {"conversa_id": "c2", "issue": "pendente_with_agent"}]
        mock_heal.return_value = {"healed_count": 2, "details": details, "checked_at": "now"}

        response = client.post("/admin/heal", headers={"X-Admin-Token": "admin-secret"})

        assert response.status_code == 200
        assert response.json()["healed_count"] == 2
        mock_heal.assert_called_once_with(db)
        mock_alert.assert_called_once_with(details)

    @patch("zapdesk.routers.admin.alert_conversations_healed")
    @patch("zapdesk.routers.admin.check_and_heal_conversations")
    def test_nothing_healed_sends_no_alert(self, mock_heal, mock_alert, client, mock_env):
        mock_heal.return_value = {"healed_count": 0, "details": [], "checked_at": "now"}

        client.post("/admin/heal", headers={"X-Admin-Token": "admin-secret"})

        mock_alert.assert_not_called()

    @patch("zapdesk.routers.admin.get_system_health")
    def test_system_health(self, mock_health, client):
        mock_health.return_value = {"conversations": {}, "agents_online": 0, "checked_at": "now"}

        response = client.get("/admin/health")

        assert response.json()["agents_online"] == 0


class TestAlertsEndpoint:
    @patch("zapdesk.routers.alerts.send_alert", return_value=True)
    def test_sends_test_alert(self, mock_send, client, mock_env):
        response = client.post("/alerts/test", headers={"X-Admin-Token": "admin-secret"})

        assert response.json() == {"success": True, "message": "Alert sent"}
        mock_send.assert_called_once()

    @patch("zapdesk.routers.alerts.send_alert", return_value=False)
    def test_reports_unconfigured_bot(self, _mock_send, client, mock_env):
        response = client.post("/alerts/test", headers={"X-Admin-Token": "admin-secret"})

        assert response.json()["success"] is False
