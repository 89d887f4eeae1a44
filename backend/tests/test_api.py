"""API tests using FastAPI's TestClient with an in-memory stored request service"""
import pytest
from fastapi.testclient import TestClient

from vaultdesk.api.deps import get_stored_request_service
from vaultdesk.config.settings import settings
from vaultdesk.main import app
from vaultdesk.repositories.stored_request_repo import StoredRequestRepository
from vaultdesk.services.stored_request_service import StoredRequestService

ADMIN = {"X-User-Email": "admin@example.com"}
REQUESTER = {"X-User-Email": "dev@example.com"}
DRAFT = {
    "selected_action": "share-folder",
    "edit_buffer": {"user": "a@example.com", "action": "grant"},
    "selected_entities": {"folder": {"uid": "F1", "title": "Team"}},
}


@pytest.fixture
def client(fake_collection, monkeypatch):
    monkeypatch.setattr(settings, "administrator_emails", "admin@example.com")
    service = StoredRequestService(repo=StoredRequestRepository(collection=fake_collection))
    app.dependency_overrides[get_stored_request_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRecordTypeRoutes:

    def test_list_record_types(self, client):
        response = client.get("/api/v1/record-types")
        assert response.status_code == 200
        assert "login" in [option["value"] for option in response.json()]
        assert response.headers["X-Correlation-Id"]

    def test_list_actions(self, client):
        response = client.get("/api/v1/record-types/actions")
        assert response.status_code == 200
        assert len(response.json()) == 5

    def test_fields(self, client):
        body = client.get("/api/v1/record-types/login/fields").json()
        assert [field["name"] for field in body["fields"]][:3] == ["title", "notes", "login"]
        assert body["fallback_message"] is None

    def test_unknown_type_falls_back(self, client):
        body = client.get("/api/v1/record-types/mystery/fields").json()
        assert body["fields"] == []
        assert body["fallback_message"]

    def test_map_values(self, client):
        secret = {
            "uid": "REC2",
            "title": "Jane",
            "type": "contact",
            "fields": [
                {"type": "name", "value": [{"first": "Jane", "last": "Doe"}]},
                {"type": "phone", "value": [{"number": "555-0100"}]},
                {"type": "phone", "value": [{"number": "555-0199"}]},
            ],
        }
        response = client.post("/api/v1/record-types/contact/map", json=secret)
        assert response.status_code == 200
        body = response.json()
        assert body["buffer"]["name_first"] == "Jane"
        assert body["buffer"]["phone_number"] == "555-0100"
        assert [custom["id"] for custom in body["custom_fields"]] == ["phone_2"]


class TestTicketRoutes:

    def test_role(self, client):
        assert client.get("/api/v1/tickets/T1/role", headers=ADMIN).json()["is_administrator"] is True
        body = client.get("/api/v1/tickets/T1/role", headers=REQUESTER).json()
        assert body["role"] == "REQUESTER"

    def test_stored_request_lifecycle(self, client):
        assert client.get("/api/v1/tickets/T1/stored-request").status_code == 404

        saved = client.put("/api/v1/tickets/T1/stored-request", json=DRAFT, headers=REQUESTER)
        assert saved.status_code == 200
        assert saved.json()["success"] is True

        body = client.get("/api/v1/tickets/T1/stored-request").json()
        assert body["ticket_id"] == "T1"
        assert body["submitted_by"] == "dev@example.com"
        assert body["selected_entities"]["folder"]["uid"] == "F1"

        updated = dict(DRAFT, edit_buffer={"user": "b@example.com", "action": "grant"})
        client.put("/api/v1/tickets/T1/stored-request", json=updated, headers=REQUESTER)
        body = client.get("/api/v1/tickets/T1/stored-request").json()
        assert body["edit_buffer"]["user"] == "b@example.com"

        assert client.delete("/api/v1/tickets/T1/stored-request", headers=REQUESTER).status_code == 200
        assert client.get("/api/v1/tickets/T1/stored-request").status_code == 404

    def test_administrator_cannot_save(self, client):
        response = client.put("/api/v1/tickets/T1/stored-request", json=DRAFT, headers=ADMIN)
        assert response.status_code == 409

    def test_invalid_body(self, client):
        response = client.put(
            "/api/v1/tickets/T1/stored-request", json={"selected_action": "nope"}, headers=REQUESTER
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_reject(self, client):
        client.put("/api/v1/tickets/T1/stored-request", json=DRAFT, headers=REQUESTER)

        assert client.post("/api/v1/tickets/T1/reject", json={"reason": "no"}, headers=REQUESTER).status_code == 403
        assert client.post("/api/v1/tickets/T1/reject", json={"reason": " "}, headers=ADMIN).status_code == 400

        response = client.post("/api/v1/tickets/T1/reject", json={"reason": "Out of policy"}, headers=ADMIN)
        assert response.status_code == 200
        assert client.get("/api/v1/tickets/T1/stored-request").status_code == 404
