"""Tests for the public registration endpoints"""

from fastapi.testclient import TestClient

from patient_intake.main import create_app
from tests.helpers import FailingStore

JOHN = {"name": "John Doe", "email": "john@example.com", "phone": "+15551234567"}


class TestRegisterEndpoint:
    def test_register_then_resubmit(self, client):
        response = client.post("/api/register", json=JOHN)

        assert response.status_code == 201, f"Expected 201, got {response.status_code}"
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Patient registered successfully"
        assert data["name"] == "John Doe"
        assert data["id"]
        assert data["registeredAt"]

        response = client.post("/api/register", json=JOHN)

        assert response.status_code == 409
        assert response.json() == {
            "error": "duplicate",
            "message": "Patient with this phone/email already exists",
        }

    def test_form_encoded_submission(self, client):
        response = client.post(
            "/api/register",
            data={"first_name": "Jane", "last_name": "Smith", "phone": "555 987 6543"},
        )

        assert response.status_code == 201
        assert response.json()["name"] == "Jane Smith"

    def test_validation_errors_list_every_field(self, client, json_store):
        response = client.post(
            "/api/register", json={"name": "", "email": "bad", "phone": "123"}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert {d["field"] for d in data["details"]} == {"name", "email", "phone"}
        assert json_store.list_all() == []

    def test_malformed_json(self, client):
        response = client.post(
            "/api/register",
            content="{broken",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "body"

    def test_json_array_rejected(self, client):
        response = client.post("/api/register", json=[JOHN])

        assert response.status_code == 400

    def test_backend_outage_is_500(self, admin_key):
        client = TestClient(create_app(storage=FailingStore()))

        response = client.post("/api/register", json=JOHN)

        assert response.status_code == 500
        assert response.json()["error"] == "Registration failed"
        assert "pat-" not in response.text


class TestRegisterProbe:
    def test_get_reports_backend(self, client):
        response = client.get("/api/register")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert data["method"] == "POST"
        assert data["backend"] == "json"
        assert data["airtableConnected"] is False

    def test_probe_has_no_side_effects(self, client, json_store):
        client.get("/api/register")

        assert json_store.list_all() == []

    def test_registration_page(self, client):
        response = client.get("/register")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "/api/register" in response.text
