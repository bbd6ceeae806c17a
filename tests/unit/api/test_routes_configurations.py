"""Unit tests for configuration API routes.

Tests for:
- GET/POST /api/configurations
- GET/PATCH/DELETE /api/configurations/{id}
- GET/PUT /api/channel-mappings, DELETE /api/channel-mappings/{channel_id}
- GET /api/ping and correlation ids
"""

import json
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_200_OK,
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_502_BAD_GATEWAY,
)

from conftest import (
    SALEOR_API_URL,
    TEST_PUBLISHABLE_KEY,
    TEST_SECRET_KEY,
    InMemoryMetadataManager,
    make_configuration_entry,
)
from stripe_app.api.dependencies import reset_services
from stripe_app.api.main import app
from stripe_app.models.errors import invalid_secret_key_error, webhook_provisioning_error
from stripe_app.services.app_configurator import APP_METADATA_KEY
from stripe_app.services.metadata_manager import get_metadata_manager
from stripe_app.services.stripe_service import get_stripe_service

HEADERS = {"Saleor-Api-Url": SALEOR_API_URL}

NEW_ENTRY = {
    "configurationName": "Main store",
    "secretKey": TEST_SECRET_KEY,
    "publishableKey": TEST_PUBLISHABLE_KEY,
}


@pytest.fixture
def client(
    metadata_manager: InMemoryMetadataManager, mock_stripe_service
) -> Generator[TestClient, None, None]:
    """Create test client with the store and Stripe boundary overridden."""
    app.dependency_overrides[get_metadata_manager] = lambda: metadata_manager
    app.dependency_overrides[get_stripe_service] = lambda: mock_stripe_service
    yield TestClient(app)
    app.dependency_overrides.clear()
    reset_services()


def _add_entry(client: TestClient, **overrides: str) -> dict:
    response = client.post("/api/configurations", json={**NEW_ENTRY, **overrides}, headers=HEADERS)
    assert response.status_code == HTTP_201_CREATED
    return response.json()


class TestPing:
    def test_ping(self, client: TestClient) -> None:
        response = client.get("/api/ping")
        assert response.status_code == HTTP_200_OK
        assert response.json()["status"] == "ok"

    def test_correlation_id_echoed(self, client: TestClient) -> None:
        response = client.get("/api/ping", headers={"X-Correlation-ID": "req-123"})
        assert response.headers["X-Correlation-ID"] == "req-123"

    def test_correlation_id_generated(self, client: TestClient) -> None:
        response = client.get("/api/ping")
        assert response.headers["X-Correlation-ID"]


class TestAddConfiguration:
    """Tests for POST /api/configurations."""

    def test_returns_obfuscated_entry(self, client: TestClient) -> None:
        body = _add_entry(client)

        assert body["configurationName"] == "Main store"
        assert body["secretKey"] == "sk_test_...1234"
        assert body["publishableKey"] == "pk_test_...5678"
        assert body["webhookId"] == "we_test_1"
        assert TEST_SECRET_KEY not in str(body)

    def test_invalid_key_returns_field_error(
        self, client: TestClient, mock_stripe_service
    ) -> None:
        mock_stripe_service.validate_keys.side_effect = invalid_secret_key_error()

        response = client.post("/api/configurations", json=NEW_ENTRY, headers=HEADERS)

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "ERR_KEY_002"
        assert body["field_name"] == "secretKey"
        assert body["rpc_code"] == "BAD_REQUEST"

    def test_webhook_failure_returns_502(self, client: TestClient, mock_stripe_service) -> None:
        mock_stripe_service.create_webhook.side_effect = webhook_provisioning_error("boom")

        response = client.post("/api/configurations", json=NEW_ENTRY, headers=HEADERS)

        assert response.status_code == HTTP_502_BAD_GATEWAY
        assert client.get("/api/configurations", headers=HEADERS).json()["configurations"] == []

    def test_missing_fields_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/configurations", json={"configurationName": "x"}, headers=HEADERS
        )
        assert response.status_code == HTTP_422_UNPROCESSABLE_ENTITY

    def test_tenant_header_required(self, client: TestClient) -> None:
        response = client.post("/api/configurations", json=NEW_ENTRY)
        assert response.status_code == HTTP_422_UNPROCESSABLE_ENTITY


class TestReadConfigurations:
    """Tests for GET routes."""

    def test_list(self, client: TestClient) -> None:
        entry = _add_entry(client)

        body = client.get("/api/configurations", headers=HEADERS).json()

        assert [e["configurationId"] for e in body["configurations"]] == [
            entry["configurationId"]
        ]
        assert body["configurations"][0]["webhookSecret"] == "whsec_...0001"
        assert body["channelToConfigurationId"] == {}

    def test_get_one(self, client: TestClient) -> None:
        entry = _add_entry(client)

        response = client.get(f"/api/configurations/{entry['configurationId']}", headers=HEADERS)

        assert response.status_code == HTTP_200_OK
        assert response.json()["secretKey"] == "sk_test_...1234"

    def test_get_unknown(self, client: TestClient) -> None:
        response = client.get("/api/configurations/missing", headers=HEADERS)

        assert response.status_code == HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "ERR_CONFIG_001"
        assert response.json()["message"] == "Entry with id missing was not found"

    def test_tenants_do_not_see_each_other(self, client: TestClient) -> None:
        _add_entry(client)

        body = client.get(
            "/api/configurations",
            headers={"Saleor-Api-Url": "https://other-shop.example.com/graphql/"},
        ).json()
        assert body["configurations"] == []

    def test_environment_follows_key_mode(self, client: TestClient) -> None:
        _add_entry(client)
        _add_entry(
            client,
            secretKey="sk_live_51Habcdefghijklmnop9999",
            publishableKey="pk_live_51Habcdefghijklmnop8888",
        )

        body = client.get("/api/configurations", headers=HEADERS).json()

        assert [e["environment"] for e in body["configurations"]] == ["test", "live"]

    def test_malformed_stored_config_hides_secrets(
        self, client: TestClient, metadata_manager: InMemoryMetadataManager
    ) -> None:
        entry = make_configuration_entry(
            secret_key="sk_live_supersecretvalue", webhook_secret="whsec_supersecretvalue"
        ).model_dump(by_alias=True)
        del entry["webhookId"]
        metadata_manager.records[(SALEOR_API_URL, APP_METADATA_KEY)] = json.dumps(
            {"configurations": [entry]}
        )

        response = client.get("/api/configurations", headers=HEADERS)

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_CONFIG_002"
        assert "supersecretvalue" not in response.text


class TestUpdateConfiguration:
    def test_rename(self, client: TestClient) -> None:
        entry = _add_entry(client)

        response = client.patch(
            f"/api/configurations/{entry['configurationId']}",
            json={"configurationName": "Renamed"},
            headers=HEADERS,
        )

        assert response.status_code == HTTP_200_OK
        assert response.json()["configurationName"] == "Renamed"
        assert response.json()["webhookId"] == entry["webhookId"]

    def test_keys_cannot_be_patched(self, client: TestClient) -> None:
        entry = _add_entry(client)

        response = client.patch(
            f"/api/configurations/{entry['configurationId']}",
            json={"secretKey": "sk_test_other"},
            headers=HEADERS,
        )

        assert response.status_code == HTTP_422_UNPROCESSABLE_ENTITY

    def test_unknown(self, client: TestClient) -> None:
        response = client.patch(
            "/api/configurations/missing", json={"configurationName": "x"}, headers=HEADERS
        )
        assert response.status_code == HTTP_404_NOT_FOUND


class TestDeleteConfiguration:
    def test_delete_removes_entry_and_mappings(
        self, client: TestClient, mock_stripe_service
    ) -> None:
        entry = _add_entry(client)
        client.put(
            "/api/channel-mappings",
            json={"channelToConfigurationId": {"channel-1": entry["configurationId"]}},
            headers=HEADERS,
        )

        response = client.delete(
            f"/api/configurations/{entry['configurationId']}", headers=HEADERS
        )

        assert response.status_code == HTTP_204_NO_CONTENT
        body = client.get("/api/configurations", headers=HEADERS).json()
        assert body == {"configurations": [], "channelToConfigurationId": {}}
        mock_stripe_service.delete_webhook.assert_called_once()

    def test_unknown(self, client: TestClient) -> None:
        response = client.delete("/api/configurations/missing", headers=HEADERS)
        assert response.status_code == HTTP_404_NOT_FOUND


class TestChannelMappings:
    def test_put_merges(self, client: TestClient) -> None:
        client.put(
            "/api/channel-mappings",
            json={"channelToConfigurationId": {"channel-1": "config-1"}},
            headers=HEADERS,
        )
        response = client.put(
            "/api/channel-mappings",
            json={"channelToConfigurationId": {"channel-2": "config-2"}},
            headers=HEADERS,
        )

        assert response.status_code == HTTP_200_OK
        assert response.json() == {
            "channelToConfigurationId": {"channel-1": "config-1", "channel-2": "config-2"}
        }

    def test_get_and_delete(self, client: TestClient) -> None:
        client.put(
            "/api/channel-mappings",
            json={"channelToConfigurationId": {"channel-1": "config-1", "channel-2": "c-2"}},
            headers=HEADERS,
        )

        response = client.delete("/api/channel-mappings/channel-1", headers=HEADERS)

        assert response.json() == {"channelToConfigurationId": {"channel-2": "c-2"}}
        assert client.get("/api/channel-mappings", headers=HEADERS).json() == {
            "channelToConfigurationId": {"channel-2": "c-2"}
        }
