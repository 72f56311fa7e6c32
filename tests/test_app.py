from datetime import timedelta
from typing import Iterator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.api import get_processor
from app.main import create_app
from services.processor import TelemetryProcessor
from storage.mock_topic import MockTopicPublisher

from conftest import TEST_TOPIC


class OutagePublisher(MockTopicPublisher):
    def publish(self, topic, message, attributes):
        raise ConnectionError("Name or service not known: sns.us-east-1.amazonaws.com")


@pytest.fixture
def publisher() -> MockTopicPublisher:
    return MockTopicPublisher()


@pytest.fixture
def api_client(publisher: MockTopicPublisher) -> Iterator[TestClient]:
    app = create_app()
    app.dependency_overrides[get_processor] = lambda: TelemetryProcessor(publisher)
    with TestClient(app) as client:
        yield client


def _reading_body(value: float = 25.5) -> dict:
    return {
        "fieldId": str(uuid4()),
        "sensorType": "Temperature",
        "value": value,
        "timestamp": "2024-01-01T00:00:00Z",
    }


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_valid_reading_is_accepted_and_published(
    api_client: TestClient, publisher: MockTopicPublisher, token_factory
) -> None:
    device_id = uuid4()
    token = token_factory(
        device_id, farmer_name="Alice", field_name="North40", property_name="Farm1"
    )
    body = _reading_body(25.5)

    response = api_client.post("/api/telemetry", json=body, headers=_auth(token))

    assert response.status_code == 202
    assert response.content == b""
    messages = publisher.messages(TEST_TOPIC)
    assert len(messages) == 1
    published = messages[0].body()
    assert published["SensorDeviceId"] == str(device_id)
    assert published["Value"] == 25.5
    assert published["FieldId"] == body["fieldId"]
    assert published["farmerName"] == "Alice"
    assert published["fieldName"] == "North40"
    assert published["propertyName"] == "Farm1"
    assert published["ProcessingId"]
    assert messages[0].attributes["SensorType"].string_value == "Temperature"


def test_out_of_range_reading_is_client_error(
    api_client: TestClient, publisher: MockTopicPublisher, token_factory
) -> None:
    response = api_client.post(
        "/api/telemetry", json=_reading_body(10500), headers=_auth(token_factory(uuid4()))
    )

    assert response.status_code == 400
    assert response.json() == {
        "kind": "bad_input",
        "detail": "value outside operational bounds",
    }
    assert publisher.topics() == []


def test_publisher_outage_is_server_error(token_factory) -> None:
    app = create_app()
    app.dependency_overrides[get_processor] = lambda: TelemetryProcessor(OutagePublisher())

    with TestClient(app) as client:
        response = client.post(
            "/api/telemetry", json=_reading_body(), headers=_auth(token_factory(uuid4()))
        )

    assert response.status_code == 500
    payload = response.json()
    assert payload["kind"] == "publish_failure"
    assert "amazonaws" not in payload["detail"]


def test_missing_token_is_rejected(api_client: TestClient, publisher: MockTopicPublisher) -> None:
    response = api_client.post("/api/telemetry", json=_reading_body())

    assert response.status_code == 401
    assert response.json()["kind"] == "unauthorized"
    assert publisher.topics() == []


def test_token_signed_with_other_key_is_rejected(api_client: TestClient, token_factory) -> None:
    token = token_factory(uuid4(), secret="another-signing-key-with-32-bytes-or-more")

    response = api_client.post("/api/telemetry", json=_reading_body(), headers=_auth(token))

    assert response.status_code == 401
    assert response.json()["kind"] == "unauthorized"


def test_expired_token_is_rejected(api_client: TestClient, token_factory) -> None:
    token = token_factory(uuid4(), expires_in=timedelta(minutes=-5))

    response = api_client.post("/api/telemetry", json=_reading_body(), headers=_auth(token))

    assert response.status_code == 401


def test_token_without_device_role_is_forbidden(
    api_client: TestClient, publisher: MockTopicPublisher, token_factory
) -> None:
    token = token_factory(uuid4(), role="Admin")

    response = api_client.post("/api/telemetry", json=_reading_body(), headers=_auth(token))

    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"
    assert publisher.topics() == []


def test_role_list_containing_device_is_accepted(api_client: TestClient, token_factory) -> None:
    token = token_factory(uuid4(), role=["Viewer", "Device"])

    response = api_client.post("/api/telemetry", json=_reading_body(), headers=_auth(token))

    assert response.status_code == 202


def test_malformed_device_id_is_identity_error(
    api_client: TestClient, publisher: MockTopicPublisher, token_factory
) -> None:
    token = token_factory("not-a-uuid")

    response = api_client.post("/api/telemetry", json=_reading_body(), headers=_auth(token))

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_device_identity"
    assert publisher.topics() == []


@pytest.mark.parametrize("subject_claims", [{}, {"sub": 42}])
def test_missing_or_non_string_device_id_is_identity_error(
    api_client: TestClient, publisher: MockTopicPublisher, token_factory, subject_claims
) -> None:
    token = token_factory(None, **subject_claims)

    response = api_client.post("/api/telemetry", json=_reading_body(), headers=_auth(token))

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_device_identity"
    assert publisher.topics() == []


def test_missing_optional_claims_are_not_fatal(
    api_client: TestClient, publisher: MockTopicPublisher, token_factory
) -> None:
    response = api_client.post(
        "/api/telemetry", json=_reading_body(), headers=_auth(token_factory(uuid4()))
    )

    assert response.status_code == 202
    published = publisher.messages(TEST_TOPIC)[0].body()
    assert published["farmerName"] is None


def test_schema_violation_is_reported(api_client: TestClient, token_factory) -> None:
    body = _reading_body()
    body["value"] = "warm"
    del body["fieldId"]

    response = api_client.post("/api/telemetry", json=body, headers=_auth(token_factory(uuid4())))

    assert response.status_code == 422
    payload = response.json()
    assert payload["kind"] == "invalid_request"
    assert "fieldId" in payload["detail"]
    assert "value" in payload["detail"]


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "healthy"}
    assert api_client.get("/").status_code == 200
