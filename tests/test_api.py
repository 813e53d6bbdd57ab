"""Integration tests for the HTTP API."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from app.application.use_cases.notifications import DeliveryOrchestrator
from app.config import get_settings
from app.infrastructure.channels import InAppSender, SenderRegistry
from app.interfaces.api.dependencies import get_db
from main import create_app


def _build_client(settings, session_factory, engine, orchestrator) -> TestClient:
    app = create_app(
        settings=settings,
        orchestrator=orchestrator,
        session_factory=session_factory,
        bind=engine,
    )

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


@pytest.fixture()
def client(settings, session_factory, engine, orchestrator):
    with _build_client(settings, session_factory, engine, orchestrator) as test_client:
        yield test_client


def _create_user(client: TestClient, **overrides) -> dict:
    payload = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+15551234567",
        "locale": "en",
    }
    payload.update(overrides)
    response = client.post("/users/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_user_crud_flow(client: TestClient) -> None:
    created = _create_user(client, timezone="America/New_York")
    user_id = created["id"]

    assert created["timezone"] == "America/New_York"
    assert client.get(f"/users/{user_id}").json()["email"] == "ada@example.com"

    response = client.put(f"/users/{user_id}", json={"phone": "+15557654321"})
    assert response.status_code == 200
    assert response.json()["phone"] == "+15557654321"

    duplicate = client.post("/users/", json={"name": "Other", "email": "ada@example.com"})
    assert duplicate.status_code == 400

    invalid = client.post("/users/", json={"name": "Other", "email": "not-an-email"})
    assert invalid.status_code == 422

    assert len(client.get("/users/").json()) == 1

    assert client.delete(f"/users/{user_id}").status_code == 204
    assert client.get(f"/users/{user_id}").status_code == 404
    assert client.get("/users/", params={"include_deleted": True}).json()[0]["deleted"] is True


def test_preference_endpoints(client: TestClient) -> None:
    user_id = _create_user(client)["id"]
    base = f"/users/{user_id}/preferences"

    response = client.put(
        f"{base}/",
        json={
            "type": "PROMOTIONAL",
            "channel": "EMAIL",
            "enabled": True,
            "quiet_hours_start": "22:00:00",
            "quiet_hours_end": "06:00:00",
            "max_per_hour": 2,
        },
    )
    assert response.status_code == 200, response.text
    assert response.json()["quiet_hours_start"] == "22:00:00"

    replaced = client.put(f"{base}/", json={"type": "PROMOTIONAL", "channel": "EMAIL", "enabled": False})
    assert replaced.json()["id"] == response.json()["id"]
    assert replaced.json()["enabled"] is False
    assert len(client.get(f"{base}/").json()) == 1

    half_window = client.put(
        f"{base}/",
        json={"type": "ALERT", "channel": "SMS", "quiet_hours_start": "22:00:00"},
    )
    assert half_window.status_code == 400

    assert client.delete(f"{base}/PROMOTIONAL/EMAIL").status_code == 204
    assert client.delete(f"{base}/PROMOTIONAL/EMAIL").status_code == 404
    assert client.get("/users/9999/preferences/").status_code == 404


def test_dispatch_and_track_notification(client: TestClient, email_sender) -> None:
    user_id = _create_user(client)["id"]

    response = client.post(
        "/notifications/dispatch",
        json={
            "user_id": user_id,
            "channel": "EMAIL",
            "title": "Pedido",
            "message": "Order #123 confirmed",
        },
    )
    assert response.status_code == 200, response.text
    result = response.json()
    notification_id = result["notification_id"]
    assert result["status"] == "SENT"
    assert len(email_sender.calls) == 1

    assert client.get(f"/notifications/{notification_id}/status").json()["status"] == "SENT"
    assert client.get(f"/notifications/{notification_id}").json()["message"] == "Order #123 confirmed"

    attempts = client.get(f"/notifications/{notification_id}/attempts").json()
    assert [entry["status"] for entry in attempts] == ["SENT"]

    cancel = client.post(f"/notifications/{notification_id}/cancel").json()
    assert cancel == {"notification_id": notification_id, "success": False, "status": "SENT"}

    delivered = client.post(
        f"/notifications/{notification_id}/delivered", json={"external_id": "sg-42"}
    )
    assert delivered.json()["status"] == "DELIVERED"
    assert delivered.json()["external_id"] == "sg-42"

    stats = client.get("/notifications/stats").json()
    assert stats["total"] == 1
    assert stats["delivered"] == 1

    inbox = client.get(f"/users/{user_id}/notifications").json()
    assert [item["id"] for item in inbox] == [notification_id]


def test_dispatch_errors_map_to_http_statuses(client: TestClient) -> None:
    user_id = _create_user(client)["id"]

    missing_user = client.post(
        "/notifications/dispatch",
        json={"user_id": 9999, "channel": "EMAIL", "message": "Hola"},
    )
    missing_message = client.post(
        "/notifications/dispatch", json={"user_id": user_id, "channel": "EMAIL"}
    )
    unknown_channel = client.post(
        "/notifications/dispatch",
        json={"user_id": user_id, "channel": "FAX", "message": "Hola"},
    )
    unregistered_channel = client.post(
        "/notifications/dispatch",
        json={"user_id": user_id, "channel": "IN_APP", "message": "Hola"},
    )

    assert missing_user.status_code == 400
    assert missing_message.status_code == 422
    assert unknown_channel.status_code == 422
    assert unregistered_channel.status_code == 500
    assert client.get("/notifications/424242/status").status_code == 404
    assert client.post("/notifications/424242/cancel").status_code == 404


def test_schedule_and_cancel(client: TestClient, email_sender) -> None:
    user_id = _create_user(client)["id"]

    response = client.post(
        "/notifications/schedule",
        json={
            "user_id": user_id,
            "channel": "SMS",
            "message": "Tu cita es mañana",
            "scheduled_at": "2024-05-06T18:00:00+00:00",
        },
    )
    assert response.status_code == 202, response.text
    notification_id = response.json()["notification_id"]
    assert client.get(f"/notifications/{notification_id}/status").json()["status"] == "PENDING"

    cancel = client.post(f"/notifications/{notification_id}/cancel").json()
    assert cancel["success"] is True
    assert cancel["status"] == "CANCELLED"


def test_templates_and_rendering(client: TestClient) -> None:
    user = _create_user(client, locale="es")

    first = client.post(
        "/templates/",
        json={
            "template_id": "order_confirmed",
            "channel": "EMAIL",
            "language": "en",
            "subject": "Order {{orderId}}",
            "body": "Order {{orderId}} confirmed",
        },
    )
    second = client.post(
        "/templates/",
        json={
            "template_id": "order_confirmed",
            "channel": "EMAIL",
            "language": "es",
            "subject": "Pedido {{orderId}}",
            "body": "Pedido {{orderId}} confirmado",
        },
    )
    assert first.status_code == 201, first.text
    assert second.json()["version"] == 1

    listed = client.get("/templates/", params={"template_id": "order_confirmed"}).json()
    assert len(listed) == 2

    response = client.post(
        "/notifications/from-template",
        json={
            "user_id": user["id"],
            "template_id": "order_confirmed",
            "channel": "EMAIL",
            "variables": {"orderId": "123"},
        },
    )
    assert response.status_code == 201, response.text
    notification = client.get(f"/notifications/{response.json()['notification_id']}").json()
    assert notification["status"] == "PENDING"
    assert notification["title"] == "Pedido 123"
    assert notification["subject"] == "Pedido 123"
    assert notification["message"] == "Pedido 123 confirmado"

    disabled = client.patch(f"/templates/{second.json()['id']}/status", json={"is_active": False})
    assert disabled.json()["is_active"] is False

    missing_variable = client.post(
        "/notifications/from-template",
        json={"user_id": user["id"], "template_id": "order_confirmed", "channel": "EMAIL"},
    )
    unknown_template = client.post(
        "/notifications/from-template",
        json={"user_id": user["id"], "template_id": "nope", "channel": "EMAIL", "variables": {}},
    )
    assert missing_variable.status_code == 400
    assert unknown_template.status_code == 404


def test_batch_endpoint_reports_per_user(client: TestClient) -> None:
    user_id = _create_user(client)["id"]

    response = client.post(
        "/notifications/batch",
        json={"user_ids": [user_id, 9999], "channel": "EMAIL", "message": "Mantenimiento"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body[0]["status"] == "SENT"
    assert body[1]["error_code"] == "validation_error"


def test_api_key_is_enforced_when_configured(settings, session_factory, engine, orchestrator) -> None:
    secured = settings.model_copy(update={"api_key": "s3cret"})

    with _build_client(secured, session_factory, engine, orchestrator) as client:
        assert client.get("/users/").status_code == 401
        assert client.get("/users/", headers={"X-API-Key": "wrong"}).status_code == 401
        assert client.get("/users/", headers={"X-API-Key": "s3cret"}).status_code == 200


def test_in_app_notifications_reach_connected_websocket(settings, session_factory, engine, clock) -> None:
    orchestrator = DeliveryOrchestrator(
        session_factory, SenderRegistry([InAppSender()]), settings=settings, clock=clock
    )

    with _build_client(settings, session_factory, engine, orchestrator) as client:
        user_id = _create_user(client)["id"]
        with client.websocket_connect(f"/notifications/ws/{user_id}") as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

            response = client.post(
                "/notifications/dispatch",
                json={"user_id": user_id, "channel": "IN_APP", "title": "Hola", "message": "Bienvenida"},
            )
            assert response.json()["status"] == "DELIVERED"

            message = websocket.receive_json()
            assert message["type"] == "notification"
            assert message["data"]["message"] == "Bienvenida"
