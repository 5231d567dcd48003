# backend/tests/test_dispatch_router.py

from typing import List, Optional

from fastapi.testclient import TestClient

from pushdispatch.alerts.factory import get_alert_service, reset_alert_service
from pushdispatch.alerts.schemas import AlertSeverity, OperationalAlert
from pushdispatch.dispatch.router import get_dispatch_service_factory
from pushdispatch.dispatch.schemas import DispatchResult
from pushdispatch.main import create_app


class DummyDispatchService:
    """
    /send-notification ルーター用のダミーサービス。

    呼び出し内容を記録しつつ、固定の結果を返す。
    """

    def __init__(self, result: DispatchResult) -> None:
        self.result = result
        self.calls: List[Optional[str]] = []

    def dispatch(self, notification_id: Optional[str]) -> DispatchResult:
        self.calls.append(notification_id)
        return self.result


def _create_client_with_service(service) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_dispatch_service_factory] = lambda: (lambda: service)
    return TestClient(app)


def test_send_notification_success_returns_200() -> None:
    service = DummyDispatchService(
        DispatchResult(success=True, notification_id="n1", provider_id="p1", recipients=2)
    )
    client = _create_client_with_service(service)

    resp = client.post("/send-notification", json={"notificationId": "n1"})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "notificationId": "n1",
        "providerId": "p1",
        "recipients": 2,
    }
    assert service.calls == ["n1"]


def test_send_notification_skip_returns_200_with_message() -> None:
    service = DummyDispatchService(
        DispatchResult(
            success=True,
            notification_id="n1",
            message="Notification status is draft, skipping send",
        )
    )
    client = _create_client_with_service(service)

    resp = client.post("/send-notification", json={"notificationId": "n1"})

    assert resp.status_code == 200
    assert resp.json()["message"] == "Notification status is draft, skipping send"


def test_send_notification_failure_returns_500_envelope() -> None:
    service = DummyDispatchService(
        DispatchResult(
            success=False,
            error="ProviderRejected: 422 - invalid app_id",
            error_kind="ProviderRejected",
        )
    )
    client = _create_client_with_service(service)

    resp = client.post("/send-notification", json={"notificationId": "n1"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "ProviderRejected: 422 - invalid app_id"


def test_missing_notification_id_is_passed_to_service() -> None:
    service = DummyDispatchService(
        DispatchResult(
            success=False,
            error="ValidationError: notificationId is required",
            error_kind="ValidationError",
        )
    )
    client = _create_client_with_service(service)

    resp = client.post("/send-notification", json={})

    assert resp.status_code == 500
    assert service.calls == [None]


def test_snake_case_notification_id_is_accepted() -> None:
    service = DummyDispatchService(DispatchResult(success=True, notification_id="n1"))
    client = _create_client_with_service(service)

    client.post("/send-notification", json={"notification_id": "n1"})

    assert service.calls == ["n1"]


def test_unexpected_error_returns_500_envelope() -> None:
    class CrashService:
        def dispatch(self, notification_id):
            raise RuntimeError("boom")

    client = _create_client_with_service(CrashService())

    resp = client.post("/send-notification", json={"notificationId": "n1"})

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "boom"}


def test_service_construction_error_returns_500_envelope() -> None:
    def broken_factory():
        raise RuntimeError("Required environment variable 'SUPABASE_URL' is not set.")

    app = create_app()
    app.dependency_overrides[get_dispatch_service_factory] = lambda: broken_factory
    client = TestClient(app)

    resp = client.post("/send-notification", json={"notificationId": "n1"})

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert "SUPABASE_URL" in resp.json()["error"]


def test_cors_preflight_is_allowed() -> None:
    client = TestClient(create_app())

    resp = client.options(
        "/send-notification",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"


def test_health_check_reports_alert_counts() -> None:
    reset_alert_service()
    get_alert_service().send(
        OperationalAlert(severity=AlertSeverity.WARNING, kind="EmptyAudience", body="no recipients")
    )
    client = TestClient(create_app())

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "alerts": {"EmptyAudience": 1}}
    reset_alert_service()


def test_malformed_json_body_returns_500_envelope() -> None:
    service = DummyDispatchService(DispatchResult(success=True, notification_id="n1"))
    client = _create_client_with_service(service)

    resp = client.post(
        "/send-notification",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["error"].startswith("ValidationError: ")
    assert body["errorKind"] == "ValidationError"
    assert "detail" not in body
    assert service.calls == []


def test_non_object_json_body_returns_500_envelope() -> None:
    service = DummyDispatchService(DispatchResult(success=True, notification_id="n1"))
    client = _create_client_with_service(service)

    resp = client.post("/send-notification", json=["n1"])

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert resp.json()["error"].startswith("ValidationError: ")
    assert service.calls == []
