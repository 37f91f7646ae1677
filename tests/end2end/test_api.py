from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from bizregextract.api.app import create_app
from bizregextract.api.dependencies import get_email_sender, get_pipeline
from bizregextract.backends.mock import MockVisionBackend
from bizregextract.backends.resend_email import ResendEmailSender
from bizregextract.pipeline import ExtractionPipeline
from bizregextract.settings import Settings
from bizregextract.typing.enums import Provider
from bizregextract.typing.models import EmailOutcome, ExtractionItem, ExtractionResult

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class _FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[str] = []

    def send_result(self, product_code, items, artifact) -> EmailOutcome:
        _ = (items, artifact)
        self.sent.append(product_code)
        return EmailOutcome(success=True, message_id="msg_api")


class _LowConfidenceBackend:
    def extract(self, codes, image) -> ExtractionResult:
        _ = image
        return ExtractionResult(
            items=[ExtractionItem(product_code=codes[0], business_reg_no="1234567890")],
            total_found=1,
            confidence=0.3,
            provider=Provider.OPENAI,
            request_id="cid-low",
            client_request_id="cid-low",
            x_request_id="req_provider_low",
        )

    def check_connection(self) -> dict:
        return {}


class _BrokenBackend:
    def extract(self, codes, image) -> ExtractionResult:
        raise RuntimeError("unexpected")

    def check_connection(self) -> dict:
        raise RuntimeError("unexpected")


@pytest.fixture
def mock_env(monkeypatch) -> None:
    monkeypatch.setenv("MOCK_LLM", "true")
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")


@pytest.fixture
def notifier() -> _FakeNotifier:
    return _FakeNotifier()


@pytest.fixture
def client(mock_env, mock_settings: Settings, notifier: _FakeNotifier) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: ExtractionPipeline(mock_settings, MockVisionBackend(), notifier)
    return TestClient(app)


def _post(client: TestClient, code: str = "12345", data: bytes = PNG_BYTES, content_type: str = "image/png"):
    return client.post(
        "/process",
        data={"productCode": code},
        files={"image": ("table.png", data, content_type)},
    )


def test_process_mock_mode(client: TestClient, notifier: _FakeNotifier) -> None:
    response = _post(client, code="03275")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["product_code"] == "03275"
    assert body["provider"] == "mock"
    assert body["confidence"] == 0.95
    assert body["total_found"] == 2
    assert [item["business_reg_no"] for item in body["items"]] == ["123-45-67890", "987-65-43210"]
    assert "raw_text" not in body["items"][0]
    assert body["emailed"] is True
    assert body["email_debug"]["message_id"] == "msg_api"
    assert body["export_filename"].startswith("product_result_")
    assert body["request_id"] == response.headers["X-Request-Id"]
    assert notifier.sent == ["03275"]


def test_process_rejects_four_digit_code(client: TestClient, notifier: _FakeNotifier) -> None:
    response = _post(client, code="1234")

    assert response.status_code == 400
    body = response.json()
    assert body["ok"] is False
    assert body["error_code"] == "invalid_product_code"
    assert body["request_id"] == response.headers["X-Request-Id"]
    assert notifier.sent == []


def test_process_rejects_separator_only_codes(client: TestClient) -> None:
    response = _post(client, code=" - , _ ")

    assert response.status_code == 400
    assert response.json()["error_code"] == "no_valid_product_code"


def test_process_rejects_large_file(client: TestClient) -> None:
    response = _post(client, data=b"\x00" * 5_000_000)

    assert response.status_code == 413
    assert response.json()["error_code"] == "payload_too_large"


def test_process_rejects_unsupported_file_type(client: TestClient) -> None:
    response = _post(client, data=b"%PDF-1.7", content_type="application/pdf")

    assert response.status_code == 400
    assert response.json()["error_code"] == "invalid_file_type"


def test_process_requires_multipart(client: TestClient) -> None:
    response = client.post("/process", json={"productCode": "12345"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "invalid_content_type"


def test_process_requires_product_code(client: TestClient) -> None:
    response = client.post("/process", files={"image": ("table.png", PNG_BYTES, "image/png")})

    assert response.status_code == 400
    assert response.json()["error_code"] == "missing_product_code"


def test_process_requires_image(client: TestClient) -> None:
    response = client.post(
        "/process",
        data={"productCode": "12345"},
        files={"attachment": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "missing_file"


def test_process_reports_low_confidence_with_trace(mock_env, mock_settings: Settings) -> None:
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: ExtractionPipeline(mock_settings, _LowConfidenceBackend(), None)

    response = _post(TestClient(app))

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "low_confidence"
    assert body["provider"] == "openai"
    assert body["client_request_id"] == "cid-low"
    assert body["x_request_id"] == "req_provider_low"


def test_process_hides_unexpected_errors(mock_env, mock_settings: Settings) -> None:
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: ExtractionPipeline(mock_settings, _BrokenBackend(), None)

    response = _post(TestClient(app))

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "internal_error"
    assert "unexpected" not in body["message"]


def test_process_reports_configuration_error() -> None:
    response = _post(TestClient(create_app()))

    assert response.status_code == 500
    assert response.json()["error_code"] == "configuration_error"


def test_model_connection_in_mock_mode(mock_env) -> None:
    response = TestClient(create_app()).get("/test-model-connection")

    assert response.status_code == 200
    body = response.json()
    assert body["provider"] == "mock"
    assert body["configured_model"] == "mock"


def test_email_connection(mock_env, mock_settings: Settings) -> None:
    def _resend(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/domains":
            return httpx.Response(200, json={"data": [{"name": "example.com", "status": "verified"}]})
        return httpx.Response(200, json={"id": "msg_test"})

    sender = ResendEmailSender(mock_settings, client=httpx.Client(transport=httpx.MockTransport(_resend)))
    app = create_app()
    app.dependency_overrides[get_email_sender] = lambda: sender

    response = TestClient(app).get("/test-email-connection", params={"send": "true"})

    assert response.status_code == 200
    body = response.json()
    assert body["domains"] == [{"name": "example.com", "status": "verified"}]
    assert body["email_test"]["message_id"] == "msg_test"
    assert body["config"]["recipient_email"] == "results@example.com"


def test_email_connection_rejects_invalid_key(mock_env, mock_settings: Settings) -> None:
    def _resend(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"name": "validation_error", "message": "API key is invalid"})

    sender = ResendEmailSender(mock_settings, client=httpx.Client(transport=httpx.MockTransport(_resend)))
    app = create_app()
    app.dependency_overrides[get_email_sender] = lambda: sender

    response = TestClient(app).get("/test-email-connection")

    assert response.status_code == 401
    assert response.json()["error_code"] == "api_key_invalid"


def test_health() -> None:
    assert TestClient(create_app()).get("/health").json() == {"status": "healthy"}


def test_startup_applies_log_settings(mock_env, monkeypatch, capsys) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LOG_JSON", "true")

    with TestClient(create_app()) as client:
        response = client.post("/process", json={"productCode": "12345"})

    assert response.status_code == 400
    err = capsys.readouterr().err
    assert "Request started" not in err
    assert "Request rejected" in err


def test_startup_survives_missing_configuration() -> None:
    with TestClient(create_app()) as client:
        response = _post(client)

    assert response.status_code == 500
    assert response.json()["error_code"] == "configuration_error"


def test_process_checks_codes_before_the_image(client: TestClient) -> None:
    response = client.post(
        "/process",
        data={"productCode": "1234"},
        files={"attachment": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "invalid_product_code"
