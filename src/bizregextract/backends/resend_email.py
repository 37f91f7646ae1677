"""Result notification through the Resend email API."""

from __future__ import annotations

import html
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from bizregextract import logger
from bizregextract.exceptions import BackendError, RequestError
from bizregextract.typing.enums import ErrorCode
from bizregextract.typing.models import EmailOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bizregextract.settings import Settings
    from bizregextract.typing.models import ExportArtifact, ExtractionItem


def _provider_error(response: httpx.Response) -> str:
    """Return the error message of a failed Resend response."""
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(payload, dict):
        name = payload.get("name")
        message = payload.get("message") or payload.get("error")
        if message:
            return f"{name}: {message}" if name else str(message)
    return f"HTTP {response.status_code}"


def _message_id(response: httpx.Response) -> str | None:
    """Return the id of an accepted email, None when the body carries none."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("id"), str):
        return payload["id"]
    return None


def render_result_html(product_code: str, items: Sequence[ExtractionItem]) -> str:
    """Render the HTML body listing extracted rows.

    Args:
        product_code (str): Comma-joined target codes.
        items (Sequence[ExtractionItem]): Validated items.

    Returns:
        str: HTML document fragment.
    """
    rows = "\n".join(
        "<tr>"
        f"<td>{index}</td>"
        f"<td>{html.escape(item.product_code)}</td>"
        f"<td>{html.escape(item.company_name or '')}</td>"
        f"<td>{html.escape(item.business_reg_no)}</td>"
        "</tr>"
        for index, item in enumerate(items, start=1)
    )
    return (
        '<div style="font-family: sans-serif;">'
        f"<h2>Extraction result for product code {html.escape(product_code)}</h2>"
        f"<p>{len(items)} row(s) found. The CSV export is attached.</p>"
        '<table border="1" cellpadding="4" cellspacing="0">'
        "<tr><th>No</th><th>Product Code</th><th>Company Name</th><th>Business Registration No</th></tr>"
        f"{rows}"
        "</table></div>"
    )


class ResendEmailSender:
    """Send result emails with the CSV export attached."""

    def __init__(self, settings: Settings, *, client: httpx.Client | None = None) -> None:
        """Initialize sender.

        Args:
            settings (Settings): Runtime settings.
            client (httpx.Client | None): HTTP client override.
        """
        self._settings = settings
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """Return the HTTP client used for Resend calls."""
        return self._client or self._settings.http_client

    def _url(self, path: str) -> str:
        return f"{self._settings.resend_base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._settings.resend_api_key}"}

    def _send(self, payload: dict[str, Any]) -> EmailOutcome:
        """Post one email.

        Args:
            payload (dict[str, Any]): Resend email payload.

        Returns:
            EmailOutcome: Delivery outcome, never raises on provider errors.
        """
        try:
            response = self.client.post(self._url("emails"), json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("Email request failed", extra={"error": str(exc)})
            return EmailOutcome(success=False, error=f"Email request failed: {exc}")

        if response.is_error:
            error = _provider_error(response)
            logger.warning("Email rejected by provider", extra={"status_code": response.status_code, "error": error})
            return EmailOutcome(success=False, error=error)

        message_id = _message_id(response)
        logger.info("Email sent", extra={"message_id": message_id})
        return EmailOutcome(success=True, message_id=message_id)

    def send_result(
        self,
        product_code: str,
        items: Sequence[ExtractionItem],
        artifact: ExportArtifact,
    ) -> EmailOutcome:
        """Send the export to the configured recipient.

        Args:
            product_code (str): Comma-joined target codes.
            items (Sequence[ExtractionItem]): Validated items.
            artifact (ExportArtifact): Rendered export.

        Returns:
            EmailOutcome: Delivery outcome.
        """
        payload = {
            "from": self._settings.sender_email,
            "to": [self._settings.recipient_email],
            "subject": f"[Extraction] Product code {product_code}: {len(items)} row(s)",
            "html": render_result_html(product_code, items),
            "attachments": [{"filename": artifact.filename, "content": artifact.content_base64}],
        }
        return self._send(payload)

    def send_test(self, request_id: str) -> EmailOutcome:
        """Send a literal test message."""
        now = datetime.now(UTC).isoformat()
        payload = {
            "from": self._settings.sender_email,
            "to": [self._settings.recipient_email],
            "subject": f"[Test] Resend API connection test - {now}",
            "html": (
                '<div style="font-family: sans-serif;">'
                "<h2>Resend API connection test succeeded</h2>"
                f"<p><strong>Request ID:</strong> {html.escape(request_id)}</p>"
                f"<p><strong>Sent at:</strong> {now}</p>"
                "</div>"
            ),
        }
        return self._send(payload)

    def list_domains(self) -> list[dict[str, Any]]:
        """Return configured sending domains, validating the API key.

        Raises:
            BackendError: If the API is unreachable.
            RequestError: If the provider rejects the key.

        Returns:
            list[dict[str, Any]]: Domain names and statuses.
        """
        try:
            response = self.client.get(self._url("domains"), headers=self._headers())
        except httpx.HTTPError as exc:
            raise BackendError(message=f"Resend API request failed: {exc}") from exc
        if response.is_error:
            raise RequestError(
                error_code=ErrorCode.API_KEY_INVALID,
                message=f"API key validation failed: {_provider_error(response)}",
                status_code=401,
            )
        domains = response.json().get("data") or []
        return [{"name": domain.get("name"), "status": domain.get("status")} for domain in domains]

    def check_connection(self, request_id: str, *, send_test: bool = False) -> dict[str, Any]:
        """Validate the key and optionally send a test message.

        Args:
            request_id (str): Id reported in the test message.
            send_test (bool): Whether to send a test email.

        Returns:
            dict[str, Any]: Connection report.
        """
        domains = self.list_domains()
        email_test: dict[str, Any] | None = None
        if send_test:
            outcome = self.send_test(request_id)
            email_test = outcome.model_dump(exclude_none=True)
        return {
            "config": {
                "sender_email": self._settings.sender_email,
                "recipient_email": self._settings.recipient_email,
                "api_key_prefix": f"{self._settings.resend_api_key[:8]}...",
            },
            "domains": domains,
            "email_test": email_test,
        }
