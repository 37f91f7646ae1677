"""Pydantic response schemas for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from bizregextract.typing.models import EmailDebug, ExtractionItem, ProcessOutcome


class ResponseItem(BaseModel):
    """One extracted row as returned to the caller."""

    product_code: str
    business_reg_no: str
    company_name: str | None = None
    row_index: int | None = None

    @classmethod
    def from_item(cls, item: ExtractionItem) -> ResponseItem:
        """Drop internal fields from an extraction item."""
        return cls(
            product_code=item.product_code,
            business_reg_no=item.business_reg_no,
            company_name=item.company_name,
            row_index=item.row_index,
        )


class ProcessResponse(BaseModel):
    """Body of a successful `POST /process`."""

    ok: bool = True
    product_code: str
    items: list[ResponseItem]
    total_found: int
    confidence: float
    emailed: bool
    email_debug: EmailDebug
    provider: str
    request_id: str
    client_request_id: str | None = None
    x_request_id: str | None = None
    model: str | None = None
    export_filename: str

    @classmethod
    def from_outcome(cls, outcome: ProcessOutcome, request_id: str) -> ProcessResponse:
        """Build the response body from a pipeline outcome."""
        result = outcome.result
        return cls(
            product_code=",".join(outcome.product_codes),
            items=[ResponseItem.from_item(item) for item in result.items],
            total_found=result.total_found,
            confidence=result.confidence,
            emailed=outcome.emailed,
            email_debug=outcome.email,
            provider=result.provider.to_str(),
            request_id=request_id,
            client_request_id=result.client_request_id,
            x_request_id=result.x_request_id,
            model=result.model,
            export_filename=outcome.export.filename,
        )


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    ok: bool = False
    error_code: str
    message: str
    request_id: str
    provider: str | None = None
    client_request_id: str | None = None
    x_request_id: str | None = None


class ModelConnectionResponse(BaseModel):
    """Body of a successful `GET /test-model-connection`."""

    ok: bool = True
    message: str
    provider: str
    configured_model: str
    model_count: int
    request_id: str


class EmailConnectionResponse(BaseModel):
    """Body of a successful `GET /test-email-connection`."""

    ok: bool = True
    message: str
    config: dict[str, str]
    domains: list[dict[str, Any]]
    email_test: dict[str, Any] | None = None
    request_id: str
