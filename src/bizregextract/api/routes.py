"""HTTP routes: processing and provider connection checks."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from bizregextract import logger
from bizregextract.api.dependencies import get_email_sender, get_pipeline
from bizregextract.api.models import (
    EmailConnectionResponse,
    ErrorResponse,
    ModelConnectionResponse,
    ProcessResponse,
)
from bizregextract.backends.resend_email import ResendEmailSender
from bizregextract.exceptions import BackendError, InputError
from bizregextract.pipeline import ExtractionPipeline
from bizregextract.typing.enums import ErrorCode

router = APIRouter()

PipelineDep = Annotated[ExtractionPipeline, Depends(get_pipeline)]
EmailSenderDep = Annotated[ResendEmailSender, Depends(get_email_sender)]


@router.post("/process", response_model=ProcessResponse)
async def process(request: Request, pipeline: PipelineDep) -> ProcessResponse:
    """Extract registration numbers for the submitted codes and email the export."""
    request_id: str = request.state.request_id

    if "multipart/form-data" not in request.headers.get("content-type", ""):
        raise InputError(
            error_code=ErrorCode.INVALID_CONTENT_TYPE,
            message="Content-Type must be multipart/form-data",
        )

    try:
        form = await request.form()
    except Exception as exc:
        raise InputError(error_code=ErrorCode.INVALID_FORM_DATA, message="Failed to parse form data") from exc

    raw_codes = form.get("productCode")
    if not isinstance(raw_codes, str) or not raw_codes.strip():
        raise InputError(error_code=ErrorCode.MISSING_PRODUCT_CODE, message="Please enter a target product code.")

    upload = form.get("image")
    if isinstance(upload, UploadFile):
        codes, image = pipeline.validate_input(
            raw_codes,
            filename=upload.filename,
            content_type=upload.content_type,
            data=await upload.read(),
        )
    else:
        codes, image = pipeline.validate_input(raw_codes, filename=None, content_type=None, data=None)

    outcome = await run_in_threadpool(pipeline.run, codes, image)
    logger.info("Process completed", extra={"total_found": outcome.result.total_found, "emailed": outcome.emailed})
    return ProcessResponse.from_outcome(outcome, request_id)


@router.get("/test-model-connection", response_model=ModelConnectionResponse)
def test_model_connection(request: Request, pipeline: PipelineDep) -> ModelConnectionResponse | JSONResponse:
    """Check that the model provider is reachable and report the selected model."""
    request_id: str = request.state.request_id
    try:
        report = pipeline.backend.check_connection()
    except BackendError as exc:
        logger.warning("Model connection failed", extra={"error": str(exc)})
        body = ErrorResponse(error_code=ErrorCode.CONNECTION_FAILED, message=str(exc), request_id=request_id)
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    return ModelConnectionResponse(
        message="Model provider connection succeeded",
        provider=report["provider"],
        configured_model=report["model"],
        model_count=report["model_count"],
        request_id=request_id,
    )


@router.get("/test-email-connection", response_model=EmailConnectionResponse)
def test_email_connection(
    request: Request,
    sender: EmailSenderDep,
    send: bool = False,
) -> EmailConnectionResponse | JSONResponse:
    """Validate the email provider key and optionally send a test message."""
    request_id: str = request.state.request_id
    try:
        report = sender.check_connection(request_id, send_test=send)
    except BackendError as exc:
        logger.warning("Email connection failed", extra={"error": str(exc)})
        body = ErrorResponse(error_code=ErrorCode.CONNECTION_FAILED, message=str(exc), request_id=request_id)
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    return EmailConnectionResponse(message="Email provider connection succeeded", request_id=request_id, **report)
