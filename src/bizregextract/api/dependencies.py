"""Process-wide runtime objects shared by the API routes."""

from __future__ import annotations

from functools import lru_cache

from bizregextract.backends.resend_email import ResendEmailSender
from bizregextract.pipeline import ExtractionPipeline, build_pipeline
from bizregextract.settings import get_settings


@lru_cache(maxsize=1)
def get_pipeline() -> ExtractionPipeline:
    """Return the pipeline built from the cached settings."""
    return build_pipeline(get_settings())


@lru_cache(maxsize=1)
def get_email_sender() -> ResendEmailSender:
    """Return the email sender used by the connection check."""
    return ResendEmailSender(get_settings())


def reset_runtime() -> None:
    """Drop cached settings, pipeline and HTTP client.

    Used by tests to start from a clean process state.
    """
    if get_settings.cache_info().currsize:
        try:
            get_settings().close_http_client()
        finally:
            get_settings.cache_clear()
    get_pipeline.cache_clear()
    get_email_sender.cache_clear()
