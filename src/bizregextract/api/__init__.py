"""HTTP API."""

from bizregextract.api.app import app, create_app
from bizregextract.api.dependencies import get_email_sender, get_pipeline, reset_runtime

__all__ = ["app", "create_app", "get_email_sender", "get_pipeline", "reset_runtime"]
