"""Extraction and notification backends."""

from bizregextract.backends.mock import MockVisionBackend
from bizregextract.backends.openai_vision import ModelSelector, OpenAIChatTransport, OpenAIVisionBackend
from bizregextract.backends.resend_email import ResendEmailSender
from bizregextract.typing.protocol import EmailSender, ExtractorBackend, VisionTransport

__all__ = [
    "EmailSender",
    "ExtractorBackend",
    "MockVisionBackend",
    "ModelSelector",
    "OpenAIChatTransport",
    "OpenAIVisionBackend",
    "ResendEmailSender",
    "VisionTransport",
]
