"""Typing-centric domain modules."""

from bizregextract.typing.enums import CallState, ErrorCode, FailureKind, Provider
from bizregextract.typing.models import (
    CallMetadata,
    EmailDebug,
    EmailOutcome,
    ExportArtifact,
    ExportRow,
    ExtractionItem,
    ExtractionResult,
    ImageUpload,
    ParsedExtraction,
    ProcessOutcome,
)
from bizregextract.typing.protocol import EmailSender, ExtractorBackend, VisionTransport

__all__ = [
    "CallMetadata",
    "CallState",
    "EmailDebug",
    "EmailOutcome",
    "EmailSender",
    "ErrorCode",
    "ExportArtifact",
    "ExportRow",
    "ExtractionItem",
    "ExtractionResult",
    "ExtractorBackend",
    "FailureKind",
    "ImageUpload",
    "ParsedExtraction",
    "ProcessOutcome",
    "Provider",
    "VisionTransport",
]
