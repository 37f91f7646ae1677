"""Core domain model exports."""

from bizregextract.typing.models.export import ExportArtifact, ExportRow
from bizregextract.typing.models.extraction import (
    CallMetadata,
    ExtractionItem,
    ExtractionResult,
    ImageUpload,
    ParsedExtraction,
)
from bizregextract.typing.models.notification import EmailDebug, EmailOutcome, ProcessOutcome

__all__ = [
    "CallMetadata",
    "EmailDebug",
    "EmailOutcome",
    "ExportArtifact",
    "ExportRow",
    "ExtractionItem",
    "ExtractionResult",
    "ImageUpload",
    "ParsedExtraction",
    "ProcessOutcome",
]
