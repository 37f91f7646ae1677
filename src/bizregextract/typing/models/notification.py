"""Email notification and request outcome models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bizregextract.typing.models.export import ExportArtifact
from bizregextract.typing.models.extraction import ExtractionResult


class EmailOutcome(BaseModel):
    """Result of one email-send call."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailDebug(BaseModel):
    """Email delivery details reported alongside a processed request."""

    model_config = ConfigDict(extra="forbid")

    attempted: bool = True
    success: bool = False
    message_id: str | None = None
    error: str | None = None
    error_details: dict[str, Any] | None = None
    sender_email: str | None = None
    recipient_email: str | None = None


class ProcessOutcome(BaseModel):
    """Everything a successful processing run produced."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    product_codes: list[str]
    result: ExtractionResult
    export: ExportArtifact
    email: EmailDebug = Field(default_factory=EmailDebug)

    @property
    def emailed(self) -> bool:
        """Return whether the export reached the recipient."""
        return self.email.success
