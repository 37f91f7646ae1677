"""Upload, extraction item and extraction result models."""

import base64

from pydantic import BaseModel, ConfigDict, Field

from bizregextract.typing.enums import Provider


class ImageUpload(BaseModel):
    """Validated image payload sent to the vision model."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str
    content_type: str
    data: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        """Return payload size in bytes."""
        return len(self.data)

    @property
    def data_base64(self) -> str:
        """Return the payload as base64 text."""
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_url(self) -> str:
        """Return the payload as an inline `data:` URL."""
        return f"data:{self.content_type};base64,{self.data_base64}"


class ExtractionItem(BaseModel):
    """One matched row of the source image."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    product_code: str
    business_reg_no: str
    company_name: str | None = None
    row_index: int | None = None
    raw_text: str | None = None


class ParsedExtraction(BaseModel):
    """Structurally valid model output, before provider metadata is attached."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    items: list[ExtractionItem]
    total_found: int
    confidence: float
    raw_text: str | None = None


class CallMetadata(BaseModel):
    """Tracing data of one successful model call."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    client_request_id: str
    x_request_id: str | None = None
    model: str
    attempts: int = 1


class ExtractionResult(BaseModel):
    """Extraction result for one request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    items: list[ExtractionItem]
    total_found: int
    confidence: float
    provider: Provider
    request_id: str
    client_request_id: str | None = None
    x_request_id: str | None = None
    model: str | None = None
