"""Tabular export models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ExportRow(BaseModel):
    """One line of the CSV export."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    sequence: int = Field(ge=1)
    product_code: str
    company_name: str
    business_reg_no: str
    business_reg_no_digits: str
    processed_at: datetime


class ExportArtifact(BaseModel):
    """Rendered export ready to be attached to an email."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str
    content: str = Field(repr=False)
    content_base64: str = Field(repr=False)
    row_count: int
