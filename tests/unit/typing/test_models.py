from __future__ import annotations

import pytest
from pydantic import ValidationError

from bizregextract.typing.models import EmailDebug, ExportRow, ExtractionItem, ImageUpload


def test_image_upload_data_url() -> None:
    upload = ImageUpload(filename="a.png", content_type="image/png", data=b"abc")

    assert upload.size == 3
    assert upload.data_url == "data:image/png;base64,YWJj"


def test_image_upload_repr_hides_payload() -> None:
    upload = ImageUpload(filename="a.png", content_type="image/png", data=b"secret-bytes")

    assert "secret-bytes" not in repr(upload)


def test_extraction_item_is_immutable() -> None:
    item = ExtractionItem(product_code="12345", business_reg_no="123-45-67890")

    with pytest.raises(ValidationError):
        item.business_reg_no = "x"  # type: ignore[misc]


def test_export_row_sequence_starts_at_one() -> None:
    with pytest.raises(ValidationError):
        ExportRow(
            sequence=0,
            product_code="1",
            company_name="",
            business_reg_no="1",
            business_reg_no_digits="1",
            processed_at="2026-01-01T00:00:00Z",
        )


def test_email_debug_defaults() -> None:
    debug = EmailDebug()

    assert debug.attempted is True
    assert debug.success is False
    assert debug.message_id is None
