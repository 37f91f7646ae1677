"""Offline backend returning a fixed synthetic extraction."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from bizregextract import logger
from bizregextract.typing.enums import Provider
from bizregextract.typing.models import ExtractionItem, ExtractionResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bizregextract.typing.models import ImageUpload

MOCK_ROWS: tuple[tuple[str, str], ...] = (
    ("123-45-67890", "Test Company A"),
    ("987-65-43210", "Test Company B"),
)
MOCK_CONFIDENCE = 0.95


class MockVisionBackend:
    """Backend used when `MOCK_LLM` is enabled. Never touches the network."""

    def extract(self, codes: Sequence[str], image: ImageUpload) -> ExtractionResult:  # noqa: ARG002
        """Return two rows for the first target code."""
        code = codes[0] if codes else ""
        items = [
            ExtractionItem(
                product_code=code,
                business_reg_no=reg_no,
                company_name=company,
                row_index=index,
                raw_text=f"[MOCK] row {index}: product code {code}, registration no {reg_no}, company {company}",
            )
            for index, (reg_no, company) in enumerate(MOCK_ROWS, start=1)
        ]
        logger.info("Using mock extraction", extra={"product_code": code})
        return ExtractionResult(
            items=items,
            total_found=len(items),
            confidence=MOCK_CONFIDENCE,
            provider=Provider.MOCK,
            request_id=str(uuid.uuid4()),
        )

    def check_connection(self) -> dict[str, Any]:
        """Report mock mode."""
        return {"provider": Provider.MOCK.to_str(), "model": "mock", "model_count": 0}
