"""Semantic validation of extraction results."""

from __future__ import annotations

import re

from bizregextract.exceptions import ResultValidationError
from bizregextract.typing.enums import ErrorCode
from bizregextract.typing.models import ExtractionResult

_NON_DIGIT = re.compile(r"\D")
_REG_NO_DIGITS = 10


def digits_only(value: str) -> str:
    """Return the digits of `value`."""
    return _NON_DIGIT.sub("", value)


def normalize_business_reg_no(value: str) -> str:
    """Format a registration number as `ddd-dd-ddddd` when it has 10 digits.

    Values with any other digit count are returned unmodified.

    Args:
        value (str): Registration number as extracted.

    Returns:
        str: Canonical or original value.
    """
    digits = digits_only(value)
    if len(digits) != _REG_NO_DIGITS:
        return value
    return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"


def validate_extraction_result(result: ExtractionResult, min_confidence: float) -> ExtractionResult:
    """Reject empty or low-confidence results and normalize registration numbers.

    Emptiness is checked before confidence.

    Args:
        result (ExtractionResult): Result returned by the backend.
        min_confidence (float): Lowest accepted confidence.

    Raises:
        ResultValidationError: With `extraction_failed` or `low_confidence`.

    Returns:
        ExtractionResult: Copy of the result with normalized items.
    """
    trace = {
        "provider": result.provider.to_str(),
        "request_id": result.request_id,
        "client_request_id": result.client_request_id,
        "x_request_id": result.x_request_id,
    }

    if not result.items:
        raise ResultValidationError(
            error_code=ErrorCode.EXTRACTION_FAILED,
            message="No business registration number mapped to the product code was found in the image.",
            **trace,
        )

    if result.confidence < min_confidence:
        raise ResultValidationError(
            error_code=ErrorCode.LOW_CONFIDENCE,
            message=(
                "Recognition confidence is too low "
                f"({result.confidence * 100:.1f}% < {min_confidence * 100:.1f}%). "
                "Retake the photo with better lighting and focus."
            ),
            **trace,
        )

    items = [
        item.model_copy(update={"business_reg_no": normalize_business_reg_no(item.business_reg_no)})
        for item in result.items
    ]
    return result.model_copy(update={"items": items})
