"""Form input normalization and validation."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bizregextract.exceptions import InputError
from bizregextract.typing.enums import ErrorCode
from bizregextract.typing.models import ImageUpload

if TYPE_CHECKING:
    from collections.abc import Iterable

MAX_PAYLOAD_SIZE = 4_500_000
ALLOWED_IMAGE_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/webp", "image/gif")

_WHITESPACE = re.compile(r"\s+")
_SEPARATORS = re.compile(r"[-_]")


def normalize_product_code(code: str) -> str:
    """Remove whitespace, hyphens and underscores from a product code.

    Args:
        code (str): Raw code as typed by the caller.

    Returns:
        str: Normalized code.
    """
    return _SEPARATORS.sub("", _WHITESPACE.sub("", code.strip()))


def parse_product_codes(raw: str, pattern: re.Pattern[str]) -> list[str]:
    """Split, normalize and validate a comma-separated list of product codes.

    Entries that are empty after normalization are dropped. The whole list is
    rejected when any remaining code does not match `pattern`.

    Args:
        raw (str): Comma-separated codes.
        pattern (re.Pattern[str]): Pattern every code must match.

    Raises:
        InputError: If no code is left or any code is malformed.

    Returns:
        list[str]: Normalized codes in input order.
    """
    codes = [code for code in (normalize_product_code(part) for part in raw.split(",")) if code]
    if not codes:
        raise InputError(
            error_code=ErrorCode.NO_VALID_PRODUCT_CODE,
            message="No valid product code was provided.",
        )

    invalid = [code for code in codes if not pattern.search(code)]
    if invalid:
        raise InputError(
            error_code=ErrorCode.INVALID_PRODUCT_CODE,
            message=f"Invalid product code format (expected {pattern.pattern}): {', '.join(invalid)}",
        )
    return codes


def validate_image_upload(
    *,
    filename: str | None,
    content_type: str | None,
    data: bytes | None,
    allowed_types: Iterable[str] = ALLOWED_IMAGE_TYPES,
    max_size: int = MAX_PAYLOAD_SIZE,
) -> ImageUpload:
    """Validate an uploaded image.

    The size check runs before the type check, so an oversized upload is
    reported as too large whatever its content.

    Args:
        filename (str | None): Client-side file name.
        content_type (str | None): Declared media type.
        data (bytes | None): File content.
        allowed_types (Iterable[str]): Accepted media types.
        max_size (int): Payload ceiling in bytes.

    Raises:
        InputError: If the file is missing, too large or of the wrong type.

    Returns:
        ImageUpload: Validated upload.
    """
    if not data:
        raise InputError(
            error_code=ErrorCode.MISSING_FILE,
            message='No image file provided. Field name must be "image".',
        )

    if len(data) > max_size:
        raise InputError(
            error_code=ErrorCode.PAYLOAD_TOO_LARGE,
            message=(
                f"File size ({len(data) / 1024 / 1024:.2f}MB) exceeds limit "
                f"({max_size / 1_000_000:.1f}MB). Please compress the image before uploading."
            ),
            status_code=413,
        )

    allowed = tuple(allowed_types)
    media_type = (content_type or "").split(";")[0].strip().lower()
    if media_type not in allowed:
        raise InputError(
            error_code=ErrorCode.INVALID_FILE_TYPE,
            message=f"Invalid file type: {content_type or 'unknown'}. Allowed types: {', '.join(allowed)}",
        )

    return ImageUpload(filename=filename or "upload", content_type=media_type, data=data)
