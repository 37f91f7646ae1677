"""Structural parsing of model output."""

from __future__ import annotations

import json
import math
import re
from typing import Any

from bizregextract.exceptions import ResponseParseError
from bizregextract.typing.models import ExtractionItem, ParsedExtraction

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_FRAGMENT_LENGTH = 200

_OPTIONAL_STRING_FIELDS = ("company_name", "raw_text")


def _fragment(text: str) -> str:
    """Return a bounded excerpt of `text` for error reports."""
    text = text.strip()
    if len(text) <= _FRAGMENT_LENGTH:
        return text
    return text[:_FRAGMENT_LENGTH] + "..."


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced code block, or the trimmed text.

    Args:
        text (str): Raw model output.

    Returns:
        str: Text without the fence wrapper.
    """
    match = _FENCE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_json_object(text: str) -> dict[str, Any]:
    """Decode the first top-level JSON object in `text`.

    Args:
        text (str): Text containing a JSON object, possibly surrounded by prose.

    Raises:
        ResponseParseError: If no object can be decoded.

    Returns:
        dict[str, Any]: Decoded object.
    """
    start = text.find("{")
    if start < 0:
        raise ResponseParseError(message="No JSON object found in model response", fragment=_fragment(text))
    try:
        payload, _ = json.JSONDecoder(parse_constant=_reject_constant).raw_decode(text, start)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(
            message=f"Failed to parse JSON from model response: {exc.msg}",
            fragment=_fragment(text[start:]),
        ) from exc
    except ValueError as exc:
        raise ResponseParseError(
            message=f"Failed to parse JSON from model response: {exc}",
            fragment=_fragment(text[start:]),
        ) from exc
    return payload


def _parse_item(raw: object, index: int, text: str) -> ExtractionItem:
    """Validate one raw item.

    Args:
        raw (object): Decoded item.
        index (int): Position in the items list.
        text (str): Full response text for error context.

    Raises:
        ResponseParseError: If required fields are missing or not strings.

    Returns:
        ExtractionItem: Parsed item.
    """
    if not isinstance(raw, dict):
        raise ResponseParseError(message=f"Invalid item at index {index}: not an object", fragment=_fragment(text))
    product_code = raw.get("product_code")
    business_reg_no = raw.get("business_reg_no")
    if not isinstance(product_code, str) or not isinstance(business_reg_no, str):
        raise ResponseParseError(
            message=f"Invalid item at index {index}: missing product_code or business_reg_no",
            fragment=_fragment(text),
        )

    optional: dict[str, Any] = {
        key: raw[key] for key in _OPTIONAL_STRING_FIELDS if isinstance(raw.get(key), str)
    }
    row_index = raw.get("row_index")
    if _is_number(row_index) and float(row_index).is_integer():
        optional["row_index"] = int(row_index)

    return ExtractionItem(product_code=product_code, business_reg_no=business_reg_no, **optional)


def parse_extraction_response(text: str) -> ParsedExtraction:
    """Parse and structurally validate a model response.

    Semantic checks (emptiness, confidence threshold) are left to the result
    validator.

    Args:
        text (str): Raw model output.

    Raises:
        ResponseParseError: If the output does not match the expected shape.

    Returns:
        ParsedExtraction: Parsed items, count and confidence.
    """
    payload = extract_json_object(strip_code_fence(text))

    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        raise ResponseParseError(message='Missing or invalid "items" array in response', fragment=_fragment(text))

    confidence = payload.get("confidence")
    if not _is_number(confidence):
        raise ResponseParseError(message='Missing or invalid "confidence" field', fragment=_fragment(text))
    if not 0.0 <= confidence <= 1.0:
        raise ResponseParseError(message='"confidence" must be between 0 and 1', fragment=_fragment(text))

    items = [_parse_item(raw, index, text) for index, raw in enumerate(raw_items)]

    total_found = payload.get("total_found")
    if _is_number(total_found) and not math.isfinite(total_found):
        raise ResponseParseError(message='"total_found" must be a finite number', fragment=_fragment(text))
    total = int(total_found) if _is_number(total_found) else len(items)

    raw_text = payload.get("raw_text")
    return ParsedExtraction(
        items=items,
        total_found=total,
        confidence=float(confidence),
        raw_text=raw_text if isinstance(raw_text, str) else None,
    )
