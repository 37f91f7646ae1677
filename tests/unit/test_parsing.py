from __future__ import annotations

import json

import pytest

from bizregextract.exceptions import ResponseParseError
from bizregextract.parsing import extract_json_object, parse_extraction_response, strip_code_fence
from bizregextract.typing.enums import ErrorCode

PAYLOAD = {
    "items": [
        {
            "product_code": "12345",
            "business_reg_no": "123-45-67890",
            "company_name": "Acme",
            "row_index": 3,
            "raw_text": "12345 | Acme | 123-45-67890",
        },
    ],
    "total_found": 1,
    "confidence": 0.87,
}


def test_strip_code_fence_returns_body() -> None:
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_extract_json_object_ignores_surrounding_prose() -> None:
    assert extract_json_object('Here you go: {"a": {"b": 2}} hope it helps') == {"a": {"b": 2}}


def test_extract_json_object_without_object() -> None:
    with pytest.raises(ResponseParseError, match="No JSON object"):
        extract_json_object("I could not read the image.")


def test_fenced_and_plain_responses_parse_identically() -> None:
    plain = json.dumps(PAYLOAD)
    fenced = f"```json\n{plain}\n```"

    assert parse_extraction_response(fenced) == parse_extraction_response(plain)


def test_parse_extraction_response_keeps_fields() -> None:
    parsed = parse_extraction_response(json.dumps(PAYLOAD))

    assert parsed.total_found == 1
    assert parsed.confidence == pytest.approx(0.87)
    item = parsed.items[0]
    assert item.product_code == "12345"
    assert item.business_reg_no == "123-45-67890"
    assert item.company_name == "Acme"
    assert item.row_index == 3


def test_total_found_defaults_to_item_count() -> None:
    payload = {"items": PAYLOAD["items"] * 2, "confidence": 1}

    parsed = parse_extraction_response(json.dumps(payload))

    assert parsed.total_found == 2
    assert parsed.confidence == 1.0


def test_empty_items_are_structurally_valid() -> None:
    parsed = parse_extraction_response('{"items": [], "total_found": 0, "confidence": 0.4}')

    assert parsed.items == []
    assert parsed.total_found == 0


def test_mistyped_optional_fields_are_dropped() -> None:
    payload = {
        "items": [{"product_code": "1", "business_reg_no": "2", "company_name": 7, "row_index": "3"}],
        "confidence": 0.9,
    }

    item = parse_extraction_response(json.dumps(payload)).items[0]

    assert item.company_name is None
    assert item.row_index is None


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('{"total_found": 0, "confidence": 0.9}', '"items"'),
        ('{"items": {}, "confidence": 0.9}', '"items"'),
        ('{"items": []}', '"confidence"'),
        ('{"items": [], "confidence": "high"}', '"confidence"'),
        ('{"items": [], "confidence": true}', '"confidence"'),
        ('{"items": [{"business_reg_no": "1"}], "confidence": 0.9}', "index 0"),
        ('{"items": [{"product_code": "1", "business_reg_no": 2}], "confidence": 0.9}', "index 0"),
        ('{"items": ["row"], "confidence": 0.9}', "not an object"),
        ('{"items": [', "Failed to parse JSON"),
    ],
)
def test_malformed_responses_are_rejected(text: str, message: str) -> None:
    with pytest.raises(ResponseParseError, match=message) as exc_info:
        parse_extraction_response(text)

    assert exc_info.value.error_code == ErrorCode.EXTRACTION_ERROR
    assert exc_info.value.status_code == 422


def test_parse_error_fragment_is_bounded() -> None:
    text = '{"confidence": 0.9, "padding": "' + "x" * 500 + '"}'

    with pytest.raises(ResponseParseError) as exc_info:
        parse_extraction_response(text)

    assert exc_info.value.fragment.endswith("...")
    assert len(exc_info.value.fragment) == 203
    assert "response:" in str(exc_info.value)


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('{"items": [], "total_found": 0, "confidence": NaN}', "NaN"),
        ('{"items": [], "total_found": Infinity, "confidence": 0.9}', "Infinity"),
        ('{"items": [], "total_found": -Infinity, "confidence": 0.9}', "Infinity"),
        ('{"items": [], "total_found": 1e999, "confidence": 0.9}', '"total_found"'),
        ('{"items": [], "total_found": 0, "confidence": 1e999}', '"confidence"'),
        ('{"items": [], "total_found": 0, "confidence": 95}', '"confidence"'),
        ('{"items": [], "total_found": 0, "confidence": -0.1}', '"confidence"'),
    ],
)
def test_non_finite_and_out_of_range_numbers_are_rejected(text: str, message: str) -> None:
    with pytest.raises(ResponseParseError, match=message) as exc_info:
        parse_extraction_response(text)

    assert exc_info.value.error_code == ErrorCode.EXTRACTION_ERROR
    assert exc_info.value.status_code == 422


def test_confidence_bounds_are_inclusive() -> None:
    assert parse_extraction_response('{"items": [], "confidence": 0}').confidence == 0.0
    assert parse_extraction_response('{"items": [], "confidence": 1}').confidence == 1.0
