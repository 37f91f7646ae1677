"""Prompt builders for the vision model."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

_CODE_LABELS = '"product number", "product code", "affiliate code", "Product Code", "Code", "NO", "P/N"'


def _target_condition(codes: Sequence[str]) -> str:
    """Describe the codes a row must match.

    Args:
        codes (Sequence[str]): Normalized target codes.

    Returns:
        str: Condition phrase used throughout the prompt.
    """
    if len(codes) == 1:
        return f'the product code "{codes[0]}"'
    return f"any of the product codes [{', '.join(codes)}]"


def build_extraction_prompt(codes: Sequence[str]) -> str:
    """Build the instruction sent along with the image.

    The output depends only on `codes` and their order.

    Args:
        codes (Sequence[str]): Normalized target codes.

    Raises:
        ValueError: If no code is given.

    Returns:
        str: Prompt text.
    """
    if not codes:
        raise ValueError("At least one product code is required to build the prompt")

    condition = _target_condition(codes)
    example_code = codes[0]
    return f"""You extract business registration numbers and company names mapped to specific product codes in an image.

## Task
Find **every row** in the image whose leading identifying number matches {condition}, and extract the business registration number and company name from each of those rows.

## Rules (follow strictly)
1. **Find the targets**: look for numbers equal to {condition}. The number may appear next to labels such as {_CODE_LABELS}, or with no label at all. Match on the number, not on the label.
2. **Extract all rows**: the same product code may appear in several rows. Return every matching row without omission.
3. **Business registration number**: either the hyphenated "000-00-00000" form (3-2-5 digits) or 10 consecutive digits. If the row has none, use an empty string.
4. **Company name**: the company, trade or corporate name written in the same row.
5. **No match**: if no row matches, return an empty "items" list. Never invent rows.

## Response format
Reply with a single JSON object exactly in this shape and nothing else (no prose, no markdown):
{{
  "items": [
    {{
      "product_code": "matched product code (e.g. {example_code})",
      "business_reg_no": "000-00-00000",
      "company_name": "company name",
      "row_index": 1,
      "raw_text": "full original text of the row"
    }}
  ],
  "total_found": 1,
  "confidence": 0.0
}}
"confidence" is a number between 0.0 and 1.0 describing how sure you are about the whole result."""
