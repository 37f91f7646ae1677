"""CSV export of validated extraction items."""

from __future__ import annotations

import base64
import csv
import io
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from bizregextract.result_validation import digits_only
from bizregextract.typing.models import ExportArtifact, ExportRow

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bizregextract.typing.models import ExtractionItem

BOM = "\ufeff"
EXPORT_HEADERS: tuple[str, ...] = (
    "No",
    "Product Code",
    "Company Name",
    "Business Registration No",
    "Business Registration No (digits)",
    "Processed At (ISO8601)",
)


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as UTC ISO-8601 with millisecond precision.

    Naive datetimes are taken as UTC.

    Args:
        value (datetime): Timestamp.

    Returns:
        str: e.g. `2026-01-02T03:04:05.000Z`.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_product_code(code: str) -> str:
    """Wrap a code in a text formula so spreadsheets keep leading zeros."""
    return f'="{code}"'


def build_export_rows(items: Sequence[ExtractionItem], processed_at: datetime) -> list[ExportRow]:
    """Derive one export row per item, numbered from 1 in input order.

    Args:
        items (Sequence[ExtractionItem]): Validated items.
        processed_at (datetime): Processing timestamp shared by the run.

    Returns:
        list[ExportRow]: Export rows.
    """
    return [
        ExportRow(
            sequence=index,
            product_code=item.product_code,
            company_name=item.company_name or "",
            business_reg_no=item.business_reg_no,
            business_reg_no_digits=digits_only(item.business_reg_no),
            processed_at=processed_at,
        )
        for index, item in enumerate(items, start=1)
    ]


def render_csv(rows: Sequence[ExportRow]) -> str:
    """Render rows as CSV text with a leading byte-order mark.

    Fields containing a comma, a quote or a line break are quoted and inner
    quotes are doubled.

    Args:
        rows (Sequence[ExportRow]): Rows to render.

    Returns:
        str: CSV document.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        writer.writerow(
            (
                str(row.sequence),
                format_product_code(row.product_code),
                row.company_name,
                row.business_reg_no,
                row.business_reg_no_digits,
                format_timestamp(row.processed_at),
            ),
        )
    return BOM + buffer.getvalue()


def export_filename(now: datetime) -> str:
    """Return `product_result_YYYYMMDD_HHMMSS.csv` for `now` in UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return f"product_result_{now.astimezone(UTC):%Y%m%d_%H%M%S}.csv"


def build_export(items: Sequence[ExtractionItem], processed_at: datetime) -> ExportArtifact:
    """Render the export artifact attached to the result email.

    Args:
        items (Sequence[ExtractionItem]): Validated items.
        processed_at (datetime): Processing timestamp.

    Returns:
        ExportArtifact: CSV text, its base64 payload and file name.
    """
    rows = build_export_rows(items, processed_at)
    content = render_csv(rows)
    return ExportArtifact(
        filename=export_filename(processed_at),
        content=content,
        content_base64=base64.b64encode(content.encode("utf-8")).decode("ascii"),
        row_count=len(rows),
    )
