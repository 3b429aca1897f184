"""Report formatter — render ranked cost rows for download or display.

Pure functions turning ranked products (and an optional totals record) into
CSV text, an XLSX workbook, or a fixed-width text table. Every format uses
the same column order.
"""

from __future__ import annotations

import csv
import io
from datetime import date
from typing import Any, Iterable

from cost_pareto.discovery.pareto_ranker import CostTotals, ParetoView, RankedProduct, abc_class

# (header, field) in download order. "rank" is the 1-based output position.
EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("Rank", "rank"),
    ("Product Code", "code"),
    ("Product Name", "name"),
    ("Quantity", "quantity"),
    ("Cumulative %", "cumulative_ratio_pct"),
    ("Occurrences", "occurrence_count"),
    ("Team", "team"),
    ("Category", "category"),
    ("Raw Material", "raw_material"),
    ("Sub Material", "sub_material"),
    ("Packaging", "packaging"),
    ("Consumable", "consumable"),
    ("Material Total", "material_total"),
    ("Depreciation", "depreciation"),
    ("Direct Labor", "direct_labor"),
    ("Indirect Labor", "indirect_labor"),
    ("Utility", "utility"),
    ("Other Expense", "other_expense"),
    ("Processing Total", "processing_total"),
    ("Total Cost", "total_cost"),
]

TOTAL_LABEL = "TOTAL"

# Column widths for the XLSX sheet, same order as EXPORT_COLUMNS
_XLSX_WIDTHS = [6, 12, 30, 12, 12, 12, 10, 10] + [15] * 11 + [18]

_TEXT_FIELDS = {"rank", "code", "name", "team", "category", "cumulative_ratio_pct"}


def _format_number(value: float | int) -> float | int:
    """Whole floats become ints so 1234.0 is written as 1234."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _format_ratio(value: float) -> str:
    return f"{value:.2f}%"


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------


def export_rows(rows: Iterable[RankedProduct]) -> list[list[Any]]:
    """One list of cells per product, ranked by position."""
    out = []
    for position, row in enumerate(rows, start=1):
        cells: list[Any] = []
        for _, field_name in EXPORT_COLUMNS:
            if field_name == "rank":
                cells.append(position)
            elif field_name == "cumulative_ratio_pct":
                cells.append(_format_ratio(row.cumulative_ratio_pct))
            elif field_name in _TEXT_FIELDS:
                cells.append(getattr(row, field_name))
            else:
                cells.append(_format_number(getattr(row, field_name)))
        out.append(cells)
    return out


def totals_row(totals: CostTotals) -> list[Any]:
    """Footer row aligned with EXPORT_COLUMNS; non-summable cells stay blank."""
    cells: list[Any] = []
    for _, field_name in EXPORT_COLUMNS:
        if field_name == "rank":
            cells.append(TOTAL_LABEL)
        elif field_name in _TEXT_FIELDS:
            cells.append("")
        else:
            cells.append(_format_number(getattr(totals, field_name)))
    return cells


def _table(rows: Iterable[RankedProduct], totals: CostTotals | None) -> list[list[Any]]:
    table = [[header for header, _ in EXPORT_COLUMNS]]
    table.extend(export_rows(rows))
    if totals is not None:
        table.append(totals_row(totals))
    return table


# ---------------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------------


def to_csv(rows: Iterable[RankedProduct], totals: CostTotals | None = None) -> str:
    """CSV text with a UTF-8 BOM so spreadsheet apps detect the encoding."""
    output = io.StringIO()
    output.write("\ufeff")
    writer = csv.writer(output, lineterminator="\n")
    writer.writerows(_table(rows, totals))
    return output.getvalue()


def to_xlsx(
    rows: Iterable[RankedProduct],
    totals: CostTotals | None = None,
    sheet_title: str = "Cost Analysis",
) -> bytes:
    """Build an XLSX workbook and return its bytes."""
    from openpyxl import Workbook
    from openpyxl.styles import Font
    from openpyxl.utils import get_column_letter

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title

    for line in _table(rows, totals):
        ws.append(line)

    for cell in ws[1]:
        cell.font = Font(bold=True)
    if totals is not None:
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True)

    for i, width in enumerate(_XLSX_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def format_pareto_table(view: ParetoView) -> str:
    """Format a Pareto view as a text table."""
    lines = [
        "Production Pareto",
        f"{'=' * 72}",
        f"Total Quantity: {view.total_quantity:,.0f}",
        "",
        f"{'Rank':<6}{'Code':<12}{'Name':<24}{'Quantity':>12}{'Cum%':>9}{'Class':>6}",
        f"{'-' * 72}",
    ]
    for row in view.rows:
        band = abc_class(row.cumulative_ratio_pct, view.a_threshold, view.b_threshold)
        lines.append(
            f"{row.rank:<6}{row.code[:11]:<12}{row.name[:23]:<24}"
            f"{row.quantity:>12,.0f}{row.cumulative_ratio_pct:>8.1f}%{band:>6}"
        )
    lines.append(f"{'-' * 72}")
    lines.append(f"A: {view.a_count}  B: {view.b_count}  C: {view.c_count}")
    lines.append(view.summary)
    return "\n".join(lines)


def export_filename(prefix: str, extension: str, today: date | None = None) -> str:
    """``<prefix>_<YYYY-MM-DD>.<extension>``"""
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.{extension}"
