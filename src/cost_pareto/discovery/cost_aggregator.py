"""Cost aggregation — collapse raw cost rows into one record per product.

Pure functions that group positionally-indexed spreadsheet rows by
(partition, product code), sum the production quantity and the twelve cost
components, and summarise the observation dates and the number of rows
merged into each product. Malformed cells never fail a row.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Iterable, NamedTuple, Sequence

logger = logging.getLogger(__name__)

MISSING_CODE = "CodeN/A"
UNKNOWN_PARTITION = "Unknown"
UNKNOWN_PERIOD = "unknown"
NO_DATE = "-"

# Column index of each field in a raw sheet row (column A = 0).
CODE_COL = 0
NAME_COL = 1
DATE_COL = 3
TEAM_COL = 5
CATEGORY_COL = 6

AMOUNT_COLUMNS: dict[str, int] = {
    "quantity": 2,
    "raw_material": 7,
    "sub_material": 8,
    "packaging": 9,
    "consumable": 10,
    "material_total": 11,
    "depreciation": 12,
    "direct_labor": 13,
    "indirect_labor": 14,
    "utility": 15,
    "other_expense": 16,
    "processing_total": 17,
    "total_cost": 18,
}

COST_FIELDS: tuple[str, ...] = tuple(name for name in AMOUNT_COLUMNS if name != "quantity")

_PARTITION_JUNK = re.compile(r"['\"\s]")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})")


class Granularity(str, Enum):
    """How finely rows are bucketed in time before aggregation."""
    ALL_TIME = "all_time"
    MONTHLY = "monthly"


class ProductKey(NamedTuple):
    partition: str
    code: str
    period: str = ""


@dataclass(frozen=True)
class AggregatedProduct:
    """One product's totals across every raw row sharing its key."""
    partition: str
    code: str
    name: str = ""
    team: str = ""
    category: str = ""
    period: str = ""
    quantity: float = 0.0
    raw_material: float = 0.0
    sub_material: float = 0.0
    packaging: float = 0.0
    consumable: float = 0.0
    material_total: float = 0.0
    depreciation: float = 0.0
    direct_labor: float = 0.0
    indirect_labor: float = 0.0
    utility: float = 0.0
    other_expense: float = 0.0
    processing_total: float = 0.0
    total_cost: float = 0.0
    occurrence_count: int = 0
    date_range: str = NO_DATE

    @property
    def key(self) -> ProductKey:
        return ProductKey(self.partition, self.code, self.period)


@dataclass
class _Accumulator:
    partition: str
    code: str
    period: str
    name: str
    team: str
    category: str
    amounts: dict[str, float]
    dates: set[str] = field(default_factory=set)
    occurrence_count: int = 1

    def add(self, amounts: dict[str, float], date: str) -> None:
        for name, value in amounts.items():
            self.amounts[name] += value
        if date:
            self.dates.add(date)
        self.occurrence_count += 1

    def snapshot(self) -> AggregatedProduct:
        return AggregatedProduct(
            partition=self.partition,
            code=self.code,
            name=self.name,
            team=self.team,
            category=self.category,
            period=self.period,
            occurrence_count=self.occurrence_count,
            date_range=format_date_range(self.dates),
            **self.amounts,
        )


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------


def parse_amount(value: Any) -> float:
    """Parse a spreadsheet number such as ``"1,234"``; anything unusable is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).replace(",", "").strip()
        if not text:
            return 0.0
        try:
            num = float(text)
        except ValueError:
            return 0.0
    return num if math.isfinite(num) else 0.0


def clean_partition_label(label: str | None) -> str:
    """Strip quotes and whitespace that sheet names pick up in range strings."""
    cleaned = _PARTITION_JUNK.sub("", label or "")
    return cleaned or UNKNOWN_PARTITION


def month_bucket(date: str) -> str:
    """Month label for a raw date: ``"1/2"`` -> ``"1"``, ``"2024-01-02"`` -> ``"2024-01"``."""
    date = (date or "").strip()
    if "/" in date:
        return date.split("/")[0].strip() or UNKNOWN_PERIOD
    m = _ISO_DATE.match(date)
    if m:
        return f"{m.group(1)}-{int(m.group(2)):02d}"
    return UNKNOWN_PERIOD


def format_date_range(dates: Iterable[str]) -> str:
    """Render a date set as ``"-"``, ``"1/2"`` or ``"1/2~1/5"``."""
    ordered = sorted(dates)
    if not ordered:
        return NO_DATE
    if len(ordered) == 1:
        return ordered[0]
    return f"{ordered[0]}~{ordered[-1]}"


def _cell(row: Sequence[Any], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx])


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def aggregate_partitions(
    partitions: Iterable[tuple[str, Sequence[Sequence[Any]]]],
    granularity: Granularity | str = Granularity.ALL_TIME,
) -> dict[ProductKey, AggregatedProduct]:
    """Group raw rows by product and sum their quantity and cost columns.

    Args:
        partitions: ``(partition_label, rows)`` pairs, e.g. one per factory sheet.
        granularity: ``ALL_TIME`` keys by (partition, code); ``MONTHLY`` also
            splits each product by the month of its observation date.

    Returns:
        A new mapping from ProductKey to AggregatedProduct, in first-seen order.
    """
    granularity = Granularity(granularity)
    acc: dict[ProductKey, _Accumulator] = {}
    row_count = 0

    for label, rows in partitions:
        partition = clean_partition_label(label)
        for row in rows or ():
            row_count += 1
            code = _cell(row, CODE_COL) or MISSING_CODE
            date = _cell(row, DATE_COL).strip()
            period = month_bucket(date) if granularity is Granularity.MONTHLY else ""
            amounts = {name: parse_amount(_cell(row, idx)) for name, idx in AMOUNT_COLUMNS.items()}

            key = ProductKey(partition, code, period)
            existing = acc.get(key)
            if existing is None:
                acc[key] = _Accumulator(
                    partition=partition,
                    code=code,
                    period=period,
                    name=_cell(row, NAME_COL),
                    team=_cell(row, TEAM_COL),
                    category=_cell(row, CATEGORY_COL),
                    amounts=amounts,
                    dates={date} if date else set(),
                )
            else:
                existing.add(amounts, date)

    logger.info(
        "Aggregated %d raw rows into %d products (%s)",
        row_count, len(acc), granularity.value,
    )
    return {key: item.snapshot() for key, item in acc.items()}


def aggregated_rows(products: dict[ProductKey, AggregatedProduct] | Iterable[AggregatedProduct]) -> list[dict]:
    """Flatten aggregated products into JSON-ready dicts, keeping their order."""
    items = products.values() if isinstance(products, dict) else products
    return [{f.name: getattr(p, f.name) for f in fields(p)} for p in items]
