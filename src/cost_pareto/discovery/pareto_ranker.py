"""Pareto ranking — order products by production volume and classify them.

Pure functions for the 80/20 view over aggregated products: categorical
filtering, a stable descending sort on quantity, cumulative quantity and
cumulative share of the filtered set, and A/B/C bands derived from that
share. Selections of individual products go through the same ranking pass
and also get a totals record.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Iterable

from cost_pareto.discovery.cost_aggregator import COST_FIELDS, AggregatedProduct, ProductKey

ALL = "All"
CORE_THRESHOLD = 80.0
B_THRESHOLD = 95.0


@dataclass(frozen=True)
class RankedProduct(AggregatedProduct):
    """An aggregated product placed in a ranked sequence."""
    rank: int = 0
    cumulative_quantity: float = 0.0
    cumulative_ratio_pct: float = 0.0

    @property
    def is_core(self) -> bool:
        return is_core_item(self.cumulative_ratio_pct)

    @property
    def abc_class(self) -> str:
        return abc_class(self.cumulative_ratio_pct)


@dataclass
class CostTotals:
    """Sum of quantity, occurrences and every cost component over a set of products."""
    quantity: float = 0.0
    occurrence_count: int = 0
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


@dataclass
class SelectionResult:
    rows: list[RankedProduct]
    totals: CostTotals


@dataclass
class ParetoView:
    """Ranked main view with its classification summary."""
    rows: list[RankedProduct]
    total_quantity: float
    core_count: int
    a_count: int
    b_count: int
    c_count: int
    summary: str
    a_threshold: float = CORE_THRESHOLD
    b_threshold: float = B_THRESHOLD


# ---------------------------------------------------------------------------
# Classification predicates
# ---------------------------------------------------------------------------


def is_core_item(cumulative_ratio_pct: float, threshold: float = CORE_THRESHOLD) -> bool:
    """A product is core (A-class) while the cumulative share is within the threshold."""
    return cumulative_ratio_pct <= threshold


def abc_class(
    cumulative_ratio_pct: float,
    a_threshold: float = CORE_THRESHOLD,
    b_threshold: float = B_THRESHOLD,
) -> str:
    """Band for a cumulative share: "A" up to a_threshold, "B" up to b_threshold, else "C"."""
    if is_core_item(cumulative_ratio_pct, a_threshold):
        return "A"
    if cumulative_ratio_pct <= b_threshold:
        return "B"
    return "C"


# ---------------------------------------------------------------------------
# Filtering and ranking
# ---------------------------------------------------------------------------


def _values(products) -> list[AggregatedProduct]:
    if isinstance(products, dict):
        return list(products.values())
    return list(products)


def _matches(value: str, wanted: str | None) -> bool:
    return wanted is None or wanted == ALL or value == wanted


def filter_products(
    products: dict[ProductKey, AggregatedProduct] | Iterable[AggregatedProduct],
    partition: str | None = ALL,
    team: str | None = ALL,
    category: str | None = ALL,
    period: str | None = ALL,
) -> list[AggregatedProduct]:
    """Keep products matching every given filter; ``"All"`` or None matches anything."""
    return [
        p for p in _values(products)
        if _matches(p.partition, partition)
        and _matches(p.team, team)
        and _matches(p.category, category)
        and _matches(p.period, period)
    ]


def rank_products(
    products: dict[ProductKey, AggregatedProduct] | Iterable[AggregatedProduct],
) -> list[RankedProduct]:
    """Sort by quantity descending and attach running totals.

    The sort is stable, so products with equal quantity keep their input
    order. Each ratio is the running quantity over the total of the whole
    given set; a set totalling 0 gets ratio 0 everywhere.
    """
    ordered = sorted(_values(products), key=lambda p: -p.quantity)
    total = 0.0
    for p in ordered:
        total += p.quantity

    ranked: list[RankedProduct] = []
    cumulative = 0.0
    for i, p in enumerate(ordered):
        cumulative += p.quantity
        ratio = cumulative / total * 100 if total else 0.0
        ranked.append(RankedProduct(
            **{f.name: getattr(p, f.name) for f in fields(AggregatedProduct)},
            rank=i + 1,
            cumulative_quantity=cumulative,
            cumulative_ratio_pct=ratio,
        ))
    return ranked


def build_pareto_view(
    products: dict[ProductKey, AggregatedProduct] | Iterable[AggregatedProduct],
    partition: str | None = ALL,
    team: str | None = ALL,
    category: str | None = ALL,
    period: str | None = ALL,
    a_threshold: float = CORE_THRESHOLD,
    b_threshold: float = B_THRESHOLD,
) -> ParetoView:
    """Filter, rank and classify products for the main Pareto view."""
    rows = rank_products(filter_products(products, partition, team, category, period))

    counts = {"A": 0, "B": 0, "C": 0}
    for row in rows:
        counts[abc_class(row.cumulative_ratio_pct, a_threshold, b_threshold)] += 1
    total_quantity = rows[-1].cumulative_quantity if rows else 0.0
    core_count = counts["A"]

    n = len(rows)
    if n:
        summary = (
            f"Pareto analysis of production quantity: {core_count} of {n} products "
            f"({core_count / n * 100:.0f}%) fall within the first {a_threshold:g}% "
            f"of total quantity {total_quantity:,.0f}."
        )
    else:
        summary = "Pareto analysis of production quantity: no products match the filters."

    return ParetoView(
        rows=rows,
        total_quantity=total_quantity,
        core_count=core_count,
        a_count=counts["A"],
        b_count=counts["B"],
        c_count=counts["C"],
        summary=summary,
        a_threshold=a_threshold,
        b_threshold=b_threshold,
    )


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------


def select_products(
    products: dict[ProductKey, AggregatedProduct] | Iterable[AggregatedProduct],
    keys: Iterable[tuple] = (),
    codes: Iterable[str] = (),
) -> list[AggregatedProduct]:
    """Pick products by identity, keeping input order.

    ``keys`` holds full ProductKeys or bare (partition, code) pairs;
    ``codes`` selects a product code in every partition.
    """
    wanted_keys = {tuple(k) for k in keys}
    wanted_codes = set(codes)
    return [
        p for p in _values(products)
        if p.key in wanted_keys
        or (p.partition, p.code) in wanted_keys
        or p.code in wanted_codes
    ]


def compute_totals(products: Iterable[AggregatedProduct]) -> CostTotals:
    """Sum quantity, occurrence counts and every cost field."""
    totals = CostTotals()
    for p in products:
        totals.quantity += p.quantity
        totals.occurrence_count += p.occurrence_count
        for name in COST_FIELDS:
            setattr(totals, name, getattr(totals, name) + getattr(p, name))
    return totals


def rank_selection(
    products: dict[ProductKey, AggregatedProduct] | Iterable[AggregatedProduct],
    keys: Iterable[tuple] = (),
    codes: Iterable[str] = (),
) -> SelectionResult:
    """Rank just the selected products and total them."""
    rows = rank_products(select_products(products, keys, codes))
    return SelectionResult(rows=rows, totals=compute_totals(rows))


def filter_options(
    products: dict[ProductKey, AggregatedProduct] | Iterable[AggregatedProduct],
    partition: str | None = ALL,
    team: str | None = ALL,
) -> dict[str, list[str]]:
    """Distinct values for the filter dropdowns, each narrowed by the filters above it."""
    items = _values(products)
    in_partition = [p for p in items if _matches(p.partition, partition)]
    in_team = [p for p in in_partition if _matches(p.team, team)]
    return {
        "partitions": sorted({p.partition for p in items if p.partition}),
        "teams": sorted({p.team for p in in_partition if p.team}),
        "categories": sorted({p.category for p in in_team if p.category}),
    }


def ranked_rows(
    rows: Iterable[RankedProduct],
    a_threshold: float = CORE_THRESHOLD,
    b_threshold: float = B_THRESHOLD,
) -> list[dict]:
    """JSON-ready dicts for ranked products, including their classification."""
    out = []
    for r in rows:
        d = {f.name: getattr(r, f.name) for f in fields(r)}
        d["is_core"] = is_core_item(r.cumulative_ratio_pct, a_threshold)
        d["abc_class"] = abc_class(r.cumulative_ratio_pct, a_threshold, b_threshold)
        out.append(d)
    return out
