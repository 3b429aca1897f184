"""Aggregated data, Pareto view, and selection export routes."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from config.settings import settings
from cost_pareto.action.dependencies import get_granularity, get_partitions
from cost_pareto.discovery.cost_aggregator import Granularity, aggregate_partitions, aggregated_rows
from cost_pareto.discovery.pareto_ranker import (
    ALL,
    build_pareto_view,
    filter_options,
    rank_selection,
    ranked_rows,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["pareto"])

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


class SelectionKey(BaseModel):
    partition: str
    code: str
    period: Optional[str] = None


class SelectionRequest(BaseModel):
    keys: list[SelectionKey] = []
    codes: list[str] = []

    def key_tuples(self) -> list[tuple]:
        return [
            (k.partition, k.code) if k.period is None else (k.partition, k.code, k.period)
            for k in self.keys
        ]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/data")
def get_data(
    partitions: list = Depends(get_partitions),
    granularity: Granularity = Depends(get_granularity),
) -> dict:
    """Every product aggregated across its raw rows."""
    rows = aggregated_rows(aggregate_partitions(partitions, granularity))
    return {"message": "success", "count": len(rows), "data": rows}


@router.get("/pareto")
def get_pareto(
    partition: str = ALL,
    team: str = ALL,
    category: str = ALL,
    period: str = ALL,
    partitions: list = Depends(get_partitions),
    granularity: Granularity = Depends(get_granularity),
) -> dict:
    """Ranked products for the chosen filters with cumulative share and ABC class."""
    products = aggregate_partitions(partitions, granularity)
    view = build_pareto_view(
        products,
        partition=partition,
        team=team,
        category=category,
        period=period,
        a_threshold=settings.core_threshold_pct,
        b_threshold=settings.b_threshold_pct,
    )
    return {
        "count": len(view.rows),
        "total_quantity": view.total_quantity,
        "core_count": view.core_count,
        "a_count": view.a_count,
        "b_count": view.b_count,
        "c_count": view.c_count,
        "summary": view.summary,
        "rows": ranked_rows(view.rows, settings.core_threshold_pct, settings.b_threshold_pct),
    }


@router.get("/pareto/options")
def get_pareto_options(
    partition: str = ALL,
    team: str = ALL,
    partitions: list = Depends(get_partitions),
    granularity: Granularity = Depends(get_granularity),
) -> dict:
    """Dropdown values; teams depend on the partition, categories on both."""
    options = filter_options(aggregate_partitions(partitions, granularity), partition, team)
    return {name: [ALL] + values for name, values in options.items()}


@router.post("/selection")
def post_selection(
    body: SelectionRequest,
    partitions: list = Depends(get_partitions),
    granularity: Granularity = Depends(get_granularity),
) -> dict:
    """Rank only the selected products and total their quantity and costs."""
    products = aggregate_partitions(partitions, granularity)
    result = rank_selection(products, keys=body.key_tuples(), codes=body.codes)
    return {
        "count": len(result.rows),
        "rows": ranked_rows(result.rows, settings.core_threshold_pct, settings.b_threshold_pct),
        "totals": asdict(result.totals),
    }


@router.post("/selection/export")
def export_selection(
    body: SelectionRequest,
    export_format: str = Query("csv", alias="format"),
    partitions: list = Depends(get_partitions),
    granularity: Granularity = Depends(get_granularity),
):
    """Download the ranked selection with a TOTAL footer as CSV or XLSX."""
    from cost_pareto.discovery.report_formatter import export_filename, to_csv, to_xlsx

    if export_format not in EXPORT_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported export format '{export_format}'")

    products = aggregate_partitions(partitions, granularity)
    result = rank_selection(products, keys=body.key_tuples(), codes=body.codes)

    if export_format == "xlsx":
        content = to_xlsx(result.rows, result.totals)
    else:
        content = to_csv(result.rows, result.totals).encode("utf-8")

    filename = export_filename("abc_analysis", export_format)
    logger.info("Exporting %d selected products as %s", len(result.rows), export_format)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
