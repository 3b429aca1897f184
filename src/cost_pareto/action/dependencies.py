"""Shared dependencies for API routers: data source and query parsing."""

import logging
from typing import Optional

from fastapi import HTTPException

from cost_pareto.discovery.cost_aggregator import Granularity
from cost_pareto.ingestion.sheets_fetch import fetch_partitions

logger = logging.getLogger(__name__)


def get_partitions() -> list[tuple[str, list[list[str]]]]:
    """Raw rows of every configured factory sheet, fetched fresh per request.

    Declared sync so FastAPI runs the blocking Sheets call in its threadpool.
    """
    return fetch_partitions()


def get_granularity(granularity: Optional[str] = None) -> Granularity:
    """Resolve the ``granularity`` query parameter, falling back to settings."""
    from config.settings import settings

    value = granularity or settings.aggregation_granularity
    try:
        return Granularity(value)
    except ValueError:
        allowed = ", ".join(g.value for g in Granularity)
        raise HTTPException(status_code=400, detail=f"Unknown granularity '{value}' (expected one of: {allowed})")
