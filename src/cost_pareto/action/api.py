"""FastAPI application serving the cost aggregation and Pareto views."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from cost_pareto.ingestion.sheets_fetch import SheetSourceError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

app = FastAPI(title="Cost Pareto API", version=VERSION)

# ---------------------------------------------------------------------------
# Include modular routers
# ---------------------------------------------------------------------------
from cost_pareto.action.routers.pareto import router as pareto_router  # noqa: E402

app.include_router(pareto_router)


@app.exception_handler(SheetSourceError)
async def _sheet_error_handler(request: Request, exc: SheetSourceError):
    """Upstream data-source failures surface as a single readable error."""
    logger.error("Data fetch failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc), "status": "failed"},
    )


@app.exception_handler(Exception)
async def _global_error_handler(request: Request, exc: Exception):
    """Catch-all: ensure every unhandled error returns JSON, not raw HTML."""
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Server error: {exc}",
            "error": str(exc),
            "status": "failed",
        },
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": VERSION}
