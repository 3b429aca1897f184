"""Google Sheets reader — fetches the raw cost rows of every factory sheet."""

from __future__ import annotations

import json
import logging
from typing import Any

from cost_pareto.discovery.cost_aggregator import clean_partition_label

logger = logging.getLogger(__name__)

READONLY_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetSourceError(RuntimeError):
    """The spreadsheet could not be read (configuration or transport)."""


def _service_account_info() -> dict[str, Any]:
    """Credentials dict from either the JSON blob or the email + key pair."""
    from config.settings import settings

    if settings.google_service_account_json:
        try:
            info = json.loads(settings.google_service_account_json)
        except json.JSONDecodeError as exc:
            raise SheetSourceError(f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: {exc}") from exc
        if not isinstance(info, dict):
            raise SheetSourceError("GOOGLE_SERVICE_ACCOUNT_JSON must be a JSON object")
        return info

    if settings.google_client_email and settings.google_private_key:
        return {
            "type": "service_account",
            "client_email": settings.google_client_email,
            # Keys pasted into env vars usually carry escaped newlines
            "private_key": settings.google_private_key.replace("\\n", "\n"),
            "token_uri": TOKEN_URI,
        }

    raise SheetSourceError(
        "Google credentials not configured: set GOOGLE_SERVICE_ACCOUNT_JSON "
        "or GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY"
    )


def _get_gspread_client():
    """Build a read-only gspread client from the configured service account."""
    import gspread
    from google.auth.exceptions import GoogleAuthError

    info = _service_account_info()
    try:
        return gspread.service_account_from_dict(info, scopes=READONLY_SCOPES)
    except (GoogleAuthError, ValueError) as exc:
        raise SheetSourceError(f"Invalid Google service account credentials: {exc}") from exc


def _extract_sheet_id(url_or_id: str) -> str:
    """Extract the spreadsheet ID from a URL or return as-is if already an ID."""
    if "/" in url_or_id:
        # URL format: https://docs.google.com/spreadsheets/d/SHEET_ID/edit...
        parts = url_or_id.split("/")
        for i, part in enumerate(parts):
            if part == "d" and i + 1 < len(parts):
                return parts[i + 1]
    return url_or_id


def partition_ranges(partitions: list[str], columns: str) -> list[str]:
    """A1 ranges for each partition sheet, e.g. ``K1!A2:S``."""
    return [f"{name}!{columns}" for name in partitions]


def partition_label_from_range(range_str: str | None) -> str:
    """Sheet name of a returned range such as ``'K1'!A2:S120``."""
    return clean_partition_label((range_str or "").split("!")[0])


def fetch_partitions(
    sheet: str | None = None,
    partitions: list[str] | None = None,
    columns: str | None = None,
) -> list[tuple[str, list[list[str]]]]:
    """Read every partition sheet in one batch request.

    Args:
        sheet: Spreadsheet URL or ID (defaults to settings.google_sheet_id).
        partitions: Sheet names to read (defaults to settings.sheet_partitions).
        columns: Column range within each sheet (defaults to settings.sheet_columns).

    Returns:
        ``(partition_label, rows)`` pairs in the order the API returned them.

    Raises:
        SheetSourceError: credentials or sheet id missing, or the API call failed.
    """
    import gspread
    from google.auth.exceptions import GoogleAuthError
    from config.settings import settings

    sheet = sheet or settings.google_sheet_id
    if not sheet:
        raise SheetSourceError("GOOGLE_SHEET_ID not configured")
    partitions = partitions or settings.sheet_partitions
    columns = columns or settings.sheet_columns

    gc = _get_gspread_client()
    ranges = partition_ranges(partitions, columns)
    try:
        spreadsheet = gc.open_by_key(_extract_sheet_id(sheet))
        response = spreadsheet.values_batch_get(ranges)
    except (gspread.exceptions.GSpreadException, GoogleAuthError, OSError) as exc:
        raise SheetSourceError(f"Failed to read spreadsheet: {exc}") from exc

    result = []
    for value_range in response.get("valueRanges") or []:
        label = partition_label_from_range(value_range.get("range"))
        result.append((label, value_range.get("values") or []))

    logger.info(
        "Fetched %d partitions (%d rows) from sheet %s",
        len(result), sum(len(rows) for _, rows in result), _extract_sheet_id(sheet),
    )
    return result
