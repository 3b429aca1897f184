"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Google Sheets: the full service-account JSON, or email + key
    google_service_account_json: str = ""
    google_client_email: str = ""
    google_private_key: str = ""  # literal "\n" sequences are accepted
    google_sheet_id: str = ""  # spreadsheet ID or full URL

    # One sheet (tab) per factory; rows start below the header line
    sheet_partitions: list[str] = ["K1", "K2", "K3"]
    sheet_columns: str = "A2:S"

    # Aggregation
    aggregation_granularity: str = "all_time"  # "all_time" | "monthly"

    # Pareto bands (cumulative % of quantity)
    core_threshold_pct: float = 80.0
    b_threshold_pct: float = 95.0

    # Logging
    log_level: str = "INFO"


settings = Settings()
