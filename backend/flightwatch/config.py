from functools import lru_cache

from pydantic_settings import BaseSettings

SCHEDULER_MODES = ("test", "production")
GROUPING_KEYS = ("flight_id", "fingerprint")


class Settings(BaseSettings):
    env: str = "dev"
    database_url: str = "sqlite:///./data/flightwatch.db"
    log_level: str = "INFO"

    scheduler_enabled: bool = True
    scheduler_mode: str = "production"
    scheduler_timezone: str = "UTC"
    check_throttle_seconds: float = 2.0

    amadeus_api_key: str = ""
    amadeus_api_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"
    amadeus_timeout_seconds: float = 30.0
    amadeus_max_results: int = 50
    amadeus_currency: str = "USD"
    amadeus_token_buffer_seconds: int = 60

    price_drop_threshold_percent: float = 10.0
    snapshot_retention: int = 3
    # "flight_id" trusts provider offer ids across searches; "fingerprint"
    # matches carrier + flight number + departure time instead.
    drop_grouping_key: str = "flight_id"

    search_cache_ttl_seconds: int = 900
    date_range_days: int = 1
    date_range_delay_seconds: float = 1.0

    job_detail_history_limit: int = 100
    job_detail_alert_limit: int = 20
    job_list_history_limit: int = 10

    def model_post_init(self, __context):
        if self.env == "prod" and self.database_url.startswith("sqlite"):
            raise ValueError(
                "Production requires explicit DATABASE_URL (not SQLite)"
            )
        if self.scheduler_mode not in SCHEDULER_MODES:
            raise ValueError(
                f"SCHEDULER_MODE must be one of {', '.join(SCHEDULER_MODES)}"
            )
        if self.drop_grouping_key not in GROUPING_KEYS:
            raise ValueError(
                f"DROP_GROUPING_KEY must be one of {', '.join(GROUPING_KEYS)}"
            )

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
