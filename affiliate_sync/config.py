from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "AffiliateSync"
    app_env: str = "development"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:5173"]

    # Backend REST API
    api_base_url: str = "http://localhost:3000/api"
    api_token: str = ""
    request_timeout_seconds: float = 30.0
    request_retry_attempts: int = 3

    # Cache / polling
    cache_ttl_seconds: float = 300.0
    fast_poll_interval_seconds: float = 15.0
    medium_poll_interval_seconds: float = 30.0
    heavy_poll_interval_seconds: float = 60.0
    polling_autostart: bool = False
    polling_page_context: str | None = None

    # Page sizes
    commission_breakdown_limit: int = 20
    heavy_commission_limit: int = 5
    withdrawal_history_limit: int = 20

    # Affiliate program
    product_price: int = 575000
    registration_fee: int = 75000
    max_commission_level: int = 10
    max_traversal_depth: int = 1000
    referral_link_base: str = "https://santa.cloud/register"

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_list(cls, v):
        if isinstance(v, str):
            import json

            return json.loads(v)
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
