from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "StockMirror API"
    env: str = "dev"
    log_level: str = "INFO"
    database_url: str = Field(default="sqlite:///./stockmirror.db")
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_enabled: bool = True
    admin_token: str = "dev-admin-token"

    catalog_base_url: str = "https://api.clover.com/v3"
    catalog_merchant_id: str = ""
    catalog_api_key: str = ""
    catalog_timeout_seconds: float = 30.0
    catalog_page_size: int = 1000
    catalog_page_delay_seconds: float = 0.1

    stock_retry_attempts: int = 3
    stock_retry_backoff_seconds: float = 2.0
    apply_delay_seconds: float = 0.2
    apply_rate_limit_pause_seconds: float = 3.0

    tag_cache_ttl_seconds: int = 300
    reconciliation_session_ttl_seconds: int = 3600

    model_config = SettingsConfigDict(env_file=".env", env_prefix="STOCKMIRROR_")


@lru_cache
def get_settings() -> Settings:
    return Settings()
