from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "info"
    log_json: bool = False

    # Storage adapters
    request_timeout_s: float = 30.0

    # Content extraction
    page_load_timeout_ms: int = 10000
    page_poll_interval_ms: int = 100
    max_content_length: int = Field(default=10000, ge=0)
    delay_between_pages_ms: int = Field(default=1000, ge=0)
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Scheduler
    schedule_tick_seconds: float = 60.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "BROWSER_CONTEXT_",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
