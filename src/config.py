from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Maps Review Scraper"
    app_env: str = "dev"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    scraper_profile: Literal["local", "serverless"] = "local"
    scraper_headless: bool = True
    scraper_executable_path: str = ""
    scraper_serverless_executable_path: str = "/usr/bin/chromium"
    scraper_extra_chromium_args: Annotated[list[str], NoDecode] = Field(default_factory=list)
    scraper_maps_search_url: str = "https://www.google.com/maps/search/"
    scraper_max_reviews: int = 25
    scraper_max_scroll_attempts: int = 10
    scraper_retry_attempts: int = 3
    scraper_selector_timeout_ms: int = 10000
    scraper_navigation_timeout_ms: int = 30000
    scraper_request_timeout_s: float = 180.0
    scraper_retry_base_delay_ms: int = 1000
    scraper_retry_min_jitter: float = 0.8
    scraper_retry_max_jitter: float = 1.2
    scraper_min_click_delay_ms: int = 100
    scraper_max_click_delay_ms: int = 300
    scraper_min_scroll_delay_ms: int = 800
    scraper_max_scroll_delay_ms: int = 2000
    scraper_min_loading_delay_ms: int = 2000
    scraper_max_loading_delay_ms: int = 4000
    scraper_min_scroll_step_px: int = 100
    scraper_max_scroll_step_px: int = 400
    scraper_viewport_jitter_px: int = 100
    scraper_confirm_convergence: bool = False

    cache_ttl_seconds: int = 3600

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("scraper_extra_chromium_args", mode="before")
    @classmethod
    def parse_scraper_extra_chromium_args(cls, value: object) -> object:
        if isinstance(value, str):
            return [arg.strip() for arg in value.split(",") if arg.strip()]
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
