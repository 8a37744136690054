from functools import lru_cache
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    environment: str = Field(default="development", alias="ENVIRONMENT")
    port: int = Field(default=8080, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        alias="ALLOWED_ORIGINS"
    )

    restcountries_base_url: str = Field(default="https://restcountries.com/v3.1", alias="RESTCOUNTRIES_BASE_URL")
    worldbank_base_url: str = Field(default="https://api.worldbank.org/v2", alias="WORLDBANK_BASE_URL")
    owid_base_url: str = Field(default="https://ourworldindata.org/grapher", alias="OWID_BASE_URL")
    wikidata_sparql_url: str = Field(default="https://query.wikidata.org/sparql", alias="WIKIDATA_SPARQL_URL")

    http_timeout: float = Field(
        default=15.0,
        alias="HTTP_TIMEOUT",
        description="Upper bound in seconds for every outbound provider call"
    )
    user_agent: str = Field(default="World-Data-Explorer/1.0", alias="USER_AGENT")

    # Durable cache tier (optional, memory-only when unset)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    search_translation_language: str = Field(
        default="vie",
        alias="SEARCH_TRANSLATION_LANGUAGE",
        description="REST Countries translation key used for CountrySummary.translatedName"
    )

    # Cache warm-up on startup
    prefetch: bool = Field(default=False, alias="PREFETCH")
    prefetch_regions: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["Asia", "Europe"],
        alias="PREFETCH_REGIONS"
    )
    prefetch_concurrency: int = Field(default=3, alias="PREFETCH_CONCURRENCY")
    prefetch_delay: float = Field(
        default=0.2,
        alias="PREFETCH_DELAY",
        description="Pause in seconds between two prefetches of one worker"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,  # Treat empty strings as not set
        populate_by_name=True,
    )

    @field_validator("allowed_origins", "prefetch_regions", mode="before")
    @classmethod
    def parse_csv_list(cls, v):
        """Parse comma-separated strings into lists"""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v or []

    @field_validator("prefetch_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        return max(1, v)

    @property
    def durable_cache_enabled(self) -> bool:
        return bool(self.redis_url)


@lru_cache
def get_settings() -> Settings:
    return Settings()
