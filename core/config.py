"""
Pydantic-based configuration for the scan engine and its collaborators.

All knobs are exposed via environment variables so the same codebase
can run as API server or one-shot CLI with different scan budgets.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, env_file=".env", extra="ignore")

    # Concurrency and budgeting
    scan_concurrency: int = Field(100, description="max probes in flight per scan")
    scan_deadline_s: float = Field(30.0, description="overall wall-clock bound of one scan")

    # Timeouts
    connect_timeout_s: float = Field(1.0)
    read_timeout_s: float = Field(0.5)

    # Banner capture
    banner_bytes: int = Field(256)

    # GeoIP enrichment
    geoip_enabled: bool = Field(True)
    geoip_url: str = Field("http://ip-api.com/json/{target}")
    geoip_timeout_s: float = Field(5.0)

    # HTTP front-end
    static_dir: Optional[str] = Field("static")
    api_host: str = Field("0.0.0.0")
    api_port: int = Field(8080)

    log_level: str = Field("INFO")

    @field_validator("scan_concurrency", "banner_bytes")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("scan_deadline_s", "connect_timeout_s", "read_timeout_s", "geoip_timeout_s")
    @classmethod
    def validate_positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("unknown log level")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
