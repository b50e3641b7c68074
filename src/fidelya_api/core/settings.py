from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    service_name: str = "fidelya-api"
    version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./fidelya.db"
    database_echo: bool = False

    # Operator endpoints (sync, link, standing); unset disables the check
    operator_api_key: str | None = None

    # Record store transactions
    record_store_max_attempts: int = Field(default=5, ge=1)
    record_store_retry_backoff_seconds: float = Field(default=0.05, ge=0)

    # Redemption policy
    redemption_permissive_mode: bool = True
    redemption_discount_policy: Literal["zero", "face_value"] = "zero"
    validation_code_prefix: str = "FID"
    redemption_history_max_page_size: int = 100
    redemption_notification_event: str = "benefit_redeemed"

    # Benefit QR codes
    benefit_code_prefix: str = "FIDELYA"
    benefit_code_base_url: str = "https://fidelya.com"

    # Tracing
    tracing_enabled: bool = False
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None

    # Membership standing sweeps
    membership_standing_worker_enabled: bool = False
    membership_standing_interval_seconds: int = 60 * 60
    membership_standing_association_ids: list[str] = Field(default_factory=list)

    @field_validator("membership_standing_association_ids", mode="before")
    @classmethod
    def _parse_association_list(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    @field_validator("validation_code_prefix", "benefit_code_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        cleaned = value.strip().upper()
        if not cleaned:
            raise ValueError("Code prefixes cannot be empty")
        return cleaned


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
