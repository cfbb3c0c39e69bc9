from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_category_rates() -> dict[str, dict[str, Decimal]]:
    return {
        "art": {"buyers_premium_rate": Decimal("0.15"), "tax_rate": Decimal("0.085")},
        "jewelry": {"buyers_premium_rate": Decimal("0.20"), "tax_rate": Decimal("0.085")},
        "watches": {"buyers_premium_rate": Decimal("0.15"), "tax_rate": Decimal("0.085")},
        "antiques": {"buyers_premium_rate": Decimal("0.12"), "tax_rate": Decimal("0.085")},
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "AuctionPay Totals API"
    app_version: str = "0.1.0"
    environment: str = "local"

    default_buyers_premium_rate: Decimal = Decimal("0.10")
    default_tax_rate: Decimal = Decimal("0.085")
    default_currency: str = "USD"
    decimal_precision: int = 28
    money_rounding: Literal["half_up", "half_even", "up", "down"] = "half_even"
    verification_tolerance: Decimal = Decimal("0.01")
    strict_premium_tiers: bool = False
    category_rates: dict[str, dict[str, Decimal]] = _default_category_rates()

    log_json: bool = False
    audit_log_enabled: bool = True
    audit_hash_chain_enabled: bool = False
    audit_hash_chain_secret: str | None = None

    sentry_dsn: str | None = None
    sentry_traces_sample_rate: float = 0.0
    sentry_profiles_sample_rate: float = 0.0
    sentry_enable_logs: bool = False
    sentry_log_level: str = "error"

    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
