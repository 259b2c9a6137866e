from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    internal_api_token: str = Field(
        default="dev_internal_token_change_me",
        alias="INTERNAL_API_TOKEN",
    )
    internal_api_allowlist: str = Field(
        default="127.0.0.1/32,::1/128",
        alias="INTERNAL_API_ALLOWLIST",
    )
    internal_api_trusted_proxies: str = Field(default="", alias="INTERNAL_API_TRUSTED_PROXIES")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(alias="REDIS_URL")

    celery_broker_url: str = Field(alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(alias="CELERY_RESULT_BACKEND")

    # "mock" disables webhook signature checks and uses the in-memory provider.
    payment_provider_mode: str = Field(default="mock", alias="PAYMENT_PROVIDER_MODE")
    payment_provider_api_url: str = Field(
        default="https://api.commerce.coinbase.com",
        alias="PAYMENT_PROVIDER_API_URL",
    )
    payment_provider_api_key: str = Field(default="", alias="PAYMENT_PROVIDER_API_KEY")
    payment_provider_timeout_seconds: float = Field(
        default=10.0,
        alias="PAYMENT_PROVIDER_TIMEOUT_SECONDS",
    )
    payment_webhook_secret: str = Field(default="", alias="PAYMENT_WEBHOOK_SECRET")
    payment_currency: str = Field(default="USD", alias="PAYMENT_CURRENCY")
    payment_checkout_redirect_url: str = Field(
        default="http://localhost:3000/credits/success",
        alias="PAYMENT_CHECKOUT_REDIRECT_URL",
    )

    free_message_limit: int = Field(default=10, ge=0, alias="FREE_MESSAGE_LIMIT")
    free_message_policy: str = Field(default="lifetime", alias="FREE_MESSAGE_POLICY")
    free_message_window_hours: int = Field(default=24, ge=1, alias="FREE_MESSAGE_WINDOW_HOURS")

    auto_topup_cooldown_minutes: int = Field(default=60, ge=0, alias="AUTO_TOPUP_COOLDOWN_MINUTES")
    auto_topup_batch_size: int = Field(default=200, ge=1, alias="AUTO_TOPUP_BATCH_SIZE")

    catalog_refresh_seconds: int = Field(default=60, ge=0, alias="CATALOG_REFRESH_SECONDS")

    ops_alert_webhook_url: str = Field(default="", alias="OPS_ALERT_WEBHOOK_URL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
