"""Application configuration from environment variables."""

from functools import lru_cache

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

PAYPAL_API_URLS = {
    "live": "https://api-m.paypal.com",
    "sandbox": "https://api-m.sandbox.paypal.com",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./rentledger.db",
        description="SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Settlement
    settlement_currency: str = Field(default="PHP", description="ISO code of the ledger currency")
    gateway_timeout_seconds: float = Field(
        default=15.0, description="Upper bound for every outbound gateway call"
    )

    # Stripe
    stripe_secret_key: str = Field(default="", description="Stripe secret API key")

    # PayMongo
    paymongo_secret_key: str = Field(default="", description="PayMongo secret API key")
    paymongo_api_url: str = Field(default="https://api.paymongo.com/v1")

    # PayPal
    paypal_client_id: str = Field(default="", description="PayPal REST client id")
    paypal_client_secret: str = Field(default="", description="PayPal REST client secret")
    paypal_mode: str = Field(default="sandbox", description="sandbox or live")

    # Telegram
    telegram_bot_token: str = Field(
        default="", description="Bot token for payment notifications (empty = in-memory only)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file")

    # API
    api_title: str = Field(default="RentLedger API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    @property
    def paypal_api_url(self) -> str:
        """PayPal REST base URL for the configured mode."""
        return PAYPAL_API_URLS["live" if self.paypal_mode == "live" else "sandbox"]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
