"""Application configuration using pydantic settings with structured sections."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_CURRENCIES = ("SOL", "BTC", "ETH", "USDT")


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./paygate.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class StorageSettings(BaseModel):
    backend: Literal["database", "memory"] = "database"


class SecuritySettings(BaseModel):
    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    admin_username: str = "admin"
    # bcrypt hash, generate with ``python init_admin.py``
    admin_password_hash: Optional[str] = None


class IntakeSettings(BaseModel):
    order_secret: str = Field(default="change-me-order-secret", min_length=8)
    token_algorithm: Literal["hmac-sha256", "legacy-hash"] = "hmac-sha256"
    strict_verification: bool = True
    default_currency: Literal["SOL", "BTC", "ETH", "USDT"] = "SOL"


class PaymentSettings(BaseModel):
    window_seconds: int = Field(default=15 * 60, gt=0)
    confirmation_policy: Literal["probe", "timer"] = "probe"
    probe_interval_seconds: int = Field(default=30, gt=0)
    probe_delay_seconds: float = 2.0
    # real seconds per lifecycle second
    time_scale: float = Field(default=1.0, gt=0)
    addresses: dict[str, str] = Field(default_factory=dict)
    generate_mock_addresses: bool = True
    fallback_prices: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "SOL": Decimal("100"),
            "BTC": Decimal("45000"),
            "ETH": Decimal("2500"),
            "USDT": Decimal("1"),
        }
    )


class SessionSettings(BaseModel):
    ttl_minutes: int = Field(default=30, gt=0)
    sweep_interval_seconds: int = Field(default=300, gt=0)


class IntegrationSettings(BaseModel):
    discord_webhook_url: Optional[str] = None
    price_api_url: str = "https://api.binance.com/api/v3/ticker/price"
    geo_api_url: str = "https://ipapi.co/{ip}/json/"
    http_timeout: float = 10.0


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Cryoner Payment Gateway"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    storage: StorageSettings = StorageSettings()
    security: SecuritySettings = SecuritySettings()
    intake: IntakeSettings = IntakeSettings()
    payments: PaymentSettings = PaymentSettings()
    sessions: SessionSettings = SessionSettings()
    integrations: IntegrationSettings = IntegrationSettings()
    logging: LoggingSettings = LoggingSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def secret_key(self) -> str:
        return self.security.secret_key

    @property
    def algorithm(self) -> str:
        return self.security.algorithm

    @property
    def access_token_expire_minutes(self) -> int:
        return self.security.access_token_expire_minutes


@lru_cache()
def get_settings() -> Settings:
    return Settings()
