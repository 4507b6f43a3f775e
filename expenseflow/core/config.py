from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "ExpenseFlow"
    debug: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Database
    database_url: str = "sqlite:///./expenseflow.db"

    # Security
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Approval ladder
    manager_approval_limit: Decimal = Decimal("20")
    finance_approval_limit: Decimal = Decimal("50")
    approval_policy_file: Optional[str] = None

    # Push notifications
    push_gateway_url: Optional[str] = None
    push_timeout: int = 10

    # Receipts
    receipts_dir: str = "./data/receipts"
    receipts_base_url: str = "/receipts"
    max_receipt_bytes: int = 10 * 1024 * 1024

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_to_file: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EXPENSEFLOW_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
