from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from creditledger.models.charge import ChargeData


def _parse_charge_data(v: Any) -> ChargeData | None:
    if v is None or v == "":
        return None
    if isinstance(v, ChargeData):
        return v
    if isinstance(v, dict):
        return ChargeData.model_validate(v)
    return ChargeData.model_validate_json(str(v))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")

    # Store
    store_backend: Literal["memory", "mongo", "firebase"] = Field(default="memory", alias="STORE_BACKEND")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="creditledger", alias="MONGODB_DB_NAME")

    # Firebase Realtime Database
    firebase_database_url: str = Field(default="", alias="FIREBASE_DATABASE_URL")
    firebase_credentials: str = Field(
        default="",
        alias="FIREBASE_CREDENTIALS",
        description="Service account JSON path; application default credentials when empty",
    )

    # Credits
    credits_path: str = Field(default="credits", alias="CREDITS_PATH")
    credits_cost: int = Field(default=1, ge=0, alias="CREDITS_COST")
    credits_charge_data_raw: str = Field(
        default="",
        alias="CREDITS_CHARGE_DATA",
        description='JSON {"path": ..., "cost": ...}; overrides CREDITS_PATH/CREDITS_COST',
    )

    # Transactions
    transaction_max_attempts: int = Field(default=25, ge=1, alias="TRANSACTION_MAX_ATTEMPTS")
    transaction_backoff_base: float = Field(default=0.01, ge=0, alias="TRANSACTION_BACKOFF_BASE")
    transaction_backoff_max: float = Field(default=1.0, ge=0, alias="TRANSACTION_BACKOFF_MAX")
    transaction_timeout: float | None = Field(default=None, gt=0, alias="TRANSACTION_TIMEOUT")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    @property
    def charge_data(self) -> ChargeData:
        parsed = _parse_charge_data(self.credits_charge_data_raw)
        if parsed is not None:
            return parsed
        return ChargeData(path=self.credits_path, cost=self.credits_cost)


@lru_cache
def get_settings() -> Settings:
    return Settings()
