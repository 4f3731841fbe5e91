from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import SecretStr, field_validator, model_validator


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    APP_NAME: str = "crudcore"
    APP_ENV: Literal["local", "dev", "staging", "prod", "test"] = "local"
    LOG_LEVEL: str = "INFO"

    # DB
    DATABASE_URL: SecretStr = SecretStr("sqlite+aiosqlite:///:memory:")
    DB_ECHO: bool = False

    # Paging / batching
    DEFAULT_PAGE_SIZE: int = 25
    MAX_PAGE_SIZE: int = 500
    DEFAULT_BATCH_SIZE: int = 100

    # -------- validators (presencia, formato) --------
    @field_validator("DATABASE_URL")
    @classmethod
    def _required_secret(cls, v, info):
        if v is None or v.get_secret_value().strip() == "":
            raise ValueError(f"{info.field_name} is required (set it in .env)")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "DEFAULT_BATCH_SIZE")
    @classmethod
    def _positive(cls, v: int, info):
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    # -------- cross-field checks --------
    @model_validator(mode="after")
    def _cross_checks(self):
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE")
        return self


settings = Settings()
