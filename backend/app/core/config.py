import os
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _build_default_database_url() -> str:
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5434")
    db = os.getenv("POSTGRES_DB", "laocontrol")
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"


def _split_csv(value):
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    PROJECT_NAME: str = "LAO Control API"
    API_V1_STR: str = "/api/v1"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = Field(default_factory=_build_default_database_url)
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )

    # Workbook import (aba "Capa" + abas de detalhamento por empreendimento)
    LAO_COVER_SHEET: str = "Capa"
    LAO_IGNORED_SHEETS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["capa", "lai", "cronograma", "plan1"]
    )
    LAO_MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    DEFAULT_RENEWAL_WINDOW_DAYS: int = 180

    @field_validator("CORS_ORIGINS", "LAO_IGNORED_SHEETS", mode="before")
    @classmethod
    def _split_lists(cls, value):
        return _split_csv(value)

    @field_validator("LAO_MAX_UPLOAD_BYTES", "DEFAULT_RENEWAL_WINDOW_DAYS")
    @classmethod
    def _validate_non_negative(cls, value):
        if value < 0:
            raise ValueError("must be >= 0")
        return value


settings = Settings()
