from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from the environment."""

    app_name: str = Field(default="NoteMate API", validation_alias="APP_NAME")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], validation_alias="CORS_ORIGINS")

    db_user: str = Field(default="postgres", validation_alias="DB_USER")
    db_password: str = Field(default="postgres", validation_alias="DB_PASSWORD")
    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=5432, validation_alias="DB_PORT")
    db_name: str = Field(default="notemate", validation_alias="DB_NAME")
    database_url: PostgresDsn | str | None = Field(default=None, validation_alias="DATABASE_URL")
    auto_create_schema: bool = Field(default=False, validation_alias="AUTO_CREATE_SCHEMA")

    jwt_secret: str = Field(default="change-me", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_exp_minutes: int = Field(default=60, validation_alias="JWT_EXP_MINUTES")

    api_base_url: str = Field(default="http://localhost:8000", validation_alias="API_BASE_URL")
    reorder_debounce_seconds: float = Field(default=0.5, validation_alias="REORDER_DEBOUNCE_SECONDS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        """Parse comma-separated CORS origins."""

        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def assembled_database_url(self) -> str:
        """Return a full database URL based on env values."""

        if self.database_url:
            return str(self.database_url)
        return f"postgresql+psycopg2://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
