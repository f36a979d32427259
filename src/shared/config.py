"""Service configuration management using pydantic-settings."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

from src.shared.constants import PROJECT_LIST_LIMIT


class SharedConfig(BaseSettings):
    """Base configuration shared by the service and its tooling."""
    log_level: str = Field(default="info", validation_alias="LOG_LEVEL")
    database_path: str = Field(
        default="./data/migration.db", validation_alias="DATABASE_PATH"
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class MigrationServiceConfig(SharedConfig):
    """Configuration for the migration pipeline service."""
    gemini_api_key: str = Field(default="", validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="", validation_alias="GEMINI_MODEL")
    pipeline_config_path: str = Field(
        default="", validation_alias="PIPELINE_CONFIG"
    )
    cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")
    project_list_limit: int = Field(
        default=PROJECT_LIST_LIMIT, ge=1, validation_alias="PROJECT_LIST_LIMIT"
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Comma-separated ``CORS_ORIGINS`` as a list."""
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]
