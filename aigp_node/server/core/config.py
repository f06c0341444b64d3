"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class CORSConfig(BaseModel):
    """CORS configuration."""

    origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS", description="Allowed CORS origins (use * for all)")
    allow_credentials: bool = Field(
        default=True, alias="CORS_ALLOW_CREDENTIALS", description="Allow credentials in CORS requests"
    )
    allow_methods: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_METHODS", description="Allowed HTTP methods (use * for all)"
    )
    allow_headers: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_HEADERS", description="Allowed HTTP headers (use * for all)"
    )

    model_config = {"populate_by_name": True}


class StoreConfig(BaseModel):
    """Relational store configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///./aigp_node.db",
        alias="AIGP_DB_URL",
        description="Database connection URL (postgres URLs are normalized to asyncpg)",
    )
    timeout_seconds: float = Field(
        default=5.0,
        alias="AIGP_STORE_TIMEOUT_SECONDS",
        description="Upper bound for a single store operation",
    )
    create_schema: bool = Field(
        default=False,
        alias="AIGP_CREATE_SCHEMA",
        description="Create tables on startup (local development only)",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # AIGP Node Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="AIGP node server host address to bind to",
        alias="AIGP_SERVER_HOST",
    )
    server_port: int = Field(
        default=4000,
        description="AIGP node server port number",
        alias="AIGP_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="AIGP node logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="AIGP_LOG_LEVEL",
    )

    # =====================================================================
    # Store Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./aigp_node.db",
        description="Connection URL for the governance database",
        alias="AIGP_DB_URL",
    )
    store_timeout_seconds: float = Field(
        default=5.0,
        description="Upper bound in seconds for a single store operation",
        alias="AIGP_STORE_TIMEOUT_SECONDS",
    )
    create_schema: bool = Field(
        default=False,
        description="Create tables on startup instead of relying on Alembic migrations",
        alias="AIGP_CREATE_SCHEMA",
    )

    # =====================================================================
    # CORS Configuration
    # =====================================================================
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins as a JSON list (use * for all)",
        alias="CORS_ORIGINS",
    )

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def store(self) -> StoreConfig:
        """Get store configuration from environment variables."""
        return StoreConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def cors(self) -> CORSConfig:
        """Get CORS configuration from environment variables."""
        return CORSConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
