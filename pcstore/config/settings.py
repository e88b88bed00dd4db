"""
PC Store API
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety. Every external
collaborator (database, cache, identity provider, image host) is configured
here and nowhere else.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="pcstore", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="pcstore", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    pool_size: int = Field(default=20, description="Connection pool size")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis Cache Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    enabled: bool = Field(default=True, description="Use Redis for read caching")
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=100, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode responses to strings")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class KeycloakSettings(BaseSettings):
    """Identity provider (Keycloak admin API) configuration"""

    model_config = SettingsConfigDict(env_prefix="KEYCLOAK_")

    base_url: str = Field(default="http://keycloak:8080", description="Keycloak base URL")
    realm: str = Field(default="pcstore", description="Realm where store users live")
    admin_realm: str = Field(default="master", description="Realm used to obtain the admin token")
    client_id: str = Field(default="admin-cli", description="Client used for the admin password grant")
    admin_username: str = Field(default="admin", alias="KEYCLOAK_ADMIN", description="Administrator username")
    admin_password: SecretStr = Field(
        default="admin", alias="KEYCLOAK_ADMIN_PASSWORD", description="Administrator password"
    )
    default_role: str = Field(default="user", description="Realm role assigned to new accounts")
    timeout_seconds: float = Field(default=10.0, description="Timeout for every admin API call")


class CloudinarySettings(BaseSettings):
    """Remote image host (Cloudinary) configuration"""

    model_config = SettingsConfigDict(env_prefix="CLOUDINARY_")

    cloud_name: str = Field(default="pcstore", description="Cloud name")
    api_key: str = Field(default="", description="API key for signed calls")
    api_secret: SecretStr = Field(default="", description="API secret for signed calls")
    upload_preset: str = Field(default="pc-store-upload", description="Fallback upload preset")
    default_folder: str = Field(default="pc-store/categories", description="Folder for uploads")
    api_base_url: str = Field(default="https://api.cloudinary.com/v1_1", description="Upload API base URL")
    timeout_seconds: float = Field(default=10.0, description="Timeout for every image host call")


class CatalogSettings(BaseSettings):
    """Catalog listing and caching configuration"""

    model_config = SettingsConfigDict(env_prefix="CATALOG_")

    default_page_size: int = Field(default=10, description="Page size when none is requested")
    max_page_size: int = Field(default=100, description="Upper bound for requested page size")
    cache_ttl_seconds: int = Field(default=300, description="TTL for cached entity reads")


class SecuritySettings(BaseSettings):
    """Security Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Rate limiting
    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS", description="Rate limit requests")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="pcstore", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=5000, alias="API_PORT", description="API port")
    api_workers: int = Field(default=4, alias="API_WORKERS", description="API workers")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    keycloak: KeycloakSettings = Field(default_factory=KeycloakSettings)
    cloudinary: CloudinarySettings = Field(default_factory=CloudinarySettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"

    @property
    def exposes_debug_routes(self) -> bool:
        """Development-only routes (user listing) are mounted outside staging/production"""
        return self.app_env in ("development", "testing")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
