import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # PostgreSQL settings
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "studyai"
    db_password: str = "studyai"
    db_name: str = "studyai"

    # Connection pool settings
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 300
    db_pool_pre_ping: bool = True

    # SQLite pool settings (local development and tests)
    db_sqlite_pool_size: int = 5
    db_sqlite_max_overflow: int = 5

    # Explicit DATABASE_URL (takes priority over db_* settings)
    database_url_override: str = Field(default="", validation_alias="DATABASE_URL")

    # Privileged credential, used only to create missing account records
    service_database_url_override: str = Field(
        default="", validation_alias="SERVICE_DATABASE_URL"
    )

    @property
    def database_url(self) -> str:
        """Build database connection URL.

        Priority:
        1. database_url_override (from DATABASE_URL env var or .env file)
        2. Built from db_* settings
        """
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}@"
            f"{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def service_database_url(self) -> str:
        """Connection URL for privileged writes, falls back to database_url."""
        return self.service_database_url_override or self.database_url

    # Upstream completion service (OpenAI-compatible chat completions API)
    upstream_api_key: str = ""
    upstream_base_url: str = "https://ai.gateway.lovable.dev/v1"
    upstream_model: str = "google/gemini-2.5-flash"
    upstream_premium_model: str = "google/gemini-2.5-pro"
    upstream_max_tokens: int = 1500
    upstream_premium_max_tokens: int = 4000
    upstream_timeout: float = 60.0  # Whole-request ceiling for a single upstream call
    upstream_stream_timeout: float = 300.0  # Ceiling for relaying one whole stream
    upstream_mock: bool = False  # Serve canned responses instead of calling upstream

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 60.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Identity provider
    auth_url: str = ""  # e.g. https://<project>.supabase.co/auth/v1
    auth_api_key: str = ""  # public (anon) key sent as `apikey`
    auth_jwt_secret: str = ""  # when set, tokens are verified locally
    auth_jwt_audience: str = "authenticated"
    auth_timeout: float = 5.0

    # Quota
    daily_limit: int = 15
    max_message_chars: int = 20000

    # CORS
    cors_allow_origin: str = "*"
    cors_allow_headers: str = "authorization, x-client-info, apikey, content-type"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator(
        "upstream_timeout",
        "upstream_stream_timeout",
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
        "auth_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator(
        "daily_limit",
        "max_message_chars",
        "upstream_max_tokens",
        "upstream_premium_max_tokens",
    )
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        """Validate limits and budgets are at least 1."""
        if v < 1:
            raise ValueError("Limit values must be at least 1")
        return v

    @field_validator("db_pool_size", "db_max_overflow", "db_sqlite_pool_size", "db_sqlite_max_overflow")
    @classmethod
    def validate_pool_size_positive(cls, v: int) -> int:
        """Validate pool_size is positive."""
        if v < 1:
            raise ValueError("pool size values must be at least 1")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of: text, structured, json")
        return v

    model_config = SettingsConfigDict(
        env_file=os.getenv("STUDYAI_ENV_FILE", ".env"), extra="ignore"
    )


# Global settings instance
settings = Settings()
