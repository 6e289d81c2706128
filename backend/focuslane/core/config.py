"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py is at: backend/focuslane/core/config.py
# .env lives at the project root, or next to backend/ as a fallback
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent.parent
_project_root = _backend_dir.parent
ENV_FILE = _project_root / ".env"
if not ENV_FILE.exists():
    ENV_FILE = _backend_dir / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "FocusLane"
    app_env: str = Field(default="development", description="Application environment")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:8000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_sqlalchemy: bool = Field(default=False, description="Enable SQLAlchemy query logging")
    log_uvicorn_access: bool = Field(default=False, description="Enable Uvicorn access logging")
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"focuslane.api": "DEBUG"})'
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/focuslane.log",
        description="Path to log file (relative to project root)"
    )
    log_file_retention: int = Field(default=14, ge=1, description="Number of days to keep log files")
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (tokens, api keys) - NOT RECOMMENDED"
    )

    # Database
    database_url_override: Optional[str] = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts"
    )
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_db: str = Field(default="postgres", description="PostgreSQL database name")
    postgres_user: str = Field(default="postgres", description="PostgreSQL user")
    postgres_password: str = Field(default="postgres", description="PostgreSQL password")
    postgres_port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    database_pool_size: int = Field(default=5, ge=1, description="Database pool size")
    database_max_overflow: int = Field(default=5, ge=0, description="Database max overflow")

    # Hosted identity provider (GoTrue-compatible REST API)
    identity_url: str = Field(default="http://localhost:54321", description="Identity provider base URL")
    identity_api_key: str = Field(default="", description="Public (anon) project key sent as 'apikey'")
    magic_link_redirect_url: Optional[str] = Field(
        default=None,
        description="Where the magic link sends the user back to"
    )
    identity_timeout_seconds: float = Field(default=10.0, gt=0, description="Identity API timeout")
    session_cookie_name: str = Field(default="session_token", description="Session cookie name")
    session_cookie_secure: bool = Field(default=False, description="Mark the session cookie Secure")
    session_max_age_seconds: int = Field(
        default=60 * 60,
        ge=60,
        description="Session cookie lifetime; idle dashboard sessions are dropped after it"
    )
    session_revalidate_seconds: int = Field(
        default=60,
        ge=0,
        description="How long a cached session trusts its token before asking the provider again"
    )

    # Chat completions API
    openai_api_key: Optional[str] = Field(default=None, description="Completion API secret")
    completion_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Chat completions API base URL"
    )
    completion_model: str = Field(default="gpt-4o", description="Model identifier for the relay")
    completion_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Upstream request timeout (seconds)"
    )

    # Dashboard
    assistant_relay_url: Optional[str] = Field(
        default=None,
        description="Remote relay base URL; empty means the relay runs in-process"
    )

    @field_validator("log_format")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        v = (v or "json").strip().lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @property
    def database_url(self) -> str:
        """Construct database URL"""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
