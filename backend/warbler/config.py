from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Warbler API", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    is_production: bool = Field(default=False, description="Production deployment flag")
    port: int = Field(default=8000, description="Port the HTTP server listens on")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:4200",
            "http://127.0.0.1",
        ],
        description="List of allowed CORS origins",
    )

    database_url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL, takes precedence over the DB_* fields",
    )
    db_user: str = Field(default="warbler")
    db_password: str = Field(default="warbler")
    db_host: str = Field(default="db")
    db_port: int = Field(default=3306)
    db_name: str = Field(default="warbler")

    jwt_secret_key: str = Field(default="change-me-access-token-signing-secret")
    jwt_refresh_secret_key: str = Field(default="change-me-refresh-token-signing-secret")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=180)
    refresh_token_expire_minutes: int = Field(default=7 * 24 * 60)
    confirm_token_lifetime_seconds: int = Field(
        default=300, description="Lifetime of email confirmation tokens"
    )

    smtp_host: str | None = Field(
        default=None, description="SMTP relay host; mail is only logged when unset"
    )
    smtp_port: int = Field(default=587)
    smtp_username: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None)
    smtp_start_tls: bool = Field(default=True)
    mail_from: str = Field(default="noreply@warbler.local")
    frontend_url: str = Field(
        default="http://localhost:4200", description="Base URL used in emailed links"
    )

    media_root: Path = Field(default=Path("public"))
    media_base_url: str = Field(default="/public")
    max_upload_size: int = Field(
        default=5 * 1024 * 1024, description="Maximum upload size in bytes"
    )

    message_history_default_limit: int = Field(default=50)
    websocket_keepalive_timeout_seconds: float = Field(
        default=30, description="Idle time before the server pings a socket"
    )
    websocket_keepalive_ping_interval_seconds: float = Field(default=30)

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("media_root", mode="before")
    @classmethod
    def resolve_media_root(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.resolve()
        return Path(value).resolve()


@lru_cache
def get_settings() -> Settings:
    return Settings()
