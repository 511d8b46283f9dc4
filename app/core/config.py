"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.imagestore.records import TieBreakPolicy

# Bundled SVG placeholders shipped with the package
DEFAULT_PLACEHOLDER_DIR = Path(__file__).resolve().parent.parent / "static" / "placeholders"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App Info
    app_name: str = "Marketplace Image Service"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8400
    workers: int = 1

    # Database
    data_save_folder: str = "./data"
    db_file: str = "marketplace.db"
    database_url_override: str | None = Field(default=None, alias="DATABASE_URL")

    @property
    def database_url(self) -> str:
        """Database URL (SQLite file unless DATABASE_URL is set)."""
        if self.database_url_override:
            return self.database_url_override
        db_path = Path(self.data_save_folder) / self.db_file
        return f"sqlite+aiosqlite:///{db_path}"

    # JWT Authentication
    jwt_secret_key: str = Field(
        default="change-me-marketplace-images-secret",
        alias="JWT_SECRET_KEY",
    )
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24  # 24 hours
    jwt_issuer: str = "https://localhost:8400/"
    jwt_audience: str = "https://localhost:8400/"

    # Default admin account created on startup
    admin_user_id: str = "admin"
    admin_password: str = Field(default="admin", alias="ADMIN_PASSWORD")

    # Image storage
    uploads_root: str = Field(default="./public/uploads", alias="UPLOADS_ROOT")
    placeholder_dir: str = str(DEFAULT_PLACEHOLDER_DIR)
    placeholder_filename: str = "placeholder.svg"
    placeholder_unavailable_filename: str = "placeholder-unavailable.svg"
    placeholder_error_filename: str = "placeholder-error.svg"
    placeholder_processing_filename: str = "placeholder-processing.svg"
    tie_break_policy: TieBreakPolicy = TieBreakPolicy.MOST_RECENT

    # Reconciliation
    reconcile_enabled: bool = Field(default=False, alias="RECONCILE_ENABLED")
    reconcile_interval_minutes: int = 60
    reconcile_dedupe: bool = False
    reconcile_lock_file: str = "./data/image-reconcile.lock"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @field_validator("tie_break_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: str | TieBreakPolicy) -> str | TieBreakPolicy:
        """Accept policy names in any case and with dashes."""
        if isinstance(v, TieBreakPolicy):
            return v
        return str(v).strip().lower().replace("-", "_")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
