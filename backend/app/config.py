"""Application configuration."""
from collections import Counter
from functools import lru_cache
import math
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "eCards"
    debug: bool = False
    log_level: str = "INFO"
    frontend_url: str | None = None
    cors_allowed_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Database
    database_url: str = "sqlite:///./data/ecards.db"

    # Auth (tokens are issued by an external identity provider)
    auth_jwt_key: str
    auth_algorithm: str = "RS256"
    auth_audience: str | None = None
    auth_issuer: str | None = None
    admin_role: str = "admin"

    # Paths
    base_dir: Path = Path(__file__).parent
    custom_art_dir: Path = Path("./data/storage/custom")
    premade_art_dir: Path = Path("./data/storage/premade")
    premade_templates_dir: Path = base_dir / "configs" / "templates"
    email_templates_dir: Path = base_dir / "email_templates"
    max_upload_bytes: int = 5 * 1024 * 1024

    # Email
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_use_tls: bool = True
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_from_email: str = "noreply@example.com"
    smtp_from_name: str | None = None
    email_dry_run: bool = False

    # Background tasks
    enable_background_tasks: bool = True
    background_startup_delay_seconds: float = 5
    retention_interval_seconds: float = 60 * 60
    delivery_interval_seconds: float = 5 * 60

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("auth_algorithm")
    @classmethod
    def normalize_algorithm(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def validate_auth_key(self) -> "Settings":
        """Fail closed if AUTH_JWT_KEY is missing, or weak for HMAC algorithms."""
        value = self.auth_jwt_key
        if not value:
            raise ValueError("AUTH_JWT_KEY must be set.")

        # Asymmetric algorithms carry a public key, strength is the IdP's concern.
        if not self.auth_algorithm.startswith("HS"):
            return self

        if len(value) < 32:
            raise ValueError("AUTH_JWT_KEY must be at least 32 characters for HMAC algorithms.")

        weak_values = {"changeme", "changeme-in-production", "secret", "password", "test"}
        lowered = value.lower()
        if lowered in weak_values or "changeme" in lowered:
            raise ValueError("AUTH_JWT_KEY must not be a placeholder value.")

        counts = Counter(value)
        entropy_per_char = -sum((count / len(value)) * math.log2(count / len(value)) for count in counts.values())
        estimated_entropy_bits = entropy_per_char * len(value)
        if estimated_entropy_bits < 100:
            raise ValueError("AUTH_JWT_KEY entropy is too low; use a cryptographically random value.")

        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
