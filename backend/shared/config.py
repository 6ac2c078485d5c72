"""
Centralized configuration for the TutorLink backend.

All settings are loaded from environment variables with sensible defaults.
Variables are prefixed with TUTORLINK_ (e.g., TUTORLINK_SUPABASE_URL).
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TUTORLINK_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "TutorLink API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:3001"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_db_url: str = ""  # Direct Postgres URL, used by run_migrations.py

    # Storage backend for coin balances, payments and unlocks
    ledger_backend: Literal["supabase", "memory"] = "supabase"
    # YAML file with users and requests for the memory backend
    memory_seed_path: str = ""

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    default_currency: str = "inr"

    # Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""

    # Frontend URLs (for checkout redirects)
    frontend_url: str = "http://localhost:3001"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
