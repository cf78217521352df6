"""
Configuración de la aplicación.

Todo se carga desde variables de entorno (prefijo PAYROLL_) o desde un .env.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuraciones cargadas de variables de entorno."""

    # --- App ---
    env: str = "development"
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    seed_demo_data: bool = False

    # --- Base de datos ---
    database_url: str = "postgresql://postgres:root@db:5432/payroll-db"

    # --- Auth ---
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    internal_api_key: str = ""

    # --- Storage ---
    storage_root: str = "storage"
    public_base_url: str = "http://localhost:8000"
    pdf_url_ttl_seconds: int = 3600
    max_upload_size: int = 10 * 1024 * 1024  # 10 MB

    # --- Job de reconciliación ---
    orphan_grace_minutes: int = 30
    reconcile_interval_minutes: int = 60

    model_config = SettingsConfigDict(
        env_prefix="PAYROLL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Singleton de settings."""
    return Settings()
