from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "Clearance Service"
    debug: bool = False

    # Database. SQLite serves development and tests; its writers share one
    # database-wide lock, so production deployments set a PostgreSQL URL.
    database_url: str = "sqlite:///./clearance.db"
    create_tables: bool = True  # production schemas are managed by the migrations

    # Security
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    admin_api_key: Optional[str] = None

    # Notifications
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: str = "noreply@clearance.local"
    smtp_from_name: str = "Clearance Office"
    smtp_use_tls: bool = True

    # Webhooks
    webhook_url: Optional[str] = None
    webhook_timeout: int = 10

    # External collaborators (notifier, certificate generator). A timed-out
    # call keeps its worker until it returns, so collaborator_workers hung
    # calls make every later call wait out collaborator_timeout.
    collaborator_timeout: float = 15.0
    collaborator_workers: int = 4

    # Certificates
    certificate_dir: str = "./certificates"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_to_file: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
