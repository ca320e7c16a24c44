"""All settings, loaded from the environment / .env file."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # Database (SQLite when no PostgreSQL URL is configured)
    database_url: str = "sqlite:///./rfpflow.db"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_pool_timeout: int = 2
    db_pool_recycle: int = 30
    db_connect_timeout: int = 10

    # AI extraction
    anthropic_api_key: str = ""
    extraction_backend: str = "auto"  # auto, claude, heuristic

    # Outbound mail (SMTP)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    smtp_timeout: int = 30

    # Inbound mail (IMAP)
    imap_host: str = ""
    imap_port: int = 993
    imap_user: str = ""
    imap_password: str = ""
    imap_mailbox: str = "INBOX"
    imap_timeout: int = 30

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def imap_configured(self) -> bool:
        return bool(self.imap_host and self.imap_user and self.imap_password)


def config_warnings(s: Settings) -> list[str]:
    """Features that will run degraded with the current configuration.

    None of these block startup.
    """
    warnings = []
    if s.is_sqlite:
        warnings.append("DATABASE_URL not set to PostgreSQL - using SQLite database")
    if not s.anthropic_api_key or s.extraction_backend == "heuristic":
        warnings.append("ANTHROPIC_API_KEY not set - using local parsing fallback")
    if not s.smtp_configured:
        warnings.append("SMTP configuration incomplete - RFP emails will not be sent")
    if not s.imap_configured:
        warnings.append("IMAP configuration incomplete - mailbox checks will fail")
    return warnings


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
