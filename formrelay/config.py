"""Application configuration"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


DEFAULT_EMAIL_FROM = "forms@yourdomain.com"


class Settings(BaseSettings):
    """Application settings"""

    # Sanity (form definitions + submission storage)
    sanity_project_id: str = ""
    sanity_dataset: str = "production"
    sanity_api_version: str = "2024-01-01"
    sanity_api_write_token: Optional[str] = None
    sanity_api_read_token: Optional[str] = None

    # Email providers
    resend_api_key: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    mailgun_api_key: Optional[str] = None
    mailgun_domain: Optional[str] = None
    email_from: Optional[str] = None
    resend_from: Optional[str] = None  # Older name for email_from

    # Outbound HTTP. None = wait as long as the remote end takes
    outbound_timeout: Optional[float] = None

    # Application
    environment: str = "development"
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def sender_address(self) -> str:
        """Sender address for notification emails"""
        return self.email_from or self.resend_from or DEFAULT_EMAIL_FROM


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
