"""
Configuration management for the Essence storefront backend
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional, Set


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Essence Storefront"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_to_file: bool = True

    # Database
    database_url: str = "sqlite:///./storefront.db"

    # Public storefront URL (used in recovery links)
    app_url: str = "https://fortuneessence.se"

    # Email (Resend)
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from_address: str = "noreply@fortuneessence.se"
    email_from_name: str = "Fortune Essence"
    support_email: str = "support@fortuneessence.se"

    # Comma-separated origins allowed to call the API from the browser
    cors_origins: str = "*"

    # Cron endpoints (Authorization: Bearer <cron_secret>)
    cron_secret: str = ""

    # Shipping
    free_shipping_threshold: float = 500.0
    free_shipping_service_types: str = "STANDARD"  # comma-separated service types

    # Abandoned cart recovery
    abandoned_cart_hours: int = 1  # idle time before a cart gets its first reminder
    abandoned_cart_cooldown_hours: int = 1  # minimum spacing between reminders
    abandoned_cart_max_reminders: int = 3
    abandoned_cart_reminder_concurrency: int = 5
    recovery_max_age_days: int = 30

    # Scheduler
    enable_scheduler: bool = True
    reminder_interval_minutes: int = 60

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def free_shipping_types(self) -> Set[str]:
        return {
            t.strip().upper()
            for t in self.free_shipping_service_types.split(",")
            if t.strip()
        }

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
