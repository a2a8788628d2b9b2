"""
Configuration Management
Environment-based settings for Supabase, logging and redirect targets
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RouteTable(BaseModel):
    """Client-side navigation targets after each flow"""
    sign_in_success: str = "/settings/accounts"
    sign_out_success: str = "/login"
    sign_up_success: str = "/login"
    anonymous_user_home: str = "/guest"
    login_page: str = "/login"
    otp_sent: str = "/login/otp"
    password_reset_sent: str = "/login/reset-password/sent"
    profile_update_success: str = "/settings"
    credentials_update_success: str = "/settings/credentials"
    profile_settings: str = "/settings/profile"


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    profiles_table: str = "profiles"

    # Public base URL, used for e-mail redirect links
    site_url: str = "http://localhost:3000"

    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_format: str = "default"
    logging_config_path: Optional[str] = None

    # HTTP
    cors_origins: List[str] = ["*"]
    cookie_secure: bool = False

    # Cached profile reads kept per process
    query_cache_size: int = 1024

    routes: RouteTable = RouteTable()

    @field_validator("site_url")
    @classmethod
    def validate_site_url(cls, v):
        if not v.startswith("http"):
            v = f"https://{v}"
        return v.rstrip("/") + "/"

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("default", "detailed", "json"):
            raise ValueError("LOG_FORMAT must be one of default, detailed, json")
        return v

    def is_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    def log_config(self):
        """Log configuration (without sensitive data)"""
        logger.info(f"Environment: {self.environment}")
        logger.info(f"Supabase URL: {self.supabase_url or '<unset>'}")
        logger.info(f"Supabase key: {'Yes' if self.supabase_anon_key else 'No'}")
        logger.info(f"Site URL: {self.site_url}")
        logger.info(f"Sign-in redirect: {self.routes.sign_in_success}")


@lru_cache
def get_settings() -> Settings:
    return Settings()
