"""
Application configuration loaded from environment variables.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """OrgDesk API server configuration."""

    model_config = SettingsConfigDict(env_prefix="ORGDESK_", env_file=".env", extra="ignore")

    environment: Literal["development", "production"] = "development"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/orgdesk.db"
    auto_create_schema: bool = True

    # Identity provider (OIDC / Entra External ID)
    oidc_instance: str = "https://login.microsoftonline.com"
    oidc_tenant_id: str = "common"
    oidc_issuer: str = ""
    oidc_audience: str = ""
    oidc_jwks_url: str = ""
    jwt_algorithm: str = "RS256"
    dev_secret_key: str = ""  # only used with HS* algorithms in local development
    required_scope: str = "access_as_user"

    # Debug endpoints default to on in development
    enable_debug_endpoints: Optional[bool] = None

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:5174",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:5174",
    ]

    # Logging
    log_level: str = "info"
    log_format: Literal["json", "text"] = "json"

    @property
    def oidc_authority(self) -> str:
        return f"{self.oidc_instance.rstrip('/')}/{self.oidc_tenant_id}/v2.0"

    @property
    def token_issuer(self) -> str:
        return self.oidc_issuer or self.oidc_authority

    @property
    def jwks_url(self) -> str:
        return self.oidc_jwks_url or f"{self.oidc_authority}/discovery/v2.0/keys"

    @property
    def debug_endpoints_enabled(self) -> bool:
        if self.enable_debug_endpoints is None:
            return self.environment == "development"
        return self.enable_debug_endpoints


@lru_cache
def get_settings() -> Settings:
    return Settings()
