"""Application Configuration using Pydantic Settings."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from portal.core.exceptions import ConfigurationError


def get_env_file() -> str:
    """
    Determine which .env file to load based on APP_ENV.

    Returns:
        Path to the .env file to load
    """
    app_env = os.getenv("APP_ENV", "development")
    base_dir = Path(__file__).parent.parent.parent  # backend/

    if app_env == "test":
        env_file = base_dir / ".env.test"
        if env_file.exists():
            return str(env_file)

    if app_env == "production":
        env_file = base_dir / ".env.production"
        if env_file.exists():
            return str(env_file)

    return str(base_dir / ".env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "VM Portal"
    APP_ENV: str = "development"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Service principal (falls back to DefaultAzureCredential when unset)
    AZURE_TENANT_ID: str = ""
    ENTRA_CLIENT_ID: str = ""
    ENTRA_CLIENT_SECRET: str = ""

    # Target VM scope
    VM_SUBSCRIPTION_ID: str = ""
    VM_RESOURCE_GROUP: str = ""

    # Azure Automation
    AUTOMATION_SUBSCRIPTION_ID: str = ""
    AUTOMATION_RESOURCE_GROUP: str = "rg-vmportal"
    AUTOMATION_ACCOUNT_NAME: str = ""
    ALLOWED_RUNBOOKS: List[str] = ["Start-ScheduledVMs", "Stop-ScheduledVMs"]

    # Application Insights component queried by the audit log
    APP_INSIGHTS_RESOURCE_ID: str = ""

    # Batch operations
    MAX_BATCH_SIZE: int = 10

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_MAX_AGE: int = 600

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_ACTIONS: str = "30/minute"  # Start/stop/restart/batch/configure
    RATE_LIMIT_API_DEFAULT: str = "120/minute"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Error Tracking (Sentry)
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    @field_validator("ALLOWED_ORIGINS", "ALLOWED_RUNBOOKS", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: str | List[str]) -> List[str]:
        """Parse list settings from a comma separated string or list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("ALLOWED_ORIGINS", mode="after")
    @classmethod
    def validate_cors_origins(cls, origins: List[str], info) -> List[str]:
        """
        Validate CORS origins.

        Rules:
        1. No wildcards
        2. Valid URL format (scheme://host[:port])
        3. In production: HTTPS only (except localhost/127.0.0.1)

        Raises:
            ValueError: If any origin violates the rules
        """
        if not origins:
            raise ValueError("ALLOWED_ORIGINS cannot be empty. At least one origin must be specified.")

        is_production = info.data.get("APP_ENV", "development") == "production"
        validated_origins = []

        for origin in origins:
            origin = origin.strip()

            if "*" in origin:
                raise ValueError(
                    f"CORS origin '{origin}' contains wildcard '*'. "
                    "Specify exact domains instead."
                )

            parsed = urlparse(origin)
            if not parsed.scheme or not parsed.netloc:
                raise ValueError(
                    f"CORS origin '{origin}' must include scheme and hostname. "
                    f"Example: https://portal.example.com"
                )

            if is_production:
                is_localhost = parsed.netloc.startswith("localhost") or parsed.netloc.startswith("127.0.0.1")
                if parsed.scheme != "https" and not is_localhost:
                    raise ValueError(
                        f"CORS origin '{origin}' must use HTTPS in production. "
                        f"Change to: https://{parsed.netloc}"
                    )

            validated_origins.append(origin)

        return validated_origins

    @field_validator("MAX_BATCH_SIZE")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_BATCH_SIZE must be at least 1")
        return v

    @property
    def uses_service_principal(self) -> bool:
        return bool(self.ENTRA_CLIENT_ID and self.ENTRA_CLIENT_SECRET)

    def require_vm_scope(self) -> tuple[str, str]:
        """
        Return the configured (subscription_id, resource_group) for VM operations.

        Raises:
            ConfigurationError: If either value is missing
        """
        if not self.VM_SUBSCRIPTION_ID or not self.VM_RESOURCE_GROUP:
            raise ConfigurationError("Missing VM_SUBSCRIPTION_ID or VM_RESOURCE_GROUP configuration")
        return self.VM_SUBSCRIPTION_ID, self.VM_RESOURCE_GROUP

    def require_automation_scope(self) -> tuple[str, str, str]:
        """
        Return the configured (subscription_id, resource_group, account_name) for Automation.

        Raises:
            ConfigurationError: If any value is missing
        """
        if not (
            self.AUTOMATION_SUBSCRIPTION_ID
            and self.AUTOMATION_RESOURCE_GROUP
            and self.AUTOMATION_ACCOUNT_NAME
        ):
            raise ConfigurationError(
                "Missing AUTOMATION_SUBSCRIPTION_ID, AUTOMATION_RESOURCE_GROUP or "
                "AUTOMATION_ACCOUNT_NAME configuration"
            )
        return (
            self.AUTOMATION_SUBSCRIPTION_ID,
            self.AUTOMATION_RESOURCE_GROUP,
            self.AUTOMATION_ACCOUNT_NAME,
        )


@lru_cache()
def get_settings() -> Settings:
    """Build the process-wide settings once; injected into routes via Depends."""
    return Settings()
