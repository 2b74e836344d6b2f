"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field, field_validator

# Symmetric (shared-secret) JOSE algorithms are never accepted for bearer tokens
_SYMMETRIC_PREFIXES = ("HS",)


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(default=["http://localhost:3000"])
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=5000, description="Application port")
    trusted_proxies: int = Field(
        default=0,
        ge=0,
        description="Reverse proxies in front of the app whose X-Forwarded-For entries are trusted",
    )
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


class Auth0Config(BaseModel):
    """Identity provider (Auth0) token validation configuration."""

    domain: str = Field(default="", description="Identity provider tenant domain")
    audience: str = Field(default="", description="Expected token audience")
    algorithms: list[str] = Field(
        default_factory=lambda: ["RS256"],
        description="Asymmetric JWT algorithms accepted for bearer tokens",
    )
    clock_skew: int = Field(default=60, description="Clock skew tolerance in seconds")

    @field_validator("algorithms")
    @classmethod
    def _reject_symmetric(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("At least one signing algorithm must be allowed")
        bad = [alg for alg in value if alg.upper().startswith(_SYMMETRIC_PREFIXES)]
        if bad or any(alg.lower() == "none" for alg in value):
            raise ValueError(f"Symmetric or unsigned algorithms are not allowed: {bad or ['none']}")
        return value

    @computed_field
    @property
    def issuer(self) -> str:
        """Issuer claim every accepted token must carry."""
        return f"https://{self.domain}/"

    @computed_field
    @property
    def jwks_uri(self) -> str:
        """Remote key-set endpoint derived from the issuer domain."""
        return f"https://{self.domain}/.well-known/jwks.json"


class JwksConfig(BaseModel):
    """Key-set fetch, cache and refetch-cap configuration."""

    cache_ttl: int = Field(default=600, description="Seconds a fetched key set stays cached")
    cache_max_keys: int = Field(default=32, description="Maximum number of cached signing keys")
    requests_per_minute: int = Field(
        default=5, description="Maximum key-set fetches per rolling minute"
    )
    timeout: float = Field(default=5.0, description="Key-set HTTP timeout in seconds")
    fetch_attempts: int = Field(
        default=3, description="Attempts per key-set fetch before giving up"
    )
    backoff_base: float = Field(
        default=0.2, description="Initial backoff between fetch attempts in seconds"
    )


class StripeConfig(BaseModel):
    """Payment processor webhook configuration."""

    webhook_secret: str = Field(default="", description="Shared webhook signing secret")
    signature_header: str = Field(
        default="stripe-signature", description="Header carrying the webhook signature"
    )
    tolerance: int = Field(
        default=300, description="Accepted age of a signed timestamp in seconds"
    )
    replay_protection: bool = Field(
        default=True, description="Accept each signed timestamp only once"
    )


class UploadConfig(BaseModel):
    """Upload validation boundary."""

    allowed_mime_types: list[str] = Field(
        default_factory=lambda: [
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        ],
        description="MIME types accepted for uploads",
    )
    max_size_bytes: int = Field(
        default=10 * 1024 * 1024, description="Maximum upload size in bytes"
    )


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str = Field(default="", description="Log file path (empty disables file sink)")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./cloudwise.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    connect_timeout: int = Field(default=10, description="Connect timeout in seconds")
    statement_timeout_ms: int = Field(
        default=15000, description="Server-side statement timeout in milliseconds"
    )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    auth0: Auth0Config = Field(
        default_factory=Auth0Config, description="Token validation configuration"
    )
    jwks: JwksConfig = Field(
        default_factory=JwksConfig, description="Key-set cache configuration"
    )
    stripe: StripeConfig = Field(
        default_factory=StripeConfig, description="Webhook configuration"
    )
    upload: UploadConfig = Field(
        default_factory=UploadConfig, description="Upload validation configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
