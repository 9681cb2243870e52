"""
Configuration management for Finn Registry.

This module handles all application configuration using Pydantic Settings
for environment variable management and validation.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Used only when AUTH_JWT_SECRET is unset outside production
DEVELOPMENT_JWT_SECRET = "default_secret_for_development_only"


class AuthConfig(BaseSettings):
    """Authentication configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
        extra="ignore"
    )

    # GitHub OAuth application
    github_client_id: str = Field(
        default="",
        description="GitHub OAuth application client ID"
    )
    github_client_secret: str = Field(
        default="",
        repr=False,
        description="GitHub OAuth application client secret"
    )
    oauth_scope: str = Field(
        default="user:email",
        description="OAuth scope requested from GitHub"
    )

    # Signed tokens
    jwt_secret: str = Field(
        default="",
        repr=False,
        description="Symmetric secret for signed tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Signing algorithm for signed tokens"
    )
    token_ttl: int = Field(
        default=30 * 24 * 60 * 60,
        description="Signed token lifetime in seconds",
        ge=60
    )

    # Sessions and short-lived artifacts
    session_ttl: int = Field(
        default=30 * 24 * 60 * 60,
        description="Session lifetime in seconds",
        ge=60
    )
    state_ttl: int = Field(
        default=600,
        description="OAuth state cookie lifetime in seconds",
        ge=30,
        le=3600
    )
    auth_code_ttl: int = Field(
        default=600,
        description="Auth code lifetime in seconds",
        ge=30,
        le=3600
    )

    # Cookies
    session_cookie_name: str = Field(
        default="auth_token",
        description="Name of the session cookie"
    )
    state_cookie_name: str = Field(
        default="oauth_state",
        description="Name of the OAuth CSRF state cookie"
    )
    cookie_domain: Optional[str] = Field(
        default=None,
        description="Domain attribute for the session cookie"
    )
    cookie_secure: bool = Field(
        default=True,
        description="Mark auth cookies as secure"
    )

    # API keys
    api_key_prefix: str = Field(
        default="fn_",
        description="Prefix carried by every API key"
    )
    default_scopes: str = Field(
        default="read,publish,delete",
        description="Scopes granted to API keys created without an explicit list"
    )

    @property
    def default_scope_list(self) -> List[str]:
        """Default scopes as a list."""
        return [s.strip() for s in self.default_scopes.split(",") if s.strip()]

    def is_oauth_configured(self) -> bool:
        """Check if the GitHub OAuth application is configured."""
        return bool(self.github_client_id)


class GitHubConfig(BaseSettings):
    """GitHub endpoint configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_",
        case_sensitive=False,
        extra="ignore"
    )

    authorize_url: str = Field(
        default="https://github.com/login/oauth/authorize",
        description="GitHub authorize endpoint"
    )
    token_url: str = Field(
        default="https://github.com/login/oauth/access_token",
        description="GitHub token exchange endpoint"
    )
    api_base_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL"
    )
    user_agent: str = Field(
        default="Finn-Registry",
        description="User-Agent sent to GitHub"
    )
    timeout: float = Field(
        default=10.0,
        description="Timeout for GitHub calls in seconds",
        gt=0,
        le=120
    )
    analytics_repo_limit: int = Field(
        default=100,
        description="Repositories fetched for profile analytics",
        ge=1,
        le=100
    )
    top_languages: int = Field(
        default=5,
        description="Number of languages kept in profile analytics",
        ge=1,
        le=20
    )


class StorageConfig(BaseSettings):
    """Storage configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
        extra="ignore"
    )

    path: Optional[Path] = Field(
        default=None,
        description="JSON file backing the registry store (memory only when unset)"
    )


class ServerConfig(BaseSettings):
    """Server configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="SERVER_",
        case_sensitive=False,
        extra="ignore"
    )

    host: str = Field(
        default="0.0.0.0",
        description="Server host address"
    )
    port: int = Field(
        default=8000,
        description="Server port",
        ge=1,
        le=65535
    )
    workers: int = Field(
        default=1,
        description="Number of worker processes",
        ge=1,
        le=16
    )
    reload: bool = Field(
        default=False,
        description="Enable auto-reload in development"
    )

    # CORS settings
    cors_origins: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    cors_methods: List[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        description="Allowed CORS methods"
    )
    cors_headers: List[str] = Field(
        default=["*"],
        description="Allowed CORS headers"
    )


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Logging level"
    )
    format: str = Field(
        default="json",
        description="Log format (json or text)"
    )
    file_path: Optional[str] = Field(
        default=None,
        description="Log file path (optional)"
    )
    max_file_size: int = Field(
        default=10485760,  # 10MB
        description="Maximum log file size in bytes",
        ge=1048576,  # 1MB
        le=104857600  # 100MB
    )
    backup_count: int = Field(
        default=5,
        description="Number of backup log files",
        ge=1,
        le=20
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {"json", "text"}
        if v.lower() not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v.lower()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application info
    app_name: str = Field(
        default="Finn Registry",
        description="Application name"
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version"
    )
    app_description: str = Field(
        default="Package registry for the Finn language",
        description="Application description"
    )
    app_url: str = Field(
        default="",
        description="Public base URL; derived from the request when empty"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Sub-configurations
    auth: AuthConfig = Field(default_factory=AuthConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        valid_envs = {"development", "staging", "production", "testing"}
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v.lower()

    @field_validator("app_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the public base URL."""
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Whether the application runs in production."""
        return self.environment == "production"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
