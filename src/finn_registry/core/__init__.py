"""
Core modules for Finn Registry.

This package contains the core infrastructure components including
configuration, exceptions, logging, and security primitives.
"""

from __future__ import annotations

from .config import Settings, get_settings, reload_settings
from .exceptions import (
    RegistryError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    UpstreamError,
    TimeoutError,
    ConfigurationError,
    OAuthFailure,
    MISSING_CODE,
    STATE_MISMATCH,
    TOKEN_EXCHANGE_FAILED,
    PROFILE_FETCH_FAILED,
    CONFIGURATION_MISSING,
    get_error_message,
)
from .logging import (
    get_logger,
    setup_logging,
    log_request_start,
    log_request_end,
    log_auth_event,
    log_api_call,
    log_error,
    log_security_event,
)
from .security import (
    random_string,
    hash_secret,
    verify_secret,
    checksum,
    generate_state,
    generate_session_token,
    generate_auth_code,
    generate_api_key,
    generate_request_id,
    get_security_headers,
    mask_sensitive_data,
    get_client_ip,
)

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "reload_settings",
    # Exceptions
    "RegistryError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "UpstreamError",
    "TimeoutError",
    "ConfigurationError",
    "OAuthFailure",
    "MISSING_CODE",
    "STATE_MISMATCH",
    "TOKEN_EXCHANGE_FAILED",
    "PROFILE_FETCH_FAILED",
    "CONFIGURATION_MISSING",
    "get_error_message",
    # Logging
    "get_logger",
    "setup_logging",
    "log_request_start",
    "log_request_end",
    "log_auth_event",
    "log_api_call",
    "log_error",
    "log_security_event",
    # Security
    "random_string",
    "hash_secret",
    "verify_secret",
    "checksum",
    "generate_state",
    "generate_session_token",
    "generate_auth_code",
    "generate_api_key",
    "generate_request_id",
    "get_security_headers",
    "mask_sensitive_data",
    "get_client_ip",
]
