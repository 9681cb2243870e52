"""
Custom exceptions for Finn Registry.

This module defines the error taxonomy used by the authentication core
and the API layer. Every error renders to the same JSON envelope.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RegistryError(Exception):
    """Base exception for all Finn Registry errors."""

    def __init__(
        self,
        message: str,
        error_type: str = "registry_error",
        error_code: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        error_dict = {
            "message": self.message,
            "type": self.error_type,
        }

        if self.error_code:
            error_dict["code"] = self.error_code

        if self.details:
            error_dict.update(self.details)

        return {"error": error_dict}


class AuthenticationError(RegistryError):
    """No credential, or no verification strategy accepted it."""

    def __init__(
        self,
        message: str = "Unauthorized",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="authentication_error",
            error_code=error_code,
            status_code=401,
            details=details
        )


class ForbiddenError(RegistryError):
    """Identity resolved but lacks the scope or ownership required."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="authorization_error",
            error_code=error_code,
            status_code=403,
            details=details
        )


class NotFoundError(RegistryError):
    """Requested resource does not exist for the caller."""

    def __init__(
        self,
        message: str = "Not found",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="not_found",
            error_code=error_code,
            status_code=404,
            details=details
        )


class ValidationError(RegistryError):
    """Request validation errors."""

    def __init__(
        self,
        message: str = "Invalid request data",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            error_code=error_code,
            status_code=400,
            details=details
        )


class UpstreamError(RegistryError):
    """The identity provider failed or returned an error payload."""

    def __init__(
        self,
        message: str = "Upstream provider error",
        error_code: Optional[str] = None,
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="upstream_error",
            error_code=error_code,
            status_code=status_code,
            details=details
        )


class TimeoutError(UpstreamError):
    """Upstream request timed out."""

    def __init__(
        self,
        message: str = "Request timeout",
        error_code: Optional[str] = "timeout",
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=504,
            details=details
        )


class ConfigurationError(RegistryError):
    """Configuration related errors."""

    def __init__(
        self,
        message: str = "Configuration error",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="configuration_error",
            error_code=error_code,
            status_code=500,
            details=details
        )


# OAuth terminal failure reasons
MISSING_CODE = "missing-code"
STATE_MISMATCH = "state-mismatch"
TOKEN_EXCHANGE_FAILED = "token-exchange-failed"
PROFILE_FETCH_FAILED = "profile-fetch-failed"
CONFIGURATION_MISSING = "configuration"


class OAuthFailure(RegistryError):
    """Terminal failure of the OAuth exchange flow."""

    _status_by_reason = {
        MISSING_CODE: 400,
        STATE_MISMATCH: 400,
        TOKEN_EXCHANGE_FAILED: 502,
        PROFILE_FETCH_FAILED: 502,
        CONFIGURATION_MISSING: 500,
    }

    def __init__(
        self,
        reason: str,
        message: str = "Authentication failed",
        provider_detail: Optional[str] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="oauth_error",
            error_code=reason,
            status_code=self._status_by_reason.get(reason, 400),
        )
        self.reason = reason
        # Provider text is for operators only and never drives decisions
        self.provider_detail = provider_detail


# Error code mappings for common scenarios
ERROR_CODES = {
    # Authentication errors
    "missing_credential": "Authentication is required",
    "invalid_auth_code": "The auth code is invalid, expired or already used",

    # Authorization errors
    "insufficient_scope": "The credential lacks the required scope",

    # OAuth errors
    MISSING_CODE: "No authorization code was provided.",
    STATE_MISMATCH: "Authentication session expired. Please try again.",
    TOKEN_EXCHANGE_FAILED: "Could not complete sign-in with GitHub. Please try again.",
    PROFILE_FETCH_FAILED: "Failed to retrieve profile information. Please try again.",
    CONFIGURATION_MISSING: "GitHub Client ID is not configured.",

    # Upstream
    "upstream_error": "Error from upstream service",
    "timeout": "Request timed out",
}


def get_error_message(error_code: str) -> str:
    """Get human-readable error message for error code."""
    return ERROR_CODES.get(error_code, "An unknown error occurred")
