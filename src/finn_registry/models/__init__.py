"""
Finn Registry data models.

This module provides the Pydantic models for stored records, GitHub
payloads, and API requests and responses.
"""

from __future__ import annotations

# Stored records
from .auth import (
    now_ms,
    new_id,
    LanguageShare,
    User,
    SessionRecord,
    SessionView,
    AuthCode,
    ApiKeyRecord,
    ApiKeyView,
    LoginRecord,
    Identity,
)

# Provider payloads
from .github import (
    GitHubProfile,
    GitHubEmail,
    GitHubAnalytics,
)

# Request models
from .requests import (
    ApiKeyCreateRequest,
    ProfileSettingsRequest,
    CliTokenRequest,
)

# Response models
from .responses import (
    AuthStatusResponse,
    SuccessResponse,
    ApiKeyCreateResponse,
    ApiKeyListResponse,
    LoginHistoryResponse,
    SessionListResponse,
    SessionRevokeResponse,
    CliCodeResponse,
    CliTokenResponse,
    ErrorResponse,
)

__all__ = [
    # Stored records
    "now_ms",
    "new_id",
    "LanguageShare",
    "User",
    "SessionRecord",
    "SessionView",
    "AuthCode",
    "ApiKeyRecord",
    "ApiKeyView",
    "LoginRecord",
    "Identity",
    # Provider payloads
    "GitHubProfile",
    "GitHubEmail",
    "GitHubAnalytics",
    # Request models
    "ApiKeyCreateRequest",
    "ProfileSettingsRequest",
    "CliTokenRequest",
    # Response models
    "AuthStatusResponse",
    "SuccessResponse",
    "ApiKeyCreateResponse",
    "ApiKeyListResponse",
    "LoginHistoryResponse",
    "SessionListResponse",
    "SessionRevokeResponse",
    "CliCodeResponse",
    "CliTokenResponse",
    "ErrorResponse",
]
