"""
Authentication modules for Finn Registry.

This package contains all authentication-related functionality including
the GitHub OAuth flow, signed tokens, session handling, credential
resolution, and middleware.
"""

from __future__ import annotations

from .tokens import TokenCodec, build_token_codec
from .session import SessionManager, AuthCodeManager
from .oauth import GitHubOAuthClient, OAuthFlow, OAuthResult, select_email, summarize_repositories
from .resolver import CredentialResolver, extract_credential
from .middleware import (
    AuthenticationMiddleware,
    RequestContext,
    RequireIdentity,
    get_request_context,
    optional_identity,
    require_identity,
    require_scope,
)

__all__ = [
    # Signed tokens
    "TokenCodec",
    "build_token_codec",
    # Session management
    "SessionManager",
    "AuthCodeManager",
    # OAuth
    "GitHubOAuthClient",
    "OAuthFlow",
    "OAuthResult",
    "select_email",
    "summarize_repositories",
    # Credential resolution
    "CredentialResolver",
    "extract_credential",
    # Middleware
    "AuthenticationMiddleware",
    "RequestContext",
    "RequireIdentity",
    "get_request_context",
    "optional_identity",
    "require_identity",
    "require_scope",
]
