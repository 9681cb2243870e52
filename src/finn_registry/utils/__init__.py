"""
Utility modules for Finn Registry.

This package contains the HTTP client used to talk to the identity provider.
"""

from __future__ import annotations

from .http_client import HTTPClient, GitHubHTTPClient

__all__ = [
    "HTTPClient",
    "GitHubHTTPClient",
]
