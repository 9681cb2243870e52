"""
Service modules for Finn Registry.

This package contains the user and API key services used by the
authentication core and the account endpoints.
"""

from __future__ import annotations

from .users import UserService
from .api_keys import ApiKeyService

__all__ = [
    "UserService",
    "ApiKeyService",
]
