"""
Request models for Finn Registry API endpoints.
"""

from __future__ import annotations

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


_SCOPE_PATTERN = re.compile(r"^[a-z][a-z_:]*$")


class ApiKeyCreateRequest(BaseModel):
    """
    Request model for creating an API key.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., description="Human-readable key name", min_length=1, max_length=100)
    description: Optional[str] = Field(None, description="Key description", max_length=500)
    scopes: Optional[List[str]] = Field(
        None, description="Scopes to restrict the key to; full access when omitted"
    )

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Scopes are lowercase identifiers without separators."""
        if v is None:
            return v
        cleaned = []
        for scope in v:
            scope = scope.strip()
            if not _SCOPE_PATTERN.match(scope):
                raise ValueError(f"Invalid scope: {scope!r}")
            if scope not in cleaned:
                cleaned.append(scope)
        if not cleaned:
            raise ValueError("scopes must not be empty when provided")
        return cleaned


class ProfileSettingsRequest(BaseModel):
    """
    Request model for editing profile fields.

    Omitted fields are left untouched.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=254)
    bio: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=100)
    blog: Optional[str] = Field(None, max_length=255)


class CliTokenRequest(BaseModel):
    """
    Request model for redeeming a CLI auth code.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    code: str = Field(..., description="Single-use auth code", min_length=1, max_length=128)
