"""
Authentication records for Finn Registry.

These are the rows the authentication core reads and writes through the
registry store: users, sessions, auth codes, API keys and login audit
entries, plus the resolved identity handed to route handlers.
"""

from __future__ import annotations

import time
import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    """New opaque record identifier."""
    return uuid.uuid4().hex


class LanguageShare(BaseModel):
    """One entry of a user's top languages."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Language name", min_length=1)
    percentage: int = Field(..., description="Share of repositories, rounded", ge=0, le=100)


class User(BaseModel):
    """
    Registry user, keyed internally by ``id`` and externally by ``github_id``.
    """

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True, extra="forbid")

    id: str = Field(default_factory=new_id, description="Internal user id")
    github_id: int = Field(..., description="Immutable GitHub account id")
    login: str = Field(..., description="GitHub login", min_length=1)
    email: str = Field("", description="Email address")
    name: Optional[str] = Field(None, description="Display name")
    bio: Optional[str] = Field(None, description="Profile bio")
    location: Optional[str] = Field(None, description="Profile location")
    blog: Optional[str] = Field(None, description="Profile link")
    avatar_url: Optional[str] = Field(None, description="Avatar URL")
    github_stars: int = Field(0, description="Stars across public repositories", ge=0)
    github_forks: int = Field(0, description="Forks across public repositories", ge=0)
    github_languages: List[LanguageShare] = Field(
        default_factory=list, description="Top languages by repository count"
    )
    created_at: int = Field(default_factory=now_ms, description="Creation time (epoch ms)")


class SessionRecord(BaseModel):
    """
    Server-side session bound to a user with an absolute expiry.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=new_id, description="Row id")
    token: str = Field(..., description="Opaque session token", min_length=1)
    user_id: str = Field(..., description="Owning user id")
    expires_at: int = Field(..., description="Absolute expiry (epoch ms)")
    created_at: int = Field(default_factory=now_ms, description="Creation time (epoch ms)")
    ip_address: Optional[str] = Field(None, description="Client IP at login")
    user_agent: Optional[str] = Field(None, description="Client user agent at login")

    def is_expired(self, at_ms: Optional[int] = None) -> bool:
        """A session is valid only while its expiry is strictly in the future."""
        return self.expires_at <= (now_ms() if at_ms is None else at_ms)

    def public_view(self, current: bool = False) -> "SessionView":
        return SessionView(current=current, **self.model_dump(exclude={"token", "user_id"}))


class SessionView(BaseModel):
    """Session as listed to its owner. The token itself is never shown."""

    model_config = ConfigDict(extra="forbid")

    id: str
    created_at: int
    expires_at: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    current: bool = Field(False, description="Whether this request is authenticated by the session")


class AuthCode(BaseModel):
    """
    Single-use, short-lived code redeemable for a signed token.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=new_id, description="Row id")
    code: str = Field(..., description="Opaque code", min_length=1)
    user_id: str = Field(..., description="Bound user id")
    expires_at: int = Field(..., description="Absolute expiry (epoch ms)")
    created_at: int = Field(default_factory=now_ms, description="Creation time (epoch ms)")

    def is_expired(self, at_ms: Optional[int] = None) -> bool:
        return self.expires_at <= (now_ms() if at_ms is None else at_ms)


class ApiKeyRecord(BaseModel):
    """
    Stored API key. Only the salted hash of the key is ever kept.
    """

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True, extra="forbid")

    id: str = Field(default_factory=new_id, description="Key id")
    user_id: str = Field(..., description="Owning user id")
    name: str = Field(..., description="Human-assigned name", min_length=1, max_length=100)
    description: Optional[str] = Field(None, description="Free-form description", max_length=500)
    key_hash: str = Field(..., description="salt:hash of the key", min_length=1)
    scopes: Optional[str] = Field(None, description="Comma-separated scopes")
    created_at: int = Field(default_factory=now_ms, description="Creation time (epoch ms)")
    last_used_at: Optional[int] = Field(None, description="Last successful use (epoch ms)")
    expires_at: Optional[int] = Field(None, description="Optional expiry (epoch ms)")

    def scope_list(self, default: List[str]) -> List[str]:
        """Explicit scopes, or ``default`` when none were recorded."""
        if not self.scopes:
            return list(default)
        return [s.strip() for s in self.scopes.split(",") if s.strip()]

    def is_expired(self, at_ms: Optional[int] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now_ms() if at_ms is None else at_ms)

    def public_view(self) -> "ApiKeyView":
        return ApiKeyView(**self.model_dump(exclude={"key_hash"}))


class ApiKeyView(BaseModel):
    """API key record as shown to its owner (no secret material)."""

    model_config = ConfigDict(extra="forbid")

    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    scopes: Optional[str] = None
    created_at: int
    last_used_at: Optional[int] = None
    expires_at: Optional[int] = None


class LoginRecord(BaseModel):
    """Append-only audit entry for a successful login."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=new_id, description="Row id")
    user_id: str = Field(..., description="User that logged in")
    ip_address: str = Field("unknown", description="Source IP")
    user_agent: str = Field("Unknown", description="User agent string")
    created_at: int = Field(default_factory=now_ms, description="Login time (epoch ms)")


class Identity(BaseModel):
    """
    Identity resolved from a credential.

    ``scopes`` is None for session and signed-token logins, which are
    implicitly granted every scope.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="User id")
    login: str = Field(..., description="User login")
    scopes: Optional[List[str]] = Field(None, description="Explicit scopes, if restricted")
    method: Literal["session", "token", "api_key"] = Field(
        ..., description="Strategy that accepted the credential"
    )
    api_key_id: Optional[str] = Field(None, description="Key id when resolved by API key")
