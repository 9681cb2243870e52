"""
GitHub payload models.

Only the fields the registry consumes are declared; everything else in the
provider's payloads is ignored.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .auth import LanguageShare


class GitHubProfile(BaseModel):
    """Subset of ``GET /user``."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Immutable GitHub account id")
    login: str = Field(..., description="GitHub login", min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    blog: Optional[str] = None


class GitHubEmail(BaseModel):
    """One entry of ``GET /user/emails``."""

    model_config = ConfigDict(extra="ignore")

    email: str
    primary: bool = False
    verified: bool = False


class GitHubAnalytics(BaseModel):
    """Aggregates derived from a user's public repositories."""

    model_config = ConfigDict(extra="forbid")

    total_stars: int = 0
    total_forks: int = 0
    top_languages: List[LanguageShare] = Field(default_factory=list)
