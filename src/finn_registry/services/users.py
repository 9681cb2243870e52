"""
User service for Finn Registry.

Users are created on their first GitHub login and refreshed on every
later one. The GitHub account id is the only merge key.
"""

from __future__ import annotations

from typing import Optional

from ..core import get_logger, log_auth_event, NotFoundError
from ..models import GitHubAnalytics, GitHubProfile, ProfileSettingsRequest, User
from ..storage import RegistryStore


class UserService:
    """Reads and writes user records."""

    def __init__(self, store: RegistryStore):
        self.store = store
        self.logger = get_logger(__name__)

    def get(self, user_id: str) -> Optional[User]:
        """Get a user by internal id."""
        return self.store.get_user(user_id)

    def upsert_from_github(self, profile: GitHubProfile, email: str = "") -> User:
        """
        Insert or refresh the user linked to a GitHub account.

        On refresh, login, avatar and display name always follow GitHub;
        email is only backfilled when empty; bio, location and blog are
        replaced only when GitHub supplies a value.

        Args:
            profile: Fetched GitHub profile
            email: Selected email address, possibly empty

        Returns:
            The stored user
        """
        user = self.store.get_user_by_github_id(profile.id)

        if user is None:
            user = User(
                github_id=profile.id,
                login=profile.login,
                email=email or profile.email or "",
                name=profile.name or profile.login,
                avatar_url=profile.avatar_url,
                bio=profile.bio or None,
                location=profile.location or None,
                blog=profile.blog or None,
            )
            self.store.insert_user(user)
            log_auth_event(
                self.logger,
                "user_created",
                user_id=user.id,
                success=True,
                details={"login": user.login},
            )
            return user

        user.login = profile.login
        user.avatar_url = profile.avatar_url
        user.name = profile.name or profile.login
        if not user.email:
            user.email = email or profile.email or ""
        for field in ("bio", "location", "blog"):
            supplied = getattr(profile, field)
            if supplied:
                setattr(user, field, supplied)

        self.store.save_user(user)
        log_auth_event(
            self.logger,
            "user_refreshed",
            user_id=user.id,
            success=True,
            details={"login": user.login},
        )
        return user

    def update_settings(self, user_id: str, request: ProfileSettingsRequest) -> User:
        """
        Apply profile edits made by the user.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        for field, value in request.model_dump(exclude_unset=True).items():
            if field == "email" and value is None:
                value = ""
            setattr(user, field, value)

        return self.store.save_user(user)

    def apply_analytics(self, user_id: str, analytics: GitHubAnalytics) -> Optional[User]:
        """Store the cached GitHub analytics snapshot of a user."""
        user = self.store.get_user(user_id)
        if user is None:
            return None

        user.github_stars = analytics.total_stars
        user.github_forks = analytics.total_forks
        user.github_languages = list(analytics.top_languages)
        return self.store.save_user(user)
