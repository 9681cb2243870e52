"""
GitHub OAuth implementation for Finn Registry.

This module handles the three-legged OAuth flow against GitHub: CSRF
state issuance, code exchange, profile and email retrieval, user upsert
and session issuance. Every failure after the callback is received ends
in an ``OAuthFailure`` carrying one of the terminal reasons; a session is
never minted without a confirmed profile.
"""

from __future__ import annotations

import asyncio
import math
from collections import Counter
from typing import Any, Dict, List, Optional, Set, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core import (
    get_logger,
    generate_state,
    log_auth_event,
    log_security_event,
    OAuthFailure,
    RegistryError,
    UpstreamError,
    CONFIGURATION_MISSING,
    MISSING_CODE,
    STATE_MISMATCH,
    TOKEN_EXCHANGE_FAILED,
    PROFILE_FETCH_FAILED,
    get_error_message,
)
from ..core.config import AuthConfig, GitHubConfig
from ..models import (
    GitHubAnalytics,
    GitHubEmail,
    GitHubProfile,
    LanguageShare,
    SessionRecord,
    User,
)
from ..services import UserService
from ..utils import HTTPClient
from .session import SessionManager


def select_email(emails: List[GitHubEmail], profile_email: Optional[str]) -> str:
    """
    Pick the address to store for a user.

    Preference: primary and verified, then the first listed, then the
    profile's public email.
    """
    for entry in emails:
        if entry.primary and entry.verified and entry.email:
            return entry.email
    if emails and emails[0].email:
        return emails[0].email
    return profile_email or ""


class GitHubOAuthClient:
    """OAuth and REST client for GitHub."""

    def __init__(self, http_client: HTTPClient, auth_config: AuthConfig, github_config: GitHubConfig):
        self.http = http_client
        self.auth_config = auth_config
        self.github_config = github_config
        self.logger = get_logger(__name__)

    def build_authorize_url(self, state: str, redirect_uri: str) -> str:
        """
        Build the GitHub authorize URL.

        Args:
            state: CSRF state value
            redirect_uri: Callback URL registered with GitHub

        Returns:
            Absolute authorize URL
        """
        params = {
            "client_id": self.auth_config.github_client_id,
            "redirect_uri": redirect_uri,
            "scope": self.auth_config.oauth_scope,
            "state": state,
        }
        return f"{self.github_config.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> str:
        """
        Exchange an authorization code for an access token.

        Returns:
            GitHub access token

        Raises:
            UpstreamError: If GitHub rejects the code or cannot be reached
        """
        response = await self.http.post(
            self.github_config.token_url,
            headers={"Accept": "application/json"},
            json={
                "client_id": self.auth_config.github_client_id,
                "client_secret": self.auth_config.github_client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )

        payload = self._json(response)
        if response.status_code != 200 or not isinstance(payload, dict):
            raise UpstreamError(
                f"Token exchange failed: {response.status_code}",
                error_code=TOKEN_EXCHANGE_FAILED,
            )

        if payload.get("error"):
            raise UpstreamError(
                str(payload.get("error_description") or payload["error"]),
                error_code=TOKEN_EXCHANGE_FAILED,
            )

        access_token = payload.get("access_token")
        if not access_token:
            raise UpstreamError("Token exchange returned no access token", error_code=TOKEN_EXCHANGE_FAILED)

        return access_token

    async def fetch_profile(self, access_token: str) -> GitHubProfile:
        """
        Fetch the authenticated user's profile.

        Raises:
            UpstreamError: If the profile cannot be retrieved or parsed
        """
        response = await self.http.get("/user", headers=self._auth_headers(access_token))
        if response.status_code != 200:
            raise UpstreamError(
                f"Failed to get user profile: {response.status_code}",
                error_code=PROFILE_FETCH_FAILED,
            )

        try:
            return GitHubProfile.model_validate(self._json(response))
        except PydanticValidationError as e:
            raise UpstreamError("Malformed user profile", error_code=PROFILE_FETCH_FAILED) from e

    async def fetch_emails(self, access_token: str) -> List[GitHubEmail]:
        """
        Fetch the user's email addresses.

        Failures are tolerated and yield an empty list.
        """
        try:
            response = await self.http.get("/user/emails", headers=self._auth_headers(access_token))
        except RegistryError as e:
            self.logger.warning("Email lookup failed", error=e.message)
            return []

        payload = self._json(response)
        if response.status_code != 200 or not isinstance(payload, list):
            return []

        emails = []
        for entry in payload:
            try:
                emails.append(GitHubEmail.model_validate(entry))
            except PydanticValidationError:
                continue
        return emails

    async def fetch_analytics(self, access_token: str, login: str) -> GitHubAnalytics:
        """
        Aggregate stars, forks and top languages over public repositories.

        Failures yield an empty snapshot.
        """
        try:
            response = await self.http.get(
                f"/users/{login}/repos",
                headers=self._auth_headers(access_token),
                params={"per_page": self.github_config.analytics_repo_limit},
            )
        except RegistryError as e:
            self.logger.warning("Analytics fetch failed", login=login, error=e.message)
            return GitHubAnalytics()

        repos = self._json(response)
        if response.status_code != 200 or not isinstance(repos, list):
            return GitHubAnalytics()

        return summarize_repositories(repos, self.github_config.top_languages)

    def _auth_headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    @staticmethod
    def _json(response: Any) -> Any:
        try:
            return response.json()
        except ValueError:
            return None


def summarize_repositories(repos: List[Dict[str, Any]], top_n: int = 5) -> GitHubAnalytics:
    """Reduce a repository listing to the cached analytics snapshot."""
    total_stars = 0
    total_forks = 0
    languages: Counter = Counter()

    for repo in repos:
        if not isinstance(repo, dict):
            continue
        total_stars += int(repo.get("stargazers_count") or 0)
        total_forks += int(repo.get("forks_count") or 0)
        if repo.get("language"):
            languages[repo["language"]] += 1

    top = languages.most_common(top_n)
    counted = sum(count for _, count in top)
    top_languages = [
        LanguageShare(
            name=name,
            percentage=math.floor(count / counted * 100 + 0.5) if counted else 0,
        )
        for name, count in top
    ]

    return GitHubAnalytics(
        total_stars=total_stars,
        total_forks=total_forks,
        top_languages=top_languages,
    )


class OAuthResult(BaseModel):
    """Outcome of a completed login."""

    user: User
    session: SessionRecord


class OAuthFlow:
    """Orchestrates the GitHub login handshake."""

    def __init__(
        self,
        client: GitHubOAuthClient,
        users: UserService,
        sessions: SessionManager,
    ):
        self.client = client
        self.users = users
        self.sessions = sessions
        self.logger = get_logger(__name__)
        self._background_tasks: Set[asyncio.Task] = set()

    def initiate(self, redirect_uri: str) -> Tuple[str, str]:
        """
        Start a login.

        Args:
            redirect_uri: Callback URL

        Returns:
            Tuple of (authorize_url, state); the caller binds the state to
            a short-lived cookie

        Raises:
            OAuthFailure: If the GitHub client id is not configured
        """
        self._require_configuration()

        state = generate_state()
        auth_url = self.client.build_authorize_url(state, redirect_uri)

        log_auth_event(self.logger, "oauth_initiated", success=True)
        return auth_url, state

    async def complete(
        self,
        code: Optional[str],
        state: Optional[str],
        cookie_state: Optional[str],
        redirect_uri: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OAuthResult:
        """
        Finish a login from the provider callback.

        Args:
            code: Authorization code from the callback query
            state: State from the callback query
            cookie_state: State bound to the browser's state cookie
            redirect_uri: Callback URL used when the login was initiated
            ip_address: Client IP for the login audit
            user_agent: Client user agent for the login audit

        Returns:
            The upserted user and the new session

        Raises:
            OAuthFailure: At the first failed step
        """
        self._require_configuration()

        if not code:
            raise self._fail(MISSING_CODE, ip_address)

        if not state or not cookie_state or state != cookie_state:
            raise self._fail(STATE_MISMATCH, ip_address)

        try:
            access_token = await self.client.exchange_code(code, redirect_uri)
        except UpstreamError as e:
            raise self._fail(TOKEN_EXCHANGE_FAILED, ip_address, provider_detail=e.message) from e

        try:
            profile, emails = await asyncio.gather(
                self.client.fetch_profile(access_token),
                self.client.fetch_emails(access_token),
            )
        except UpstreamError as e:
            raise self._fail(PROFILE_FETCH_FAILED, ip_address, provider_detail=e.message) from e

        user = self.users.upsert_from_github(profile, select_email(emails, profile.email))
        session = self.sessions.create_session(user.id, ip_address, user_agent)

        self._schedule_enrichment(access_token, user)

        log_auth_event(
            self.logger,
            "oauth_completed",
            user_id=user.id,
            success=True,
            details={"login": user.login, "client_ip": ip_address},
        )
        return OAuthResult(user=user, session=session)

    async def aclose(self) -> None:
        """Cancel enrichment tasks that are still running."""
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _require_configuration(self) -> None:
        if not self.client.auth_config.is_oauth_configured():
            raise OAuthFailure(CONFIGURATION_MISSING, message=get_error_message(CONFIGURATION_MISSING))

    def _fail(self, reason: str, ip_address: Optional[str], provider_detail: Optional[str] = None) -> OAuthFailure:
        log_security_event(
            self.logger,
            "oauth_failed",
            "medium" if reason == STATE_MISMATCH else "low",
            ip_address or "unknown",
            details={"reason": reason, "provider_detail": provider_detail},
        )
        return OAuthFailure(reason, message=get_error_message(reason), provider_detail=provider_detail)

    def _schedule_enrichment(self, access_token: str, user: User) -> None:
        task = asyncio.create_task(self._enrich(access_token, user.id, user.login))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _enrich(self, access_token: str, user_id: str, login: str) -> None:
        # Detached from the response; errors are only logged
        try:
            analytics = await self.client.fetch_analytics(access_token, login)
            self.users.apply_analytics(user_id, analytics)
            self.logger.info(
                "Profile analytics updated",
                user_id=user_id,
                stars=analytics.total_stars,
                forks=analytics.total_forks,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.warning("Profile analytics update failed", user_id=user_id, error=str(e))
