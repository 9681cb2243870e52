"""
Service wiring for Finn Registry.

All collaborators of the authentication core are built once per
application and kept on ``app.state.services``; route handlers reach
them through the ``get_services`` dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from ..auth import (
    AuthCodeManager,
    CredentialResolver,
    GitHubOAuthClient,
    OAuthFlow,
    SessionManager,
    TokenCodec,
    build_token_codec,
)
from ..core import Settings
from ..services import ApiKeyService, UserService
from ..storage import JsonRegistryStore, RegistryStore
from ..utils import GitHubHTTPClient


@dataclass
class Services:
    """Application-scoped collaborators."""

    settings: Settings
    store: RegistryStore
    http_client: GitHubHTTPClient
    codec: TokenCodec
    sessions: SessionManager
    auth_codes: AuthCodeManager
    users: UserService
    api_keys: ApiKeyService
    resolver: CredentialResolver
    oauth: OAuthFlow

    async def aclose(self) -> None:
        """Stop background work and release network resources."""
        await self.oauth.aclose()
        await self.http_client.close()


def build_services(
    settings: Settings,
    store: Optional[RegistryStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Services:
    """
    Build the service graph.

    Args:
        settings: Application settings
        store: Registry store (defaults to a JSON store at the configured path)
        transport: Optional httpx transport for GitHub calls

    Returns:
        Wired services
    """
    auth = settings.auth
    store = store if store is not None else JsonRegistryStore(settings.storage.path)

    http_client = GitHubHTTPClient(settings.github, transport=transport)
    codec = build_token_codec(settings)
    sessions = SessionManager(store, auth.session_ttl)
    users = UserService(store)

    return Services(
        settings=settings,
        store=store,
        http_client=http_client,
        codec=codec,
        sessions=sessions,
        auth_codes=AuthCodeManager(store, auth.auth_code_ttl),
        users=users,
        api_keys=ApiKeyService(store, auth.api_key_prefix, auth.default_scope_list),
        resolver=CredentialResolver(
            store,
            sessions,
            codec,
            key_prefix=auth.api_key_prefix,
            default_scopes=auth.default_scope_list,
            cookie_name=auth.session_cookie_name,
        ),
        oauth=OAuthFlow(
            GitHubOAuthClient(http_client, auth, settings.github),
            users,
            sessions,
        ),
    )


def get_services(request: Request) -> Services:
    """Dependency returning the application's services."""
    return request.app.state.services
