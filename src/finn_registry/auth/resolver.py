"""
Credential resolution for Finn Registry.

A request carries at most one credential. It is tried against sessions,
signed tokens and API keys, in that order; the first strategy that
accepts it decides the identity. Failures inside a strategy are logged
and treated as "no identity" so resolution never raises.
"""

from __future__ import annotations

from typing import Callable, List, Mapping, Optional

from starlette.requests import Request

from ..core import get_logger, verify_secret
from ..models import Identity, now_ms
from ..storage import RegistryStore
from .session import SessionManager
from .tokens import TokenCodec


def extract_credential(
    headers: Mapping[str, str],
    query: Mapping[str, str],
    cookies: Mapping[str, str],
    cookie_name: str,
) -> Optional[str]:
    """
    Pick the single credential carried by a request.

    Precedence: ``Authorization: Bearer <x>``, a raw ``Authorization``
    value, the ``token`` query parameter, then the session cookie.
    """
    auth_header = (headers.get("authorization") or "").strip()
    if auth_header:
        scheme, _, value = auth_header.partition(" ")
        if scheme.lower() == "bearer":
            value = value.strip()
            if value:
                return value
        else:
            return auth_header

    token = query.get("token")
    if token:
        return token

    cookie = cookies.get(cookie_name)
    if cookie:
        return cookie

    return None


class CredentialResolver:
    """Maps a credential string to an identity."""

    def __init__(
        self,
        store: RegistryStore,
        sessions: SessionManager,
        codec: TokenCodec,
        key_prefix: str,
        default_scopes: List[str],
        cookie_name: str = "auth_token",
    ):
        self.store = store
        self.sessions = sessions
        self.codec = codec
        self.key_prefix = key_prefix
        self.default_scopes = list(default_scopes)
        self.cookie_name = cookie_name
        self.logger = get_logger(__name__)

        self._strategies: List[Callable[[str], Optional[Identity]]] = [
            self.try_session,
            self.try_token,
            self.try_api_key,
        ]

    def extract(self, request: Request) -> Optional[str]:
        """Pick the credential string carried by a request."""
        return extract_credential(request.headers, request.query_params, request.cookies, self.cookie_name)

    def resolve_request(self, request: Request) -> Optional[Identity]:
        """Extract and resolve the credential of a request."""
        return self.resolve(self.extract(request))

    def resolve(self, credential: Optional[str]) -> Optional[Identity]:
        """
        Resolve a credential.

        Args:
            credential: Raw credential string

        Returns:
            Identity, or None if no strategy accepts the credential
        """
        if not credential:
            return None

        for strategy in self._strategies:
            try:
                identity = strategy(credential)
            except Exception as e:
                self.logger.warning(
                    "Credential strategy failed",
                    strategy=strategy.__name__,
                    error=str(e),
                )
                continue
            if identity is not None:
                return identity

        self.logger.debug("No strategy accepted credential")
        return None

    def try_session(self, credential: str) -> Optional[Identity]:
        """Accept an unexpired session token whose user still exists."""
        session = self.sessions.lookup(credential)
        if session is None:
            return None

        user = self.store.get_user(session.user_id)
        if user is None:
            self.logger.warning("Session references missing user", user_id=session.user_id)
            return None

        return Identity(id=user.id, login=user.login, method="session")

    def try_token(self, credential: str) -> Optional[Identity]:
        """Accept a valid signed token carrying ``id`` and ``login``."""
        claims = self.codec.verify(credential)
        if not claims:
            return None

        user_id = claims.get("id")
        login = claims.get("login")
        if not user_id or not login:
            return None

        return Identity(id=str(user_id), login=str(login), method="token")

    def try_api_key(self, credential: str) -> Optional[Identity]:
        """
        Accept a prefixed API key matching a stored, unexpired hash.

        Hashes are salted, so every stored key is checked in turn. Updating
        ``last_used_at`` is best-effort.
        """
        if not credential.startswith(self.key_prefix):
            return None

        now = now_ms()
        for record in self.store.list_api_keys():
            if record.is_expired(now):
                continue
            if not verify_secret(credential, record.key_hash):
                continue

            user = self.store.get_user(record.user_id)
            if user is None:
                self.logger.warning("API key references missing user", key_id=record.id)
                return None

            try:
                self.store.touch_api_key(record.id, now)
            except Exception as e:
                self.logger.warning("Failed to update API key usage", key_id=record.id, error=str(e))

            return Identity(
                id=user.id,
                login=user.login,
                scopes=record.scope_list(self.default_scopes),
                method="api_key",
                api_key_id=record.id,
            )

        return None
