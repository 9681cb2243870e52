"""
Signed token codec for Finn Registry.

Stateless HS256 tokens let the CLI authenticate without a store round
trip. The signing secret is process-wide configuration; rotating it
invalidates every outstanding token.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import jwt as pyjwt

from ..core import (
    ConfigurationError,
    get_logger,
    get_settings,
)
from ..core.config import DEVELOPMENT_JWT_SECRET, Settings
from ..models import User

_RESERVED_CLAIMS = ("iat", "exp")


class TokenCodec:
    """Issues and verifies signed claim tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", default_ttl: int = 30 * 24 * 60 * 60):
        if not secret:
            raise ConfigurationError("Signed token secret is not configured")
        self._secret = secret
        self._algorithm = algorithm
        self.default_ttl = default_ttl
        self.logger = get_logger(__name__)

    def issue(self, claims: Dict[str, Any], ttl: Optional[int] = None) -> str:
        """
        Sign a claims payload.

        Args:
            claims: Application claims; ``iat``/``exp`` are set here
            ttl: Lifetime in seconds (defaults to the configured TTL)

        Returns:
            Compact signed token
        """
        now = int(time.time())
        payload = {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}
        payload["iat"] = now
        payload["exp"] = now + (self.default_ttl if ttl is None else ttl)
        return pyjwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify signature and expiry.

        Returns:
            The application claims, or None for any invalid token
        """
        try:
            payload = pyjwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except pyjwt.PyJWTError as e:
            self.logger.debug("Signed token rejected", reason=type(e).__name__)
            return None

        if not isinstance(payload, dict):
            return None
        return {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}

    def issue_for_user(self, user: User, ttl: Optional[int] = None) -> str:
        """Issue a token carrying the identity claims of ``user``."""
        return self.issue(
            {"id": user.id, "login": user.login, "github_id": user.github_id},
            ttl=ttl,
        )


def build_token_codec(settings: Optional[Settings] = None) -> TokenCodec:
    """Build a codec from settings."""
    settings = settings or get_settings()
    secret = settings.auth.jwt_secret
    if not secret:
        if settings.is_production:
            raise ConfigurationError("AUTH_JWT_SECRET is required in production")
        get_logger(__name__).warning("AUTH_JWT_SECRET not set, using development secret")
        secret = DEVELOPMENT_JWT_SECRET
    return TokenCodec(
        secret=secret,
        algorithm=settings.auth.jwt_algorithm,
        default_ttl=settings.auth.token_ttl,
    )
