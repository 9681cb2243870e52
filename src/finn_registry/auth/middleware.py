"""
Authentication middleware for Finn Registry.

The middleware resolves the credential of every request into a typed
request context but never rejects a request itself. Protected routes opt
in through the ``RequireIdentity`` dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import structlog
from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from ..core import (
    get_logger,
    AuthenticationError,
    ForbiddenError,
    generate_request_id,
    get_client_ip,
    get_security_headers,
    log_security_event,
)
from ..models import Identity
from .resolver import CredentialResolver


@dataclass
class RequestContext:
    """Per-request authentication context."""

    request_id: str
    client_ip: str
    user_agent: Optional[str] = None
    credential: Optional[str] = None
    identity: Optional[Identity] = None

    @property
    def authenticated(self) -> bool:
        return self.identity is not None


def require_scope(identity: Identity, scope: str) -> bool:
    """
    Check whether an identity holds a scope.

    Identities without an explicit scope list hold every scope.
    """
    if identity.scopes is None:
        return True
    return scope in identity.scopes


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware that attaches a resolved identity to each request."""

    def __init__(self, app, resolver_factory: Callable[[Request], CredentialResolver]):
        super().__init__(app)
        self.logger = get_logger(__name__)
        self.resolver_factory = resolver_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request through authentication middleware."""
        request_id = request.headers.get("x-request-id") or generate_request_id()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        context = RequestContext(
            request_id=request_id,
            client_ip=get_client_ip(request.headers, request.client.host if request.client else None),
            user_agent=request.headers.get("user-agent"),
        )
        request.state.request_id = request_id
        request.state.context = context

        resolver = self.resolver_factory(request)
        context.credential = resolver.extract(request)
        if context.credential:
            context.identity = await run_in_threadpool(resolver.resolve, context.credential)
            if context.identity is not None:
                self.logger.debug(
                    "Credential resolved",
                    user_id=context.identity.id,
                    method=context.identity.method,
                )

        response = await call_next(request)

        for header, value in get_security_headers().items():
            response.headers.setdefault(header, value)
        response.headers["X-Request-ID"] = request_id

        return response


def get_request_context(request: Request) -> RequestContext:
    """Get the context attached by the middleware."""
    context = getattr(request.state, "context", None)
    if context is None:
        raise RuntimeError("Authentication middleware is not installed")
    return context


class RequireIdentity:
    """
    Dependency for requiring an identity on specific endpoints.

    With ``unrestricted=True`` the identity must hold every scope, which
    excludes API keys whatever scopes they carry. Credential management
    uses this so a key can never mint or revoke keys.
    """

    def __init__(self, scopes: Optional[Iterable[str]] = None, unrestricted: bool = False):
        self.scopes = list(scopes or [])
        self.unrestricted = unrestricted
        self.logger = get_logger(__name__)

    async def __call__(self, request: Request) -> Identity:
        """
        Validate authentication and scopes.

        Args:
            request: FastAPI request object

        Returns:
            Resolved identity

        Raises:
            AuthenticationError: If no identity was resolved
            ForbiddenError: If the identity lacks a required scope, or is
                restricted where an unrestricted identity is required
        """
        context = get_request_context(request)

        if context.identity is None:
            log_security_event(
                self.logger,
                "authentication_required",
                "low",
                context.client_ip,
                details={"path": request.url.path, "credential_present": context.credential is not None},
            )
            raise AuthenticationError()

        missing = [scope for scope in self.scopes if not require_scope(context.identity, scope)]
        if missing:
            log_security_event(
                self.logger,
                "insufficient_scope",
                "medium",
                context.client_ip,
                details={"user_id": context.identity.id, "required": self.scopes, "missing": missing},
            )
            raise ForbiddenError(
                f"Missing scope: {', '.join(missing)}",
                details={"required": self.scopes, "missing": missing},
            )

        if self.unrestricted and context.identity.scopes is not None:
            log_security_event(
                self.logger,
                "restricted_identity_rejected",
                "medium",
                context.client_ip,
                details={
                    "user_id": context.identity.id,
                    "method": context.identity.method,
                    "path": request.url.path,
                },
            )
            raise ForbiddenError(
                "API keys cannot manage credentials",
                error_code="unrestricted_identity_required",
            )

        return context.identity


async def optional_identity(request: Request) -> Optional[Identity]:
    """Dependency returning the identity when present."""
    return get_request_context(request).identity


require_identity = RequireIdentity()
