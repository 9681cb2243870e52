"""
Authentication API endpoints for Finn Registry.

This module implements the GitHub login handshake, session status and
logout, and the auth code handoff used by the command line client.
"""

from __future__ import annotations

import html
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from ..auth import RequireIdentity, optional_identity, get_request_context
from ..core import (
    get_logger,
    Settings,
    OAuthFailure,
    ValidationError,
    CONFIGURATION_MISSING,
    MISSING_CODE,
    STATE_MISMATCH,
    TOKEN_EXCHANGE_FAILED,
    PROFILE_FETCH_FAILED,
    get_error_message,
    log_auth_event,
    log_error,
)
from ..models import (
    AuthStatusResponse,
    CliCodeResponse,
    CliTokenRequest,
    CliTokenResponse,
    ErrorResponse,
    Identity,
    SuccessResponse,
)
from .dependencies import Services, get_services

# Create router
router = APIRouter(prefix="/auth", tags=["authentication"])
logger = get_logger(__name__)

_ERROR_TITLES = {
    MISSING_CODE: "Invalid Request",
    STATE_MISMATCH: "Session Expired",
    TOKEN_EXCHANGE_FAILED: "Token Exchange Failed",
    PROFILE_FETCH_FAILED: "GitHub Profile Error",
    CONFIGURATION_MISSING: "Configuration Missing",
}

_ERROR_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8"><title>Auth Error - {app_name}</title>
  <style>body {{ font-family: system-ui; background: #09090b; color: #fafafa; }}</style>
</head>
<body>
  <main>
    <h1>{title}</h1>
    <p>{message}</p>
    {details}
    <nav>
      <a href="{origin}">Return Home</a>
      <a href="{origin}/api/auth/github">Try Again</a>
    </nav>
  </main>
</body>
</html>
"""


def get_origin(request: Request, settings: Settings) -> str:
    """
    Public origin of the application.

    Uses the configured ``app_url`` and falls back to the forwarded or
    direct host of the request.
    """
    if settings.app_url:
        return settings.app_url

    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    proto = request.headers.get("x-forwarded-proto") or "https"
    return f"{proto}://{host}"


def _callback_url(request: Request, settings: Settings) -> str:
    return f"{get_origin(request, settings)}/api/auth/github/callback"


def _error_page(
    request: Request,
    settings: Settings,
    title: str,
    message: str,
    details: Optional[str] = None,
    status_code: int = 400,
) -> HTMLResponse:
    details_html = f"<pre>{html.escape(details)}</pre>" if details else ""
    content = _ERROR_PAGE.format(
        app_name=html.escape(settings.app_name),
        title=html.escape(title),
        message=html.escape(message),
        details=details_html,
        origin=html.escape(get_origin(request, settings), quote=True),
    )
    return HTMLResponse(content=content, status_code=status_code)


def _failure_page(request: Request, settings: Settings, failure: OAuthFailure) -> HTMLResponse:
    return _error_page(
        request,
        settings,
        title=_ERROR_TITLES.get(failure.reason, "Authentication Failed"),
        message=failure.message,
        details=failure.provider_detail,
        status_code=failure.status_code,
    )


@router.get(
    "/github",
    summary="Begin GitHub login",
    description="Issue a CSRF state cookie and redirect to GitHub.",
    response_class=RedirectResponse,
    status_code=307,
)
async def github_login(
    request: Request,
    services: Services = Depends(get_services),
) -> Response:
    """Start the OAuth handshake."""
    settings = services.settings

    try:
        auth_url, state = services.oauth.initiate(_callback_url(request, settings))
    except OAuthFailure as e:
        logger.error("GitHub login is not configured")
        return _failure_page(request, settings, e)

    response = RedirectResponse(url=auth_url, status_code=307)
    response.set_cookie(
        settings.auth.state_cookie_name,
        state,
        max_age=settings.auth.state_ttl,
        path="/",
        secure=settings.auth.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get(
    "/github/callback",
    summary="Finish GitHub login",
    description="Validate the callback, sign the user in and redirect to the dashboard.",
    response_class=RedirectResponse,
)
async def github_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    services: Services = Depends(get_services),
) -> Response:
    """
    Handle the GitHub OAuth callback.

    Every failure renders an error page; no partial login is kept.
    """
    settings = services.settings
    context = get_request_context(request)

    try:
        result = await services.oauth.complete(
            code=code,
            state=state,
            cookie_state=request.cookies.get(settings.auth.state_cookie_name),
            redirect_uri=_callback_url(request, settings),
            ip_address=context.client_ip,
            user_agent=context.user_agent or "Unknown",
        )
    except OAuthFailure as e:
        response = _failure_page(request, settings, e)
    except Exception as e:
        log_error(logger, e, context={"path": request.url.path})
        response = _error_page(
            request,
            settings,
            title="Server Error",
            message="An unexpected error occurred.",
            status_code=500,
        )
    else:
        response = RedirectResponse(url=f"{get_origin(request, settings)}/dashboard", status_code=302)
        response.set_cookie(
            settings.auth.session_cookie_name,
            result.session.token,
            max_age=settings.auth.session_ttl,
            path="/",
            domain=settings.auth.cookie_domain,
            secure=settings.auth.cookie_secure,
            httponly=True,
            samesite="lax",
        )

    response.delete_cookie(settings.auth.state_cookie_name, path="/")
    return response


@router.get(
    "/status",
    response_model=AuthStatusResponse,
    summary="Authentication status",
    description="Report whether the request carries a valid credential.",
)
async def auth_status(
    identity: Optional[Identity] = Depends(optional_identity),
    services: Services = Depends(get_services),
) -> AuthStatusResponse:
    """Get current authentication status."""
    if identity is None:
        return AuthStatusResponse(authenticated=False)

    return AuthStatusResponse(authenticated=True, user=services.users.get(identity.id))


@router.post(
    "/logout",
    response_model=SuccessResponse,
    summary="Logout",
    description="Revoke the session cookie and clear it.",
)
async def logout(
    request: Request,
    response: Response,
    services: Services = Depends(get_services),
) -> SuccessResponse:
    """Logout and revoke the current session."""
    cookie_name = services.settings.auth.session_cookie_name
    token = request.cookies.get(cookie_name)
    if token:
        services.sessions.revoke(token)

    response.delete_cookie(cookie_name, path="/", domain=services.settings.auth.cookie_domain)
    return SuccessResponse()


@router.post(
    "/cli/code",
    response_model=CliCodeResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "API keys cannot mint auth codes"},
    },
    summary="Create CLI auth code",
    description="Mint a single-use code the command line client exchanges for a token.",
)
async def create_cli_code(
    identity: Identity = Depends(RequireIdentity(unrestricted=True)),
    services: Services = Depends(get_services),
) -> CliCodeResponse:
    """Create a single-use auth code for the signed-in user."""
    code = services.auth_codes.create_code(identity.id)
    return CliCodeResponse(code=code, expires_in=services.settings.auth.auth_code_ttl)


@router.post(
    "/cli/token",
    response_model=CliTokenResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid auth code"}},
    summary="Exchange CLI auth code",
    description="Redeem a single-use code for a signed token.",
)
async def exchange_cli_code(
    body: CliTokenRequest,
    services: Services = Depends(get_services),
) -> CliTokenResponse:
    """Exchange an auth code for a signed token."""
    user_id = services.auth_codes.exchange(body.code)
    user = services.users.get(user_id) if user_id else None
    if user is None:
        raise ValidationError(
            get_error_message("invalid_auth_code"),
            error_code="invalid_auth_code",
        )

    token = services.codec.issue_for_user(user)
    log_auth_event(logger, "cli_token_issued", user_id=user.id, success=True)

    return CliTokenResponse(
        token=token,
        expires_in=services.codec.default_ttl,
        user={"id": user.id, "login": user.login, "github_id": user.github_id},
    )
