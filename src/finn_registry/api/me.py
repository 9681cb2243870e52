"""
Account API endpoints for Finn Registry.

Routes under ``/me`` act on the caller's own account: API keys, sessions, profile
settings and login history.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from ..auth import RequireIdentity, get_request_context
from ..core import NotFoundError
from ..models import (
    ApiKeyCreateRequest,
    ApiKeyCreateResponse,
    ApiKeyListResponse,
    ApiKeyView,
    ErrorResponse,
    Identity,
    LoginHistoryResponse,
    ProfileSettingsRequest,
    SessionListResponse,
    SessionRevokeResponse,
    SuccessResponse,
    User,
)
from .dependencies import Services, get_services

# Create router
router = APIRouter(
    prefix="/me",
    tags=["account"],
    responses={401: {"model": ErrorResponse, "description": "Unauthorized"}},
)

require_identity = RequireIdentity()

# Credential management is closed to API keys
require_unrestricted = RequireIdentity(unrestricted=True)


@router.get(
    "/api-keys",
    response_model=ApiKeyListResponse,
    summary="List API keys",
    description="List the caller's API keys. Hashes are never returned.",
)
async def list_api_keys(
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
) -> ApiKeyListResponse:
    """List API keys owned by the caller."""
    records = services.api_keys.list_for_user(identity.id)
    return ApiKeyListResponse(data=[record.public_view() for record in records])


@router.post(
    "/api-key",
    response_model=ApiKeyCreateResponse,
    response_model_by_alias=True,
    responses={403: {"model": ErrorResponse, "description": "API keys cannot create keys"}},
    summary="Create API key",
    description="Create an API key. The plaintext key is only returned here.",
)
async def create_api_key(
    body: ApiKeyCreateRequest,
    identity: Identity = Depends(require_unrestricted),
    services: Services = Depends(get_services),
) -> ApiKeyCreateResponse:
    """Create an API key for the caller."""
    plaintext, record = services.api_keys.create(identity.id, body)
    return ApiKeyCreateResponse(api_key=plaintext, key_record=record.public_view())


@router.get(
    "/api-key/{key_id}",
    response_model=ApiKeyView,
    responses={404: {"model": ErrorResponse, "description": "Not Found"}},
    summary="Get API key",
    description="Get one of the caller's API keys. The hash is never returned.",
)
async def get_api_key(
    key_id: str,
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
) -> ApiKeyView:
    return services.api_keys.get(identity.id, key_id).public_view()


@router.delete(
    "/api-key/{key_id}",
    response_model=SuccessResponse,
    responses={
        403: {"model": ErrorResponse, "description": "API keys cannot revoke keys"},
        404: {"model": ErrorResponse, "description": "Not Found"},
    },
    summary="Revoke API key",
    description="Revoke one of the caller's API keys.",
)
async def revoke_api_key(
    key_id: str,
    identity: Identity = Depends(require_unrestricted),
    services: Services = Depends(get_services),
) -> SuccessResponse:
    """Revoke an API key owned by the caller."""
    services.api_keys.revoke(identity.id, key_id)
    return SuccessResponse()


@router.patch(
    "/settings",
    response_model=User,
    responses={404: {"model": ErrorResponse, "description": "Not Found"}},
    summary="Update profile settings",
    description="Edit name, email, bio, location and blog. Omitted fields are left as they are.",
)
async def update_settings(
    body: ProfileSettingsRequest,
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
) -> User:
    """Update the caller's profile settings."""
    return services.users.update_settings(identity.id, body)


@router.get(
    "/logins",
    response_model=LoginHistoryResponse,
    summary="Login history",
    description="The caller's ten most recent logins.",
)
async def login_history(
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
) -> LoginHistoryResponse:
    """List recent logins of the caller."""
    if services.users.get(identity.id) is None:
        raise NotFoundError("User not found")

    return LoginHistoryResponse(data=services.store.list_logins(identity.id, limit=10))


@router.get(
    "/sessions",
    response_model=SessionListResponse,
    summary="Active sessions",
    description="The caller's unexpired sessions, newest first. Tokens are never returned.",
)
async def list_sessions(
    request: Request,
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
) -> SessionListResponse:
    """List the devices the caller is signed in on."""
    credential = get_request_context(request).credential
    sessions = services.sessions.list_user_sessions(identity.id)
    return SessionListResponse(data=[s.public_view(current=s.token == credential) for s in sessions])


@router.delete(
    "/sessions",
    response_model=SessionRevokeResponse,
    responses={403: {"model": ErrorResponse, "description": "API keys cannot revoke sessions"}},
    summary="Sign out everywhere",
    description="Revoke every session of the caller, including the current one.",
)
async def revoke_sessions(
    response: Response,
    identity: Identity = Depends(require_unrestricted),
    services: Services = Depends(get_services),
) -> SessionRevokeResponse:
    """
    Revoke all sessions of the caller.

    Signed tokens already handed to the CLI stay valid until they expire.
    """
    revoked = services.sessions.revoke_user_sessions(identity.id)

    auth_config = services.settings.auth
    response.delete_cookie(auth_config.session_cookie_name, path="/", domain=auth_config.cookie_domain)
    return SessionRevokeResponse(revoked=revoked)
