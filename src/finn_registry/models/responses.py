"""
Response models for Finn Registry API endpoints.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .auth import ApiKeyView, LoginRecord, SessionView, User


class AuthStatusResponse(BaseModel):
    """
    Authentication status for the current request.
    """

    authenticated: bool = Field(..., description="Whether the request carried a valid credential")
    user: Optional[User] = Field(None, description="Current user, when authenticated")


class SuccessResponse(BaseModel):
    """
    Generic acknowledgement.
    """

    success: bool = True


class ApiKeyCreateResponse(BaseModel):
    """
    Response for a newly created API key. The plaintext is shown only here.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(..., alias="apiKey", description="Plaintext key, shown once")
    key_record: ApiKeyView = Field(..., alias="keyRecord", description="Stored record")


class ApiKeyListResponse(BaseModel):
    """
    Response for listing the caller's API keys.
    """

    object: Literal["list"] = "list"
    data: List[ApiKeyView] = Field(default_factory=list)


class LoginHistoryResponse(BaseModel):
    """
    Recent login audit entries for the caller.
    """

    object: Literal["list"] = "list"
    data: List[LoginRecord] = Field(default_factory=list)


class SessionListResponse(BaseModel):
    """
    Active sessions of the caller, newest first.
    """

    object: Literal["list"] = "list"
    data: List[SessionView] = Field(default_factory=list)


class SessionRevokeResponse(BaseModel):
    """
    Result of signing out every device.
    """

    success: bool = True
    revoked: int = Field(..., description="Number of sessions deleted", ge=0)


class CliCodeResponse(BaseModel):
    """
    Single-use code handed to the CLI.
    """

    code: str = Field(..., description="Auth code")
    expires_in: int = Field(..., description="Seconds until the code expires", gt=0)


class CliTokenResponse(BaseModel):
    """
    Signed token issued in exchange for an auth code.
    """

    token: str = Field(..., description="Signed token")
    token_type: Literal["Bearer"] = "Bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds", gt=0)
    user: Dict[str, Any] = Field(..., description="Identity claims embedded in the token")


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    model_config = ConfigDict(extra="forbid")

    error: Dict[str, Any] = Field(..., description="Error details")
