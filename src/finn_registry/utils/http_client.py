"""
HTTP client utilities for Finn Registry.

This module provides a configured HTTP client with timeout handling and
request/response logging for calls to the identity provider.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import httpx
from httpx import Response

from ..core import (
    get_logger,
    get_settings,
    UpstreamError,
    TimeoutError,
    log_api_call,
)
from ..core.config import GitHubConfig


class HTTPClient:
    """HTTP client with explicit timeouts and call logging.

    Failed calls are not retried; a transport failure surfaces as
    ``UpstreamError`` and a timeout as ``TimeoutError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = get_settings()
        self.logger = get_logger(__name__)

        # Client configuration
        self.base_url = base_url
        self.timeout = timeout or self.settings.github.timeout

        # Default headers
        default_headers = {
            "User-Agent": f"{self.settings.app_name}/{self.settings.app_version}",
            "Accept": "application/json",
        }
        if headers:
            default_headers.update(headers)

        # Create HTTP client
        client_kwargs: Dict[str, Any] = {
            "timeout": httpx.Timeout(self.timeout),
            "headers": default_headers,
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        if transport is not None:
            client_kwargs["transport"] = transport

        self.client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Response:
        """
        Make an HTTP request.

        Args:
            method: HTTP method
            url: Request URL
            headers: Additional headers
            params: Query parameters
            json: JSON body

        Returns:
            HTTP response, whatever its status code

        Raises:
            TimeoutError: If the call exceeds the configured timeout
            UpstreamError: If the call fails at the transport level
        """
        start_time = time.time()
        try:
            response = await self.client.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json,
            )
        except httpx.TimeoutException as e:
            self.logger.warning("Request timeout", method=method, url=url)
            raise TimeoutError(
                f"Request timed out after {self.timeout}s",
                details={"url": url},
            ) from e
        except httpx.RequestError as e:
            self.logger.warning("Request error", method=method, url=url, error=str(e))
            raise UpstreamError(
                f"Request failed: {type(e).__name__}",
                error_code="upstream_error",
                details={"url": url},
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        log_api_call(
            self.logger,
            method=method,
            url=str(response.request.url),
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return response

    async def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Response:
        """Make GET request."""
        return await self.request("GET", url, headers=headers, params=params)

    async def post(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Response:
        """Make POST request."""
        return await self.request("POST", url, headers=headers, json=json)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()


class GitHubHTTPClient(HTTPClient):
    """HTTP client configured for the GitHub REST API and OAuth endpoints."""

    def __init__(
        self,
        config: Optional[GitHubConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or get_settings().github

        super().__init__(
            base_url=config.api_base_url,
            timeout=config.timeout,
            headers={
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
            transport=transport,
        )
