"""Internal HTTP handling for the mailhub client.

This module provides the request gateway used by all service sub-clients.
It handles:
- Making authenticated HTTP requests (bearer token per call)
- Exactly one token refresh-and-retry per request rejected with 401
- Response parsing and mapping of error statuses to exceptions
- Retry of transient failures with exponential backoff

This is an internal module and should not be imported directly by users.
"""

import asyncio
import logging
from typing import Any, Callable, Literal

import httpx

from mailclient.auth import TokenStore
from mailclient.exceptions import (
    APIError,
    AuthenticationError,
    ConflictError,
    ConnectionError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    TimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# HTTP methods supported by the client
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

# Status codes that trigger automatic retry (when retry is enabled)
RETRYABLE_STATUS_CODES = {502, 503, 504}

# Default backoff settings for retry logic
DEFAULT_RETRY_BACKOFF_BASE = 0.5  # seconds
DEFAULT_RETRY_BACKOFF_MAX = 30.0  # seconds

DEFAULT_REFRESH_PATH = "/auth/refresh-token"


def _parse_error_response(response: httpx.Response) -> tuple[str, str | None, dict | None]:
    """Extract message, type and details from an error response.

    The backend answers errors as ``{"success": false, "message": ...}``,
    optionally with an ``errors`` list from request validation. ``error``
    and ``detail`` keys are understood as well. Falls back to the raw body
    text when the body is not JSON.

    Args:
        response: The HTTP response to parse.

    Returns:
        A tuple of (message, error_type, details).
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            return text, None, None
        return f"HTTP {response.status_code} error", None, None

    if not isinstance(body, dict):
        return str(body), None, None

    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        messages = [
            f"{err.get('param') or err.get('path', 'field')}: {err.get('msg', 'invalid')}"
            if isinstance(err, dict)
            else str(err)
            for err in errors
        ]
        prefix = body.get("message")
        joined = "; ".join(messages)
        return (f"{prefix}: {joined}" if prefix else joined), "validation_error", {"errors": errors}

    if isinstance(body.get("message"), str):
        return body["message"], body.get("type"), body.get("details")

    if isinstance(body.get("error"), str):
        return body["error"], body.get("type"), body.get("details")

    detail = body.get("detail")
    if isinstance(detail, str):
        return detail, body.get("type"), body.get("details")
    if isinstance(detail, dict):
        return detail.get("message", str(detail)), detail.get("type"), detail

    return str(body), None, None


def _raise_for_status(response: httpx.Response) -> None:
    """Raise an appropriate exception for error status codes.

    Args:
        response: The HTTP response to check.

    Raises:
        ValidationError: For HTTP 400 and 422 responses.
        AuthenticationError: For HTTP 401 responses.
        NotFoundError: For HTTP 404 responses.
        ConflictError: For HTTP 409 responses.
        ServerError: For HTTP 5xx responses.
        APIError: For other HTTP 4xx responses.
    """
    if response.is_success:
        return

    message, error_type, details = _parse_error_response(response)
    status_code = response.status_code

    try:
        response_body = response.json()
    except ValueError:
        response_body = response.text

    if status_code in (400, 422):
        raise ValidationError(
            message=message,
            status_code=status_code,
            details=details,
            response_body=response_body,
        )
    if status_code == 401:
        raise AuthenticationError(
            message=message,
            details=details,
            response_body=response_body,
        )
    if status_code == 404:
        raise NotFoundError(message=message, details=details, response_body=response_body)
    if status_code == 409:
        raise ConflictError(message=message, details=details, response_body=response_body)
    if status_code >= 500:
        raise ServerError(
            message=message,
            status_code=status_code,
            details=details,
            response_body=response_body,
        )
    raise APIError(
        message=message,
        status_code=status_code,
        error_type=error_type,
        details=details,
        response_body=response_body,
    )


def _calculate_backoff(attempt: int, base: float = DEFAULT_RETRY_BACKOFF_BASE) -> float:
    """Exponential backoff delay: base * 2^attempt, capped at DEFAULT_RETRY_BACKOFF_MAX.

    Args:
        attempt: The retry attempt number (0-indexed).
        base: Base delay in seconds.

    Returns:
        The delay in seconds before the next retry.
    """
    delay = base * (2 ** attempt)
    return min(delay, DEFAULT_RETRY_BACKOFF_MAX)


class AsyncHTTPClient:
    """Asynchronous request gateway for the mail-management backend.

    Wraps httpx.AsyncClient with bearer authentication, the one-shot
    refresh protocol, error mapping and optional retry.

    Attributes:
        base_url: The base URL for all API requests.
        timeout: Request timeout in seconds.
        retry_enabled: Whether to retry on transient failures.
        max_retries: Maximum number of retry attempts.
        tokens: The shared token store.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
        tokens: TokenStore | None = None,
        refresh_path: str = DEFAULT_REFRESH_PATH,
        on_auth_failure: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: The base URL for all API requests.
            timeout: Request timeout in seconds.
            retry_enabled: Whether to retry on transient failures.
            max_retries: Maximum number of retry attempts.
            transport: Custom transport (e.g., ASGITransport for testing).
            tokens: Token store to read and refresh bearer tokens from.
            refresh_path: Path of the token refresh endpoint.
            on_auth_failure: Called after local auth state has been cleared
                because the session could not be recovered.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_enabled = retry_enabled
        self.max_retries = max_retries
        self.tokens = tokens if tokens is not None else TokenStore()
        self.refresh_path = refresh_path
        self.on_auth_failure = on_auth_failure

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: HttpMethod,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated request and return the parsed JSON body.

        A 401 response triggers one refresh of the access token followed by
        one retry of the original request. If the refresh fails, or the
        retry is rejected again, local auth state is cleared, the
        ``on_auth_failure`` hook is called and AuthenticationError raised.

        Args:
            method: The HTTP method (GET, POST, etc.).
            path: The URL path (appended to base_url).
            params: Query parameters; None values are dropped.
            json: JSON body to send with the request.

        Returns:
            The parsed JSON response body, or None for empty responses.

        Raises:
            ConnectionError: If the connection fails.
            TimeoutError: If the request times out.
            AuthenticationError: If the session cannot be recovered.
            APIError: If the server returns another error response.
            MalformedResponseError: If a successful response is not JSON.
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        response = await self._send(method, path, params=params, json=json)

        if response.status_code == 401:
            logger.debug(f"{method} {path} rejected with 401, refreshing token")
            if not await self._refresh_tokens():
                self._fail_authentication(response)
            response = await self._send(method, path, params=params, json=json)
            if response.status_code == 401:
                self._fail_authentication(response)

        _raise_for_status(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                message=f"{method} {path} returned a body that is not JSON",
                response_body=response.text,
            ) from e

    async def _send(
        self,
        method: HttpMethod,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one logical request, retrying transient failures if enabled."""
        url = f"{self.base_url}{path}"
        attempts = self.max_retries + 1 if self.retry_enabled else 1

        for attempt in range(attempts):
            is_last = attempt >= attempts - 1
            try:
                response = await self._client.request(
                    method=method,
                    url=path,
                    params=params,
                    json=json,
                    headers=self.tokens.authorization_header(),
                )
            except httpx.TimeoutException as e:
                if not self.retry_enabled or is_last:
                    raise TimeoutError(
                        message=f"Request to {url} timed out",
                        timeout=self.timeout,
                        url=url,
                    ) from e
            except httpx.ConnectError as e:
                if not self.retry_enabled or is_last:
                    raise ConnectionError(
                        message=f"Failed to connect to {url}",
                        url=url,
                        cause=e,
                    ) from e
            except httpx.TransportError as e:
                # Read/write and protocol failures are not retried
                raise ConnectionError(
                    message=f"Request to {url} failed: {e}",
                    url=url,
                    cause=e,
                ) from e
            else:
                if (
                    self.retry_enabled
                    and response.status_code in RETRYABLE_STATUS_CODES
                    and not is_last
                ):
                    logger.debug(f"{method} {path} returned {response.status_code}, retrying")
                else:
                    return response

            await asyncio.sleep(_calculate_backoff(attempt))

        raise RuntimeError("Unexpected error in request retry loop")

    async def _refresh_tokens(self) -> bool:
        """Exchange the refresh token for a new access token.

        Returns:
            True if a new access token was stored, False otherwise.
        """
        refresh_token = self.tokens.refresh_token
        if not refresh_token:
            return False

        try:
            response = await self._client.post(
                self.refresh_path,
                json={"refreshToken": refresh_token},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Token refresh request failed: {e}")
            return False

        if not response.is_success:
            logger.warning(f"Token refresh rejected with HTTP {response.status_code}")
            return False

        try:
            body = response.json()
        except ValueError:
            return False

        data = body.get("data", body) if isinstance(body, dict) else {}
        token = data.get("token") or data.get("accessToken")
        if not token:
            return False

        self.tokens.update(token, data.get("refreshToken"))
        return True

    def _fail_authentication(self, response: httpx.Response) -> None:
        """Clear local auth state, notify the owner and raise."""
        message, _, details = _parse_error_response(response)
        self.tokens.clear()
        logger.warning(f"Authentication could not be recovered: {message}")
        if self.on_auth_failure is not None:
            self.on_auth_failure()
        raise AuthenticationError(message=message, details=details)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make an async GET request."""
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an async POST request."""
        return await self.request("POST", path, params=params, json=json)

    async def put(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an async PUT request."""
        return await self.request("PUT", path, params=params, json=json)

    async def delete(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make an async DELETE request."""
        return await self.request("DELETE", path, params=params)
