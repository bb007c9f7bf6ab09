"""Exception hierarchy for the mailhub backend client.

Every exception raised by the client library derives from MailClientError,
so callers can catch a single base class at the boundary where errors are
turned into result envelopes.

Exception Hierarchy:
    MailClientError (base)
    ├── ConnectionError - Network/connection failures
    ├── TimeoutError - Request timeout
    ├── MalformedResponseError - Response body did not match the expected shape
    └── APIError - Server returned an error response
        ├── AuthenticationError (HTTP 401, after the refresh attempt)
        ├── ValidationError (HTTP 400/422)
        ├── NotFoundError (HTTP 404)
        ├── ConflictError (HTTP 409)
        └── ServerError (HTTP 5xx)

Example:
    Catching all client errors::

        try:
            accounts = await client.accounts.get_all()
        except MailClientError as e:
            print(f"Could not load accounts: {e.message}")
"""

from typing import Any


class MailClientError(Exception):
    """Base exception for all client errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ConnectionError(MailClientError):
    """Failed to connect to the backend.

    Attributes:
        message: Human-readable error description.
        url: The URL that failed to connect.
        cause: The underlying transport exception.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.url = url
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} (url: {self.url})"
        return self.message


class TimeoutError(MailClientError):
    """Request timed out.

    Attributes:
        message: Human-readable error description.
        timeout: The timeout value in seconds.
        url: The URL that timed out.
    """

    def __init__(
        self,
        message: str,
        timeout: float | None = None,
        url: str | None = None,
    ) -> None:
        self.timeout = timeout
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        if self.timeout is not None:
            return f"{self.message} (timeout: {self.timeout}s)"
        return self.message


class MalformedResponseError(MailClientError):
    """The backend answered successfully but the body had an unexpected shape.

    Attributes:
        message: Human-readable error description.
        response_body: The body that failed to validate.
    """

    def __init__(self, message: str, response_body: Any = None) -> None:
        self.response_body = response_body
        super().__init__(message)


class APIError(MailClientError):
    """Server returned an error response.

    Base class for all HTTP-level errors (4xx or 5xx).

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the server.
        error_type: Error type/code from the response body (if available).
        details: Additional error details from the response (if available).
        response_body: Raw response body for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        error_type: str | None = None,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        self.response_body = response_body
        super().__init__(message)

    def __str__(self) -> str:
        if self.error_type:
            return f"[HTTP {self.status_code}] [{self.error_type}] {self.message}"
        return f"[HTTP {self.status_code}] {self.message}"


class AuthenticationError(APIError):
    """Authentication failed and could not be recovered (HTTP 401).

    Raised after the single token refresh attempt has failed, or when the
    retried request is rejected again. By the time this is raised the
    local token store has already been cleared.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_type="authentication_error",
            details=details,
            response_body=response_body,
        )


class ValidationError(APIError):
    """Request validation failed (HTTP 400 or 422).

    The details attribute typically contains field-level validation errors
    as reported by the backend.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 422,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_type="validation_error",
            details=details,
            response_body=response_body,
        )


class NotFoundError(APIError):
    """Resource not found (HTTP 404).

    Usually an account or email id that the backend no longer knows.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=404,
            error_type="not_found",
            details=details,
            response_body=response_body,
        )


class ConflictError(APIError):
    """State conflict (HTTP 409).

    The backend reports this when an account with the same address already
    exists, or when a sync job is already running for the account.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_type="conflict",
            details=details,
            response_body=response_body,
        )


class ServerError(APIError):
    """Server-side error (HTTP 5xx).

    If retry logic is enabled, 502/503/504 are retried before this is raised.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_type="server_error",
            details=details,
            response_body=response_body,
        )
