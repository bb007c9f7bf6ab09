"""mailhub backend client library.

A typed asynchronous client for the mail-management REST API: IMAP
account management, connection tests, synchronized message listing,
full-text search and sync jobs.

Example:
    Asynchronous usage::

        from mailclient import AsyncMailClient

        async with AsyncMailClient(base_url="http://localhost:5000/api") as client:
            accounts = await client.accounts.get_all()
            result = await client.accounts.test_connection(accounts[0].id)

Exports:
    AsyncMailClient: Asynchronous client for the backend REST API.
    TokenStore: Bearer token holder shared with the HTTP gateway.

    Exceptions:
        MailClientError: Base exception for all client errors.
        ConnectionError: Failed to connect to the server.
        TimeoutError: Request timed out.
        MalformedResponseError: Response body had an unexpected shape.
        APIError: Server returned an error response.
        AuthenticationError: Session could not be recovered (HTTP 401).
        ValidationError: Request validation failed (HTTP 400/422).
        NotFoundError: Resource not found (HTTP 404).
        ConflictError: State conflict (HTTP 409).
        ServerError: Server-side error (HTTP 5xx).
"""

from mailclient._accounts import (
    REACHABLE_STATUSES,
    AccountInput,
    AccountRecord,
    AsyncAccountsClient,
    AuthConfig,
    AuthCredentials,
    AuthMethod,
    ConnectionStatus,
    ConnectionTestResponse,
    ImapConfig,
    SyncConfig,
    SyncFrequency,
)
from mailclient._emails import AsyncEmailsClient, EmailListResponse, EmailPage, EmailRecord
from mailclient._search import AsyncSearchClient, SearchResponse
from mailclient._sync import (
    DEFAULT_SYNC_FOLDERS,
    AsyncSyncClient,
    SyncOptions,
    SyncStartRequest,
    SyncStartResponse,
)
from mailclient.auth import TokenStore
from mailclient.client import AsyncMailClient
from mailclient.exceptions import (
    APIError,
    AuthenticationError,
    ConflictError,
    ConnectionError,
    MailClientError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    TimeoutError,
    ValidationError,
)
from mailclient.models import ActionResponse

__all__ = [
    # Main client
    "AsyncMailClient",
    "TokenStore",
    # Sub-clients
    "AsyncAccountsClient",
    "AsyncEmailsClient",
    "AsyncSearchClient",
    "AsyncSyncClient",
    # Account models
    "AccountInput",
    "AccountRecord",
    "AuthConfig",
    "AuthCredentials",
    "AuthMethod",
    "ConnectionStatus",
    "ConnectionTestResponse",
    "ImapConfig",
    "REACHABLE_STATUSES",
    "SyncConfig",
    "SyncFrequency",
    # Email and search models
    "EmailListResponse",
    "EmailPage",
    "EmailRecord",
    "SearchResponse",
    # Sync models
    "DEFAULT_SYNC_FOLDERS",
    "SyncOptions",
    "SyncStartRequest",
    "SyncStartResponse",
    "ActionResponse",
    # Exceptions
    "MailClientError",
    "ConnectionError",
    "TimeoutError",
    "MalformedResponseError",
    "APIError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
]
