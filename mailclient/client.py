"""Main mailhub backend client.

AsyncMailClient provides namespaced access to the backend's resources
through sub-client properties (``client.accounts``, ``client.emails``,
``client.search``, ``client.sync``), all sharing one authenticated HTTP
gateway.

Example:
    Basic usage::

        from mailclient import AsyncMailClient, TokenStore

        tokens = TokenStore(access_token="...", refresh_token="...")
        async with AsyncMailClient(base_url="http://localhost:5000/api", tokens=tokens) as client:
            accounts = await client.accounts.get_all()
            await client.sync.cleanup()
"""

from typing import Any, Callable

from mailclient._accounts import AsyncAccountsClient
from mailclient._emails import AsyncEmailsClient
from mailclient._http import DEFAULT_REFRESH_PATH, AsyncHTTPClient
from mailclient._search import AsyncSearchClient
from mailclient._sync import AsyncSyncClient
from mailclient.auth import TokenStore


class AsyncMailClient:
    """Asynchronous client for the mail-management REST API.

    Attributes:
        base_url: The base URL of the backend API.
        tokens: Token store shared with the HTTP gateway.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000/api",
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: Any = None,
        tokens: TokenStore | None = None,
        refresh_path: str = DEFAULT_REFRESH_PATH,
        on_auth_failure: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: The base URL of the backend API.
            timeout: Request timeout in seconds (default: 30.0).
            retry_enabled: Whether to retry connection errors, timeouts and
                HTTP 502/503/504 with exponential backoff (default: False).
            max_retries: Maximum number of retry attempts (default: 3).
            transport: Custom HTTP transport (e.g., ASGITransport for testing).
            tokens: Bearer tokens; a fresh empty store is used if omitted.
            refresh_path: Path of the token refresh endpoint.
            on_auth_failure: Called after an unrecoverable 401 has cleared
                the token store.
        """
        self.base_url = base_url
        self._http = AsyncHTTPClient(
            base_url=base_url,
            timeout=timeout,
            retry_enabled=retry_enabled,
            max_retries=max_retries,
            transport=transport,
            tokens=tokens,
            refresh_path=refresh_path,
            on_auth_failure=on_auth_failure,
        )

        self._accounts: AsyncAccountsClient | None = None
        self._emails: AsyncEmailsClient | None = None
        self._search: AsyncSearchClient | None = None
        self._sync: AsyncSyncClient | None = None

    async def __aenter__(self) -> "AsyncMailClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._http.close()

    @property
    def tokens(self) -> TokenStore:
        """The token store used for bearer authentication."""
        return self._http.tokens

    def set_auth_failure_handler(self, handler: Callable[[], None] | None) -> None:
        """Replace the hook called after an unrecoverable authentication failure."""
        self._http.on_auth_failure = handler

    @property
    def accounts(self) -> AsyncAccountsClient:
        """Access account endpoints (/email-accounts/*)."""
        if self._accounts is None:
            self._accounts = AsyncAccountsClient(self._http)
        return self._accounts

    @property
    def emails(self) -> AsyncEmailsClient:
        """Access synchronized message endpoints (/emails/*)."""
        if self._emails is None:
            self._emails = AsyncEmailsClient(self._http)
        return self._emails

    @property
    def search(self) -> AsyncSearchClient:
        """Access the full-text search endpoint (/search/search)."""
        if self._search is None:
            self._search = AsyncSearchClient(self._http)
        return self._search

    @property
    def sync(self) -> AsyncSyncClient:
        """Access sync job endpoints (/sync/*)."""
        if self._sync is None:
            self._sync = AsyncSyncClient(self._http)
        return self._sync
