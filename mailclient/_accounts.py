"""Email account sub-client for the mailhub backend.

This module provides AsyncAccountsClient for the account endpoints
(/email-accounts/*) together with the account models.

This is an internal module. Import from `mailclient` instead.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BeforeValidator, Field, field_validator

from mailclient._base import AsyncBaseClient, parse_model, parse_models, unwrap
from mailclient.models import IdentifiedModel, WireModel, dump_wire, normalize_identity


class ConnectionStatus(str, Enum):
    """Connectivity state of an account as last reported by the backend."""

    UNKNOWN = "unknown"
    CONNECTED = "connected"
    FAILED = "failed"
    ACTIVE = "active"


# Statuses meaning the backend can currently reach the mail server
REACHABLE_STATUSES = frozenset({ConnectionStatus.ACTIVE, ConnectionStatus.CONNECTED})


def _coerce_status(value: Any) -> Any:
    if value is None:
        return ConnectionStatus.UNKNOWN
    if isinstance(value, str) and value not in ConnectionStatus._value2member_map_:
        return ConnectionStatus.UNKNOWN
    return value


class AuthMethod(str, Enum):
    """Supported IMAP authentication mechanisms."""

    PLAIN = "PLAIN"
    LOGIN = "LOGIN"
    OAUTH2 = "OAUTH2"


class SyncFrequency(str, Enum):
    """How often the backend schedules automatic sync for an account."""

    REALTIME = "realtime"
    FIVE_MINUTES = "5min"
    FIFTEEN_MINUTES = "15min"
    THIRTY_MINUTES = "30min"
    ONE_HOUR = "1hour"
    SIX_HOURS = "6hours"
    TWELVE_HOURS = "12hours"
    DAILY = "24hours"
    MANUAL = "manual"


class ImapConfig(WireModel):
    """IMAP server connection settings.

    Attributes:
        host: IMAP server hostname (e.g., imap.gmail.com).
        port: IMAP port, 993 for implicit TLS.
        secure: Whether to connect over TLS.
    """

    host: str
    port: int = 993
    secure: bool = True


class AuthConfig(WireModel):
    """Authentication settings as echoed by the backend.

    Secret fields are never part of this model; anything the backend might
    send back besides the method and username is discarded on validation.
    """

    method: AuthMethod = AuthMethod.PLAIN
    username: str | None = None


class AuthCredentials(AuthConfig):
    """Authentication settings including secrets, used only for submission.

    Attributes:
        password: Password or app password for PLAIN/LOGIN.
        oauth_token: Access token for OAUTH2.
        oauth_refresh_token: Refresh token for OAUTH2.
    """

    password: str | None = None
    oauth_token: str | None = None
    oauth_refresh_token: str | None = None


class SyncConfig(WireModel):
    """Per-account synchronization settings.

    Attributes:
        enabled: Whether automatic sync is enabled.
        frequency: Automatic sync schedule.
        preserve_flags: Keep IMAP flags when storing messages.
        preserve_dates: Keep original message dates.
        batch_size: Messages fetched per IMAP batch.
        max_emails_per_sync: Upper bound of messages fetched per job.
    """

    enabled: bool = True
    frequency: SyncFrequency = SyncFrequency.FIFTEEN_MINUTES
    preserve_flags: bool = True
    preserve_dates: bool = True
    batch_size: int = 50
    max_emails_per_sync: int = 1000


class AccountRecord(IdentifiedModel):
    """A configured IMAP account as held by the client.

    Attributes:
        id: Canonical account identifier.
        name: Display name.
        email: Account email address.
        imap_config: IMAP server settings.
        auth_config: Authentication method and username (no secrets).
        sync_config: Synchronization settings.
        connection_status: Last known connectivity state.
        last_connection_test: When the backend last tested the account.
        last_error: Last connection error reported by the backend.
    """

    name: str = ""
    email: str = ""
    imap_config: ImapConfig | None = None
    auth_config: AuthConfig | None = None
    sync_config: SyncConfig = Field(default_factory=SyncConfig)
    connection_status: Annotated[ConnectionStatus, BeforeValidator(_coerce_status)] = (
        ConnectionStatus.UNKNOWN
    )
    last_connection_test: datetime | None = None
    last_error: str | None = None

    @property
    def is_reachable(self) -> bool:
        """Whether the last known status says the mail server is reachable."""
        return self.connection_status in REACHABLE_STATUSES

    @property
    def host(self) -> str | None:
        """IMAP host, if configured."""
        return self.imap_config.host if self.imap_config else None

    def merged_with(self, patch: dict[str, Any]) -> "AccountRecord":
        """Return a new record with the camelCase ``patch`` applied on top.

        Used when the backend echoes only the changed fields of an account.
        """
        current = self.model_dump(by_alias=True, mode="json")
        current.update(normalize_identity(patch))
        return AccountRecord.model_validate(current)


class AccountInput(WireModel):
    """Account fields submitted on create or update.

    Attributes:
        name: Display name.
        email: Account email address.
        imap_config: IMAP server settings.
        auth_config: Authentication settings including secrets.
        sync_config: Synchronization settings.
    """

    name: str
    email: str
    imap_config: ImapConfig
    auth_config: AuthCredentials
    sync_config: SyncConfig = Field(default_factory=SyncConfig)


class ConnectionTestResponse(WireModel):
    """Outcome of a backend connection test.

    Attributes:
        success: Whether the backend could authenticate to the mail server.
        error: Failure reason reported by the backend.
        account: Account fields echoed back (possibly partial), id-normalized.
    """

    success: bool
    error: str | None = None
    account: dict[str, Any] | None = None

    @field_validator("account")
    @classmethod
    def _normalize_account(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        return normalize_identity(value) if value is not None else None


def _parse_connection_test(body: Any) -> ConnectionTestResponse:
    payload = unwrap(body)

    # Older backends nest the outcome under connectionTest
    nested = payload.get("connectionTest")
    if isinstance(nested, dict):
        success = bool(nested.get("success"))
        error = nested.get("error")
    else:
        success = bool(payload.get("success"))
        error = payload.get("error")

    if not success and not error:
        error = payload.get("message") or "Connection test failed"

    return parse_model(
        ConnectionTestResponse,
        {
            "success": success,
            "error": error if not success else None,
            "account": payload.get("account") if isinstance(payload.get("account"), dict) else None,
        },
    )


def _account_body(account: AccountInput | dict[str, Any]) -> dict[str, Any]:
    if isinstance(account, AccountInput):
        return dump_wire(account)
    return dict(account)


class AsyncAccountsClient(AsyncBaseClient):
    """Asynchronous client for account endpoints (/email-accounts/*).

    Example:
        async with AsyncMailClient() as client:
            accounts = await client.accounts.get_all()
            result = await client.accounts.test_connection(accounts[0].id)
            print(result.success, result.error)
    """

    _BASE_PATH = "/email-accounts"

    async def get_all(self) -> list[AccountRecord]:
        """List all accounts of the current user.

        Returns:
            Account records in backend order.

        Raises:
            MailClientError: If the request fails or the payload is malformed.
        """
        payload = unwrap(await self._get(self._BASE_PATH))
        return parse_models(AccountRecord, payload.get("accounts"))

    async def get(self, account_id: str) -> AccountRecord:
        """Fetch a single account by id."""
        payload = unwrap(await self._get(f"{self._BASE_PATH}/{account_id}"))
        return parse_model(AccountRecord, payload.get("account"))

    async def create(self, account: AccountInput | dict[str, Any]) -> AccountRecord:
        """Create an account.

        Args:
            account: Account fields including credentials.

        Returns:
            The stored account as echoed by the backend (without secrets).
        """
        payload = unwrap(await self._post(self._BASE_PATH, json=_account_body(account)))
        return parse_model(AccountRecord, payload.get("account"))

    async def update(
        self, account_id: str, account: AccountInput | dict[str, Any]
    ) -> AccountRecord:
        """Update an account.

        Args:
            account_id: Id of the account to update.
            account: Full account input, or a camelCase dict of changed fields.

        Returns:
            The updated account as echoed by the backend.
        """
        payload = unwrap(
            await self._put(f"{self._BASE_PATH}/{account_id}", json=_account_body(account))
        )
        return parse_model(AccountRecord, payload.get("account"))

    async def delete(self, account_id: str) -> None:
        """Delete an account."""
        await self._delete(f"{self._BASE_PATH}/{account_id}")

    async def test_connection(self, account_id: str) -> ConnectionTestResponse:
        """Ask the backend to test connectivity of an account.

        A failed test is reported through ``success=False`` rather than an
        exception; transport and HTTP errors still raise.
        """
        body = await self._post(f"{self._BASE_PATH}/{account_id}/test-connection")
        return _parse_connection_test(body)
