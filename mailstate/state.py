"""Application state snapshot models.

AppState is the single source of truth read by the view layer. Every model
here is frozen: a transition never edits a snapshot, it builds a new one,
so a reader holding a snapshot always sees a complete and consistent state
and change detection can rely on identity (``old is not new``).

The per-account maps of AppState are read-only mappings; reducers build a
new mapping for every change.
"""

from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from mailclient import AccountRecord, EmailRecord


def read_only(mapping: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    """Copy ``mapping`` into a read-only view."""
    return MappingProxyType(dict(mapping or {}))


class ConnectionTestOutcome(BaseModel):
    """Result of the most recent connection test of one account.

    Attributes:
        account_id: The tested account.
        success: Whether the backend could authenticate.
        error: Failure reason shown to the user, if any.
    """

    model_config = ConfigDict(frozen=True)

    account_id: str
    success: bool
    error: str | None = None


class ConnectionDisplay(str, Enum):
    """Lifecycle of an account's connection test as presented to the user."""

    IDLE = "idle"
    TESTING = "testing"
    TESTED = "tested"


class PaginationState(BaseModel):
    """Pagination of the visible email list.

    ``total`` is only ever set from a server response.

    Attributes:
        current: 1-based current page.
        page_size: Messages per page.
        total: Total number of messages reported by the server.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    current: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1)
    total: int = Field(0, ge=0)


class SearchFilters(BaseModel):
    """Named filters applied to email listing and search.

    Wire names are camelCase, with ``from_address`` sent as ``from`` and
    ``search_query`` as ``search``. Unknown filter names are rejected.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    account_id: str | None = None
    folder: str | None = None
    from_address: str | None = Field(None, alias="from")
    to: str | None = None
    subject: str | None = None
    date_from: datetime | date | None = None
    date_to: datetime | date | None = None
    has_attachments: bool | None = None
    is_read: bool | None = None
    is_flagged: bool | None = None
    search_query: str | None = Field(None, alias="search")


class AppState(BaseModel):
    """Immutable snapshot of everything the client knows.

    Attributes:
        accounts: Configured accounts in backend order.
        emails: Messages of the visible page.
        selected_email: Message currently opened, if any.
        selected_account: Account currently selected, if any.
        is_loading: Whether a list load is in flight.
        error: Last error message for ambient display.
        pagination: Pagination of ``emails``.
        filters: Active listing/search filters.
        testing_in_progress: Account id -> connection test in flight.
        test_results: Account id -> latest connection test outcome.
        sync_status: Account id -> last sync orchestration status.
    """

    model_config = ConfigDict(frozen=True)

    accounts: tuple[AccountRecord, ...] = ()
    emails: tuple[EmailRecord, ...] = ()
    selected_email: EmailRecord | None = None
    selected_account: AccountRecord | None = None
    is_loading: bool = False
    error: str | None = None
    pagination: PaginationState = Field(default_factory=PaginationState)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    testing_in_progress: Mapping[str, bool] = Field(default_factory=read_only)
    test_results: Mapping[str, ConnectionTestOutcome] = Field(default_factory=read_only)
    sync_status: Mapping[str, str] = Field(default_factory=read_only)

    @field_validator("testing_in_progress", "test_results", "sync_status")
    @classmethod
    def freeze_maps(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        """Store per-account maps as read-only views."""
        return read_only(v)

    @field_serializer("testing_in_progress", "test_results", "sync_status")
    def dump_maps(self, v: Mapping[str, Any]) -> dict[str, Any]:
        return dict(v)

    def find_account(self, account_id: str) -> AccountRecord | None:
        """Return the account with ``account_id``, or None."""
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def find_email(self, email_id: str) -> EmailRecord | None:
        """Return the visible message with ``email_id``, or None."""
        for email in self.emails:
            if email.id == email_id:
                return email
        return None

    def is_testing(self, account_id: str) -> bool:
        return self.testing_in_progress.get(account_id, False)

    def connection_display(self, account_id: str) -> ConnectionDisplay:
        """Lifecycle state of the account's connection test.

        An in-flight test always wins over a stale result for the same id.
        """
        if self.is_testing(account_id):
            return ConnectionDisplay.TESTING
        if account_id in self.test_results:
            return ConnectionDisplay.TESTED
        return ConnectionDisplay.IDLE
