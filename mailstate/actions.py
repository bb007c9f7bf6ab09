"""Closed set of state transitions.

Every change to AppState is described by an Action: a kind from ActionType
plus a payload whose shape is fixed per kind. Payloads are validated when
the action is built, so a malformed transition is rejected at the call site
and never reaches the store.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mailclient import AccountRecord, EmailRecord
from mailstate.state import ConnectionTestOutcome


class ActionType(str, Enum):
    """Kinds of state transitions accepted by the store."""

    LOAD_ACCOUNTS_START = "load_accounts_start"
    LOAD_ACCOUNTS_SUCCESS = "load_accounts_success"
    LOAD_ACCOUNTS_FAILURE = "load_accounts_failure"
    LOAD_EMAILS_START = "load_emails_start"
    LOAD_EMAILS_SUCCESS = "load_emails_success"
    LOAD_EMAILS_FAILURE = "load_emails_failure"
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_REMOVED = "account_removed"
    EMAIL_UPDATED = "email_updated"
    EMAIL_REMOVED = "email_removed"
    SET_FILTERS = "set_filters"
    CLEAR_FILTERS = "clear_filters"
    SET_PAGINATION = "set_pagination"
    SET_SELECTED_EMAIL = "set_selected_email"
    SET_SELECTED_ACCOUNT = "set_selected_account"
    TEST_START = "test_start"
    TEST_RESULT = "test_result"
    TEST_CLEAR = "test_clear"
    SET_ERROR = "set_error"
    CLEAR_ERROR = "clear_error"
    SET_SYNC_STATUS = "set_sync_status"
    RESET = "reset"


class EmailsLoaded(BaseModel):
    """Payload of LOAD_EMAILS_SUCCESS.

    Attributes:
        emails: Messages of the loaded page.
        page: Page the server returned.
        total: Total number of matching messages reported by the server.
    """

    model_config = ConfigDict(frozen=True)

    emails: tuple[EmailRecord, ...] = ()
    page: int | None = Field(None, ge=1)
    total: int = Field(0, ge=0)


class SyncStatusUpdate(BaseModel):
    """Payload of SET_SYNC_STATUS."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    status: str


class PaginationUpdate(BaseModel):
    """Payload of SET_PAGINATION; omitted fields keep their current value."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    current: int | None = Field(None, ge=1)
    page_size: int | None = Field(None, ge=1)
    total: int | None = Field(None, ge=0)


# Expected payload type per action kind; None means the action carries no payload
_PAYLOAD_TYPES: dict[ActionType, Any] = {
    ActionType.LOAD_ACCOUNTS_START: None,
    ActionType.LOAD_ACCOUNTS_SUCCESS: tuple,
    ActionType.LOAD_ACCOUNTS_FAILURE: str,
    ActionType.LOAD_EMAILS_START: None,
    ActionType.LOAD_EMAILS_SUCCESS: EmailsLoaded,
    ActionType.LOAD_EMAILS_FAILURE: str,
    ActionType.ACCOUNT_ADDED: AccountRecord,
    ActionType.ACCOUNT_UPDATED: AccountRecord,
    ActionType.ACCOUNT_REMOVED: str,
    ActionType.EMAIL_UPDATED: EmailRecord,
    ActionType.EMAIL_REMOVED: str,
    ActionType.SET_FILTERS: dict,
    ActionType.CLEAR_FILTERS: None,
    ActionType.SET_PAGINATION: PaginationUpdate,
    ActionType.SET_SELECTED_EMAIL: (EmailRecord, type(None)),
    ActionType.SET_SELECTED_ACCOUNT: (AccountRecord, type(None)),
    ActionType.TEST_START: str,
    ActionType.TEST_RESULT: ConnectionTestOutcome,
    ActionType.TEST_CLEAR: str,
    ActionType.SET_ERROR: str,
    ActionType.CLEAR_ERROR: None,
    ActionType.SET_SYNC_STATUS: SyncStatusUpdate,
    ActionType.RESET: None,
}


class Action(BaseModel):
    """A single state transition.

    Prefer the constructor helpers below (``load_accounts_success(...)``,
    ``connection_test_started(...)``...) over building actions by hand.

    Attributes:
        type: Transition kind.
        payload: Kind-specific payload.
    """

    model_config = ConfigDict(frozen=True)

    type: ActionType
    payload: Any = None

    @model_validator(mode="after")
    def _check_payload(self) -> "Action":
        expected = _PAYLOAD_TYPES[self.type]
        if expected is None:
            if self.payload is not None:
                raise ValueError(f"{self.type.name} takes no payload")
        elif not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.type.name} payload must be {expected}, got {type(self.payload).__name__}"
            )
        if self.type is ActionType.LOAD_ACCOUNTS_SUCCESS and not all(
            isinstance(item, AccountRecord) for item in self.payload
        ):
            raise ValueError("LOAD_ACCOUNTS_SUCCESS payload must contain AccountRecord items")
        return self


# ===== Constructor helpers =====


def load_accounts_start() -> Action:
    return Action(type=ActionType.LOAD_ACCOUNTS_START)


def load_accounts_success(accounts) -> Action:
    return Action(type=ActionType.LOAD_ACCOUNTS_SUCCESS, payload=tuple(accounts))


def load_accounts_failure(error: str) -> Action:
    return Action(type=ActionType.LOAD_ACCOUNTS_FAILURE, payload=error)


def load_emails_start() -> Action:
    return Action(type=ActionType.LOAD_EMAILS_START)


def load_emails_success(emails, page: int | None = None, total: int = 0) -> Action:
    return Action(
        type=ActionType.LOAD_EMAILS_SUCCESS,
        payload=EmailsLoaded(emails=tuple(emails), page=page, total=total),
    )


def load_emails_failure(error: str) -> Action:
    return Action(type=ActionType.LOAD_EMAILS_FAILURE, payload=error)


def account_added(account: AccountRecord) -> Action:
    return Action(type=ActionType.ACCOUNT_ADDED, payload=account)


def account_updated(account: AccountRecord) -> Action:
    return Action(type=ActionType.ACCOUNT_UPDATED, payload=account)


def account_removed(account_id: str) -> Action:
    return Action(type=ActionType.ACCOUNT_REMOVED, payload=account_id)


def email_updated(email: EmailRecord) -> Action:
    return Action(type=ActionType.EMAIL_UPDATED, payload=email)


def email_removed(email_id: str) -> Action:
    return Action(type=ActionType.EMAIL_REMOVED, payload=email_id)


def set_filters(updates: dict[str, Any]) -> Action:
    """Build SET_FILTERS; ``updates`` must already be validated snake_case filters."""
    return Action(type=ActionType.SET_FILTERS, payload=dict(updates))


def clear_filters() -> Action:
    return Action(type=ActionType.CLEAR_FILTERS)


def set_pagination(**changes: int) -> Action:
    return Action(type=ActionType.SET_PAGINATION, payload=PaginationUpdate(**changes))


def set_selected_email(email: EmailRecord | None) -> Action:
    return Action(type=ActionType.SET_SELECTED_EMAIL, payload=email)


def set_selected_account(account: AccountRecord | None) -> Action:
    return Action(type=ActionType.SET_SELECTED_ACCOUNT, payload=account)


def connection_test_started(account_id: str) -> Action:
    return Action(type=ActionType.TEST_START, payload=account_id)


def connection_test_finished(account_id: str, success: bool, error: str | None = None) -> Action:
    return Action(
        type=ActionType.TEST_RESULT,
        payload=ConnectionTestOutcome(account_id=account_id, success=success, error=error),
    )


def connection_test_cleared(account_id: str) -> Action:
    return Action(type=ActionType.TEST_CLEAR, payload=account_id)


def set_error(error: str) -> Action:
    return Action(type=ActionType.SET_ERROR, payload=error)


def clear_error() -> Action:
    return Action(type=ActionType.CLEAR_ERROR)


def set_sync_status(account_id: str, status: str) -> Action:
    return Action(
        type=ActionType.SET_SYNC_STATUS,
        payload=SyncStatusUpdate(account_id=account_id, status=status),
    )


def reset() -> Action:
    return Action(type=ActionType.RESET)
