"""Result envelopes returned by application operations.

Operations never raise client errors at the caller; they return one of the
models below with ``success`` and, on failure, ``error`` set.

A session that could not be recovered is reported with ``session_expired``;
by then the store has been reset.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from mailclient import AccountRecord, EmailRecord

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."


class OperationResult(BaseModel):
    """Base envelope.

    Attributes:
        success: Whether the operation succeeded.
        error: Failure reason for display, if any.
        message: Informational message, if any.
        session_expired: The backend rejected the session and it could
            not be refreshed.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    error: str | None = None
    message: str | None = None
    session_expired: bool = False


class AccountResult(OperationResult):
    account: AccountRecord | None = None


class AccountListResult(OperationResult):
    accounts: tuple[AccountRecord, ...] = ()


class EmailResult(OperationResult):
    email: EmailRecord | None = None


class EmailListResult(OperationResult):
    emails: tuple[EmailRecord, ...] = ()
    total: int = 0


class SearchResult(OperationResult):
    results: tuple[EmailRecord, ...] = ()
    total_count: int = 0


class ConnectionTestResult(OperationResult):
    """Outcome of one connection test.

    Attributes:
        account_id: The tested account.
        account: The account record after merging what the backend echoed.
    """

    account_id: str
    account: AccountRecord | None = None


class BulkTestResult(OperationResult):
    """Tally of a sequential test of every account.

    Attributes:
        successful: Number of accounts that passed.
        total: Number of accounts tested.
        results: Per-account outcomes in list order.
    """

    successful: int = 0
    total: int = 0
    results: tuple[ConnectionTestResult, ...] = ()


class SyncOutcome(str, Enum):
    """Terminal state of one sync orchestration."""

    NO_ACCOUNTS = "no_accounts"
    NO_REACHABLE_ACCOUNT = "no_reachable_account"
    STARTED = "started"
    START_FAILED = "start_failed"
    SESSION_EXPIRED = "session_expired"


class SyncResult(OperationResult):
    """Outcome of a sync orchestration.

    Attributes:
        outcome: Terminal state reached.
        account_id: The account the job was started for, if one was selected.
        job_id: Backend job id, when reported.
        failures: Account id -> failure reason for every account rejected
            during the scan.
        emails_reloaded: Whether the email list was reloaded after start.
    """

    outcome: SyncOutcome
    account_id: str | None = None
    job_id: str | None = None
    failures: dict[str, str] = Field(default_factory=dict)
    emails_reloaded: bool = False
