"""Sync orchestration across several accounts.

SyncOrchestrator picks one account to synchronize and starts a backend sync
job for it. One run goes through these phases:

1. Scanning: accounts are tried in list order. An account whose cached
   status is ``active`` is taken as is; every other account gets a
   connection test, and the first one that passes is taken after the
   account list has been refreshed. Failing accounts are recorded and
   skipped.
2. Selected: stale jobs are cleaned up (best effort), then the account list
   is polled with exponential backoff until the backend reports the
   selected account as reachable, or until ``confirm_timeout`` elapses.
   The account is re-resolved from the refreshed list.
3. Starting: a full sync of the standard folders is requested with the
   account's own sync options. Once the job has started the email list is
   reloaded after ``reload_delay`` seconds.

A session the backend rejects for good ends the run at once with
SESSION_EXPIRED; the store has already been reset by then.

Every run ends in one of the SyncOutcome states. Nothing is retried
automatically.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from mailclient import (
    DEFAULT_SYNC_FOLDERS,
    AccountRecord,
    AsyncMailClient,
    AuthenticationError,
    ConnectionStatus,
    MailClientError,
    SyncOptions,
    SyncStartRequest,
    SyncStartResponse,
)
from mailstate import actions
from mailstate.config import Settings
from mailstate.connection_tests import ConnectionTester
from mailstate.results import (
    SESSION_EXPIRED_MESSAGE,
    AccountListResult,
    EmailListResult,
    SyncOutcome,
    SyncResult,
)
from mailstate.store import Store

logger = logging.getLogger(__name__)

# Per-account values recorded in AppState.sync_status
SYNC_STATUS_SYNCING = "syncing"
SYNC_STATUS_STARTED = "started"
SYNC_STATUS_FAILED = "failed"

NO_ACCOUNTS_MESSAGE = "No email accounts configured. Add an email account before syncing."
NO_REACHABLE_ACCOUNT_MESSAGE = (
    "None of your email accounts could be reached. Check the account settings and try again."
)
START_FAILED_MESSAGE = "Failed to start email sync"


class _SessionExpired(Exception):
    """The backend rejected the session during orchestration."""


class SyncOrchestrator:
    """Selects a reachable account and starts a sync job for it.

    Args:
        store: Application store.
        client: Backend client.
        tester: Connection-test coordinator sharing the same store.
        settings: Timing configuration.
        refresh_accounts: Reloads the account list into the store.
        reload_emails: Reloads the visible email list into the store.
        sleep: Awaitable sleep, replaceable in tests.
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        store: Store,
        client: AsyncMailClient,
        tester: ConnectionTester,
        settings: Settings,
        refresh_accounts: Callable[[], Awaitable[AccountListResult]],
        reload_emails: Callable[[], Awaitable[EmailListResult]],
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._client = client
        self._tester = tester
        self._settings = settings
        self._refresh_accounts = refresh_accounts
        self._reload_emails = reload_emails
        self._sleep = sleep
        self._clock = clock

    async def start_sync(self) -> SyncResult:
        """Run one orchestration.

        Returns:
            The terminal outcome with the per-account scan failures.
        """
        accounts = self._store.state.accounts
        if not accounts:
            logger.warning("Sync requested but no email accounts are configured")
            return SyncResult(
                success=False, outcome=SyncOutcome.NO_ACCOUNTS, error=NO_ACCOUNTS_MESSAGE
            )

        failures: dict[str, str] = {}
        try:
            return await self._run(accounts, failures)
        except _SessionExpired:
            logger.warning("Session expired during sync orchestration, stopping")
            self._store.dispatch(actions.set_error(SESSION_EXPIRED_MESSAGE))
            return SyncResult(
                success=False,
                outcome=SyncOutcome.SESSION_EXPIRED,
                error=SESSION_EXPIRED_MESSAGE,
                failures=failures,
                session_expired=True,
            )

    async def _run(
        self, accounts: tuple[AccountRecord, ...], failures: dict[str, str]
    ) -> SyncResult:
        # Scanning
        selected = await self._scan(accounts, failures)
        if selected is None:
            logger.warning(f"No reachable account among {len(accounts)} configured")
            self._store.dispatch(actions.set_error(NO_REACHABLE_ACCOUNT_MESSAGE))
            return SyncResult(
                success=False,
                outcome=SyncOutcome.NO_REACHABLE_ACCOUNT,
                error=NO_REACHABLE_ACCOUNT_MESSAGE,
                failures=failures,
            )

        account_id = selected.id
        logger.info(f"Selected account {account_id} ({selected.email}) for sync")
        self._store.dispatch(actions.set_sync_status(account_id, SYNC_STATUS_SYNCING))

        # Selected
        await self._cleanup()
        account = await self._confirm(account_id)
        if account is None:
            return self._start_failed(
                account_id, f"Account {selected.name or account_id} is no longer available", failures
            )

        # Starting
        request = build_start_request(account)
        try:
            response = await self._client.sync.start(request)
        except AuthenticationError as e:
            raise _SessionExpired from e
        except MailClientError as e:
            response = SyncStartResponse(success=False, message=e.message)

        if not response.success:
            return self._start_failed(account.id, response.message or START_FAILED_MESSAGE, failures)

        self._store.dispatch(actions.set_sync_status(account.id, SYNC_STATUS_STARTED))
        logger.info(f"Sync job started for account {account.id} (job {response.job_id})")

        await self._sleep(self._settings.reload_delay)
        reloaded = await self._reload_emails()

        return SyncResult(
            success=True,
            outcome=SyncOutcome.STARTED,
            message=response.message or f"Email sync started for {account.name or account.email}",
            account_id=account.id,
            job_id=response.job_id,
            failures=failures,
            emails_reloaded=reloaded.success,
        )

    async def _scan(
        self, accounts: tuple[AccountRecord, ...], failures: dict[str, str]
    ) -> AccountRecord | None:
        for account in accounts:
            if account.connection_status is ConnectionStatus.ACTIVE:
                logger.info(f"Account {account.id} is active, skipping connection test")
                return account

            result = await self._tester.test_connection(account)
            if result.session_expired:
                raise _SessionExpired
            if result.success:
                # the refreshed status may still lag; _confirm waits for it
                if (await self._refresh_accounts()).session_expired:
                    raise _SessionExpired
                refreshed = self._store.state.find_account(account.id)
                return refreshed or result.account or account

            failures[account.id] = result.error or "Connection test failed"
            logger.info(f"Account {account.id} not reachable, trying next: {failures[account.id]}")

        return None

    async def _cleanup(self) -> None:
        try:
            await self._client.sync.cleanup()
        except AuthenticationError as e:
            raise _SessionExpired from e
        except MailClientError as e:
            logger.warning(f"Sync job cleanup failed, continuing: {e.message}")

    async def _confirm(self, account_id: str) -> AccountRecord | None:
        """Poll the account list until ``account_id`` is reported reachable.

        Returns:
            The freshest known record; None if a successful refresh no
            longer lists the account.
        """
        deadline = self._clock() + self._settings.confirm_timeout
        delay = self._settings.confirm_poll_interval
        latest = self._store.state.find_account(account_id)

        while True:
            refreshed = await self._refresh_accounts()
            if refreshed.session_expired:
                raise _SessionExpired
            if refreshed.success:
                latest = next((a for a in refreshed.accounts if a.id == account_id), None)
                if latest is None:
                    logger.warning(f"Account {account_id} disappeared before sync could start")
                    return None
                if latest.is_reachable:
                    return latest

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(
                    f"Account {account_id} status not confirmed within "
                    f"{self._settings.confirm_timeout}s, starting sync anyway"
                )
                return latest
            await self._sleep(min(delay, remaining))
            delay *= 2

    def _start_failed(self, account_id: str, error: str, failures: dict[str, str]) -> SyncResult:
        logger.warning(f"Sync start failed for account {account_id}: {error}")
        self._store.dispatch(actions.set_sync_status(account_id, SYNC_STATUS_FAILED))
        self._store.dispatch(actions.set_error(error))
        return SyncResult(
            success=False,
            outcome=SyncOutcome.START_FAILED,
            error=error,
            account_id=account_id,
            failures=failures,
        )


def build_start_request(account: AccountRecord) -> SyncStartRequest:
    """Full sync of the standard folders using the account's own options."""
    config = account.sync_config
    return SyncStartRequest(
        account_id=account.id,
        sync_type="full",
        folders=list(DEFAULT_SYNC_FOLDERS),
        options=SyncOptions(
            preserve_flags=config.preserve_flags,
            preserve_dates=config.preserve_dates,
            max_emails_per_sync=config.max_emails_per_sync,
        ),
    )
