"""Application facade consumed by the view layer.

EmailApp wires the backend client, the store and the coordinators together
and exposes every user-facing operation as a coroutine returning a result
envelope. Client errors never escape these operations: they are recorded in
the store and reported through ``success``/``error``.

Example:
    Typical usage::

        from mailstate import EmailApp

        async with EmailApp.from_settings() as app:
            app.subscribe(render)
            await app.load_accounts()
            result = await app.start_sync()
            if not result.success:
                print(result.error)
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from mailclient import (
    AccountInput,
    AccountRecord,
    AsyncMailClient,
    AuthenticationError,
    EmailRecord,
    MailClientError,
    TokenStore,
)
from mailstate import actions
from mailstate.config import Settings
from mailstate.connection_tests import ConnectionTester
from mailstate.filters import clean_filters, validate_filter_updates
from mailstate.results import (
    SESSION_EXPIRED_MESSAGE,
    AccountListResult,
    AccountResult,
    BulkTestResult,
    ConnectionTestResult,
    EmailListResult,
    EmailResult,
    OperationResult,
    SearchResult,
    SyncResult,
)
from mailstate.state import AppState, PaginationState, SearchFilters
from mailstate.store import Listener, Store
from mailstate.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=OperationResult)


def _is_expired(error: MailClientError) -> bool:
    return isinstance(error, AuthenticationError)


def _describe(error: MailClientError) -> str:
    if _is_expired(error):
        return SESSION_EXPIRED_MESSAGE
    return error.message


def _validation_message(error: PydanticValidationError) -> str:
    details = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        details.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "Invalid input: " + "; ".join(details)


class EmailApp:
    """Client application state plus the operations that change it.

    Args:
        client: Backend client.
        settings: Configuration; defaults are used if omitted.
        store: Store to drive; a fresh one is created if omitted.
        sleep: Awaitable sleep used for delays, replaceable in tests.
        clock: Monotonic clock used by the sync confirmation poll.
    """

    def __init__(
        self,
        client: AsyncMailClient,
        settings: Settings | None = None,
        store: Store | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or Settings()
        self.client = client
        self.store = store or Store(
            AppState(pagination=PaginationState(page_size=self.settings.page_size))
        )
        self._owns_client = False

        self.tester = ConnectionTester(
            self.store,
            client.accounts,
            display_seconds=self.settings.test_result_display_seconds,
            sleep=sleep,
        )
        self.orchestrator = SyncOrchestrator(
            self.store,
            client,
            self.tester,
            self.settings,
            refresh_accounts=self.load_accounts,
            reload_emails=self.load_emails,
            sleep=sleep,
            clock=clock,
        )
        client.set_auth_failure_handler(self._on_auth_failure)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        tokens: TokenStore | None = None,
        transport: Any = None,
    ) -> "EmailApp":
        """Build an app with its own backend client.

        Args:
            settings: Configuration; read from the environment if omitted.
            tokens: Bearer tokens obtained at login.
            transport: Custom HTTP transport (e.g., ASGITransport for testing).
        """
        settings = settings or Settings.from_env()
        client = AsyncMailClient(
            base_url=settings.api_base_url,
            timeout=settings.timeout,
            retry_enabled=settings.retry_enabled,
            max_retries=settings.max_retries,
            transport=transport,
            tokens=tokens,
        )
        app = cls(client, settings=settings)
        app._owns_client = True
        return app

    async def __aenter__(self) -> "EmailApp":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the backend client if this app created it."""
        if self._owns_client:
            await self.client.close()

    # ===== State access =====

    @property
    def state(self) -> AppState:
        """The current snapshot."""
        return self.store.state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Receive every new snapshot; returns the unsubscribe function."""
        return self.store.subscribe(listener)

    def _on_auth_failure(self) -> None:
        logger.warning("Authentication could not be recovered; resetting application state")
        self.store.dispatch(actions.reset())

    def _failure(self, result_type: type[ResultT], error: MailClientError, action: str) -> ResultT:
        """Record a failed operation in the store and build its envelope."""
        message = _describe(error)
        logger.error(f"Failed to {action}: {error.message}")
        self.store.dispatch(actions.set_error(message))
        return result_type(success=False, error=message, session_expired=_is_expired(error))

    # ===== Accounts =====

    async def load_accounts(self) -> AccountListResult:
        """Fetch all accounts into the store."""
        self.store.dispatch(actions.load_accounts_start())
        try:
            accounts = await self.client.accounts.get_all()
        except MailClientError as e:
            logger.error(f"Failed to load email accounts: {e.message}")
            self.store.dispatch(actions.load_accounts_failure(_describe(e)))
            return AccountListResult(
                success=False, error=_describe(e), session_expired=_is_expired(e)
            )

        self.store.dispatch(actions.load_accounts_success(accounts))
        return AccountListResult(success=True, accounts=tuple(accounts))

    async def create_account(self, account: AccountInput | Mapping[str, Any]) -> AccountResult:
        """Create an account from a form submission.

        Credentials are sent to the backend only; the stored record never
        carries them.
        """
        try:
            data = account if isinstance(account, AccountInput) else AccountInput.model_validate(account)
        except PydanticValidationError as e:
            return AccountResult(success=False, error=_validation_message(e))

        try:
            created = await self.client.accounts.create(data)
        except MailClientError as e:
            return self._failure(AccountResult, e, "create email account")

        self.store.dispatch(actions.account_added(created))
        logger.info(f"Created email account {created.id} ({created.email})")
        return AccountResult(success=True, account=created, message="Email account added successfully")

    async def update_account(
        self, account_id: str, account: AccountInput | Mapping[str, Any]
    ) -> AccountResult:
        """Replace an account's settings with a full form submission."""
        try:
            data = account if isinstance(account, AccountInput) else AccountInput.model_validate(account)
        except PydanticValidationError as e:
            return AccountResult(success=False, error=_validation_message(e))

        try:
            updated = await self.client.accounts.update(account_id, data)
        except MailClientError as e:
            return self._failure(AccountResult, e, "update email account")

        self.store.dispatch(actions.account_updated(updated))
        return AccountResult(success=True, account=updated, message="Email account updated successfully")

    async def delete_account(self, account_id: str) -> OperationResult:
        try:
            await self.client.accounts.delete(account_id)
        except MailClientError as e:
            return self._failure(OperationResult, e, "delete email account")

        self.store.dispatch(actions.account_removed(account_id))
        logger.info(f"Deleted email account {account_id}")
        return OperationResult(success=True, message="Email account deleted successfully")

    def select_account(self, account: AccountRecord | str | None) -> None:
        """Select an account by record or id; None clears the selection."""
        if isinstance(account, str):
            account = self.state.find_account(account)
        self.store.dispatch(actions.set_selected_account(account))

    # ===== Connection tests =====

    async def test_connection(
        self, account: AccountRecord | Mapping[str, Any] | str
    ) -> ConnectionTestResult:
        """Test one account; see ConnectionTester.test_connection."""
        return await self.tester.test_connection(account)

    async def test_all_connections(self) -> BulkTestResult:
        """Test every account sequentially and report the tally."""
        return await self.tester.test_all()

    def clear_test_result(self, account_id: str) -> None:
        self.tester.clear_test_result(account_id)

    def clear_test_result_later(self, account_id: str) -> asyncio.Task:
        """Clear the displayed result after the configured display window."""
        return self.tester.schedule_clear(account_id)

    # ===== Sync =====

    async def start_sync(self) -> SyncResult:
        """Select a reachable account and start a full sync; see SyncOrchestrator."""
        return await self.orchestrator.start_sync()

    async def stop_sync(self, job_id: str) -> OperationResult:
        try:
            response = await self.client.sync.stop(job_id)
        except MailClientError as e:
            return self._failure(OperationResult, e, "stop sync job")
        if not response.success:
            error = response.message or "Failed to stop sync job"
            self.store.dispatch(actions.set_error(error))
            return OperationResult(success=False, error=error)
        return OperationResult(success=True, message=response.message or "Sync job stopped")

    # ===== Emails =====

    async def load_emails(self, page: int | None = None, limit: int | None = None) -> EmailListResult:
        """Load one page of messages using the active filters.

        Args:
            page: Page to load; defaults to the current page.
            limit: Page size; defaults to the current page size and is
                remembered when given.
        """
        pagination = self.state.pagination
        if limit is not None and limit != pagination.page_size:
            try:
                resize = actions.set_pagination(page_size=limit)
            except PydanticValidationError as e:
                return EmailListResult(success=False, error=_validation_message(e))
            self.store.dispatch(resize)
        page = page or pagination.current
        limit = limit or pagination.page_size
        filters = clean_filters(self.state.filters)

        self.store.dispatch(actions.load_emails_start())
        try:
            response = await self.client.emails.get_page(filters, page=page, limit=limit)
        except MailClientError as e:
            logger.error(f"Failed to load emails: {e.message}")
            self.store.dispatch(actions.load_emails_failure(_describe(e)))
            return EmailListResult(
                success=False, error=_describe(e), session_expired=_is_expired(e)
            )

        self.store.dispatch(
            actions.load_emails_success(
                response.emails, page=response.pagination.page, total=response.pagination.total
            )
        )
        return EmailListResult(
            success=True, emails=tuple(response.emails), total=response.pagination.total
        )

    async def search_emails(
        self,
        query: str,
        filters: Mapping[str, Any] | None = None,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "relevance",
        sort_order: str = "desc",
    ) -> SearchResult:
        """Full-text search over synchronized messages.

        Args:
            query: Free-text query.
            filters: Filters for this search; the active filters are used
                if omitted.
            page: 1-based page number.
            limit: Page size; defaults to the current page size.
            sort_by: Backend sort key.
            sort_order: "asc" or "desc".
        """
        if filters is None:
            search_filters = self.state.filters
        else:
            try:
                search_filters = SearchFilters.model_validate(dict(filters))
            except PydanticValidationError as e:
                return SearchResult(success=False, error=_validation_message(e))

        try:
            response = await self.client.search.search(
                query,
                clean_filters(search_filters),
                sort_by=sort_by,
                sort_order=sort_order,
                page=page,
                limit=limit or self.state.pagination.page_size,
            )
        except MailClientError as e:
            return self._failure(SearchResult, e, "search emails")

        return SearchResult(
            success=True, results=tuple(response.results), total_count=response.total_count
        )

    async def update_email_flags(self, email_id: str, **flags: bool) -> EmailResult:
        """Set IMAP flags on a message and refresh it in the store.

        Raises:
            ValueError: On unknown flag names; nothing is sent.
        """
        try:
            email = await self.client.emails.update_flags(email_id, **flags)
            if email is None:
                email = await self.client.emails.get(email_id)
        except MailClientError as e:
            return self._failure(EmailResult, e, "update email")

        self.store.dispatch(actions.email_updated(email))
        return EmailResult(success=True, email=email)

    async def mark_email_read(self, email_id: str, is_read: bool = True) -> EmailResult:
        return await self.update_email_flags(email_id, is_read=is_read)

    async def delete_email(self, email_id: str) -> OperationResult:
        try:
            await self.client.emails.delete(email_id)
        except MailClientError as e:
            return self._failure(OperationResult, e, "delete email")

        self.store.dispatch(actions.email_removed(email_id))
        return OperationResult(success=True, message="Email deleted successfully")

    def select_email(self, email: EmailRecord | str | None) -> None:
        """Open a message by record or id; None clears the selection."""
        if isinstance(email, str):
            email = self.state.find_email(email)
        self.store.dispatch(actions.set_selected_email(email))

    # ===== Filters, pagination, errors =====

    def set_filters(self, filters: Mapping[str, Any] | None = None, **kwargs: Any) -> OperationResult:
        """Merge filters into the active ones; omitted filters are kept.

        Invalid filters are rejected without touching the store.
        """
        updates = {**(filters or {}), **kwargs}
        try:
            validated = validate_filter_updates(updates)
        except PydanticValidationError as e:
            return OperationResult(success=False, error=_validation_message(e))

        self.store.dispatch(actions.set_filters(validated))
        return OperationResult(success=True)

    def clear_filters(self) -> None:
        self.store.dispatch(actions.clear_filters())

    def set_pagination(self, current: int | None = None, page_size: int | None = None) -> OperationResult:
        changes = {
            key: value
            for key, value in (("current", current), ("page_size", page_size))
            if value is not None
        }
        try:
            action = actions.set_pagination(**changes)
        except PydanticValidationError as e:
            return OperationResult(success=False, error=_validation_message(e))

        self.store.dispatch(action)
        return OperationResult(success=True)

    def clear_error(self) -> None:
        self.store.dispatch(actions.clear_error())
