"""Pure state transitions.

``reduce(state, action)`` returns a new AppState and never touches the one
it was given. Each ActionType maps to one handler in ``_HANDLERS``.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from mailclient import AccountRecord, EmailRecord
from mailstate.actions import Action, ActionType, EmailsLoaded, PaginationUpdate, SyncStatusUpdate
from mailstate.state import (
    AppState,
    ConnectionTestOutcome,
    PaginationState,
    SearchFilters,
    read_only,
)


def _replace_by_id(items: Iterable[Any], updated: Any) -> tuple[Any, ...]:
    return tuple(updated if item.id == updated.id else item for item in items)


def _without_id(items: Iterable[Any], item_id: str) -> tuple[Any, ...]:
    return tuple(item for item in items if item.id != item_id)


def _with_key(mapping: Mapping[str, Any], key: str, value: Any) -> Mapping[str, Any]:
    return read_only({**mapping, key: value})


def _without_key(mapping: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    return read_only({k: v for k, v in mapping.items() if k != key})


def _updated_selection(selected: Any, updated: Any) -> Any:
    if selected is not None and selected.id == updated.id:
        return updated
    return selected


def _refreshed_selection(selected: Any, items: tuple[Any, ...]) -> Any:
    """Selection after a list reload: the fresh copy, or None if it disappeared."""
    if selected is None:
        return None
    for item in items:
        if item.id == selected.id:
            return item
    return None


# ===== Accounts =====


def _load_accounts_start(state: AppState, _payload: None) -> AppState:
    return state.model_copy(update={"is_loading": True, "error": None})


def _load_accounts_success(state: AppState, accounts: tuple[AccountRecord, ...]) -> AppState:
    return state.model_copy(
        update={
            "accounts": accounts,
            "selected_account": _refreshed_selection(state.selected_account, accounts),
            "is_loading": False,
        }
    )


def _load_failure(state: AppState, error: str) -> AppState:
    return state.model_copy(update={"is_loading": False, "error": error})


def _account_added(state: AppState, account: AccountRecord) -> AppState:
    if state.find_account(account.id) is not None:
        return _account_updated(state, account)
    return state.model_copy(update={"accounts": state.accounts + (account,)})


def _account_updated(state: AppState, account: AccountRecord) -> AppState:
    # an update for an id no longer listed is an orphan and changes nothing
    if state.find_account(account.id) is None:
        return state
    return state.model_copy(
        update={
            "accounts": _replace_by_id(state.accounts, account),
            "selected_account": _updated_selection(state.selected_account, account),
        }
    )


def _account_removed(state: AppState, account_id: str) -> AppState:
    selected = state.selected_account
    return state.model_copy(
        update={
            "accounts": _without_id(state.accounts, account_id),
            "selected_account": None if selected is not None and selected.id == account_id else selected,
            "testing_in_progress": _without_key(state.testing_in_progress, account_id),
            "test_results": _without_key(state.test_results, account_id),
            "sync_status": _without_key(state.sync_status, account_id),
        }
    )


def _set_selected_account(state: AppState, account: AccountRecord | None) -> AppState:
    return state.model_copy(update={"selected_account": account})


# ===== Emails =====


def _load_emails_start(state: AppState, _payload: None) -> AppState:
    return state.model_copy(update={"is_loading": True, "error": None})


def _load_emails_success(state: AppState, loaded: EmailsLoaded) -> AppState:
    pagination_changes: dict[str, int] = {"total": loaded.total}
    if loaded.page is not None:
        pagination_changes["current"] = loaded.page

    selected = state.selected_email
    if selected is not None:
        fresh = next((email for email in loaded.emails if email.id == selected.id), None)
        selected = fresh if fresh is not None else selected

    return state.model_copy(
        update={
            "emails": loaded.emails,
            "pagination": state.pagination.model_copy(update=pagination_changes),
            "selected_email": selected,
            "is_loading": False,
        }
    )


def _email_updated(state: AppState, email: EmailRecord) -> AppState:
    return state.model_copy(
        update={
            "emails": _replace_by_id(state.emails, email),
            "selected_email": _updated_selection(state.selected_email, email),
        }
    )


def _email_removed(state: AppState, email_id: str) -> AppState:
    selected = state.selected_email
    return state.model_copy(
        update={
            "emails": _without_id(state.emails, email_id),
            "selected_email": None if selected is not None and selected.id == email_id else selected,
        }
    )


def _set_selected_email(state: AppState, email: EmailRecord | None) -> AppState:
    return state.model_copy(update={"selected_email": email})


# ===== Filters and pagination =====


def _set_filters(state: AppState, updates: dict[str, Any]) -> AppState:
    return state.model_copy(update={"filters": state.filters.model_copy(update=updates)})


def _clear_filters(state: AppState, _payload: None) -> AppState:
    return state.model_copy(update={"filters": SearchFilters()})


def _set_pagination(state: AppState, changes: PaginationUpdate) -> AppState:
    provided = changes.model_dump(exclude_none=True)
    return state.model_copy(update={"pagination": state.pagination.model_copy(update=provided)})


# ===== Connection tests =====


def _test_start(state: AppState, account_id: str) -> AppState:
    # the in-flight flag and removal of the stale result land in one snapshot
    return state.model_copy(
        update={
            "testing_in_progress": _with_key(state.testing_in_progress, account_id, True),
            "test_results": _without_key(state.test_results, account_id),
        }
    )


def _test_result(state: AppState, outcome: ConnectionTestOutcome) -> AppState:
    return state.model_copy(
        update={
            "testing_in_progress": _with_key(state.testing_in_progress, outcome.account_id, False),
            "test_results": _with_key(state.test_results, outcome.account_id, outcome),
        }
    )


def _test_clear(state: AppState, account_id: str) -> AppState:
    if account_id not in state.test_results:
        return state
    return state.model_copy(update={"test_results": _without_key(state.test_results, account_id)})


# ===== Errors, sync status, reset =====


def _set_error(state: AppState, error: str) -> AppState:
    return state.model_copy(update={"error": error, "is_loading": False})


def _clear_error(state: AppState, _payload: None) -> AppState:
    return state.model_copy(update={"error": None})


def _set_sync_status(state: AppState, update: SyncStatusUpdate) -> AppState:
    return state.model_copy(
        update={"sync_status": _with_key(state.sync_status, update.account_id, update.status)}
    )


def _reset(state: AppState, _payload: None) -> AppState:
    # keep the configured page size
    return AppState(pagination=PaginationState(page_size=state.pagination.page_size))


_HANDLERS: dict[ActionType, Callable[[AppState, Any], AppState]] = {
    ActionType.LOAD_ACCOUNTS_START: _load_accounts_start,
    ActionType.LOAD_ACCOUNTS_SUCCESS: _load_accounts_success,
    ActionType.LOAD_ACCOUNTS_FAILURE: _load_failure,
    ActionType.LOAD_EMAILS_START: _load_emails_start,
    ActionType.LOAD_EMAILS_SUCCESS: _load_emails_success,
    ActionType.LOAD_EMAILS_FAILURE: _load_failure,
    ActionType.ACCOUNT_ADDED: _account_added,
    ActionType.ACCOUNT_UPDATED: _account_updated,
    ActionType.ACCOUNT_REMOVED: _account_removed,
    ActionType.EMAIL_UPDATED: _email_updated,
    ActionType.EMAIL_REMOVED: _email_removed,
    ActionType.SET_FILTERS: _set_filters,
    ActionType.CLEAR_FILTERS: _clear_filters,
    ActionType.SET_PAGINATION: _set_pagination,
    ActionType.SET_SELECTED_EMAIL: _set_selected_email,
    ActionType.SET_SELECTED_ACCOUNT: _set_selected_account,
    ActionType.TEST_START: _test_start,
    ActionType.TEST_RESULT: _test_result,
    ActionType.TEST_CLEAR: _test_clear,
    ActionType.SET_ERROR: _set_error,
    ActionType.CLEAR_ERROR: _clear_error,
    ActionType.SET_SYNC_STATUS: _set_sync_status,
    ActionType.RESET: _reset,
}


def reduce(state: AppState, action: Action) -> AppState:
    """Apply ``action`` to ``state`` and return the resulting snapshot.

    Args:
        state: Current snapshot; never modified.
        action: A validated transition.

    Returns:
        The new snapshot. Transitions that change nothing may return
        ``state`` itself.
    """
    return _HANDLERS[action.type](state, action.payload)
