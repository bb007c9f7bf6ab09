"""mailhub client application state.

Reducer-driven state for a multi-account IMAP client: a single Store holds
accounts, messages, filters, pagination and per-account connection-test and
sync status; coordinators run connection tests and sync orchestration on
top of the backend client from ``mailclient``.

Exports:
    EmailApp: Operation surface consumed by the view layer.
    Settings: Runtime configuration.
    Store: Owner of the current AppState snapshot.
    AppState: Immutable state snapshot.
    ConnectionTester: Connection-test coordinator.
    SyncOrchestrator: Multi-account sync selection and start.
"""

from mailstate.actions import Action, ActionType
from mailstate.app import EmailApp
from mailstate.config import Settings
from mailstate.connection_tests import ConnectionTester
from mailstate.filters import clean_filters, validate_filter_updates
from mailstate.guidance import translate_connection_error
from mailstate.reducer import reduce
from mailstate.results import (
    AccountListResult,
    AccountResult,
    BulkTestResult,
    ConnectionTestResult,
    EmailListResult,
    EmailResult,
    OperationResult,
    SearchResult,
    SyncOutcome,
    SyncResult,
)
from mailstate.state import (
    AppState,
    ConnectionDisplay,
    ConnectionTestOutcome,
    PaginationState,
    SearchFilters,
)
from mailstate.store import Store
from mailstate.sync_orchestrator import SyncOrchestrator

__all__ = [
    # Application
    "EmailApp",
    "Settings",
    # Store
    "Store",
    "Action",
    "ActionType",
    "reduce",
    "AppState",
    "ConnectionDisplay",
    "ConnectionTestOutcome",
    "PaginationState",
    "SearchFilters",
    # Coordinators
    "ConnectionTester",
    "SyncOrchestrator",
    # Helpers
    "clean_filters",
    "validate_filter_updates",
    "translate_connection_error",
    # Results
    "OperationResult",
    "AccountResult",
    "AccountListResult",
    "EmailResult",
    "EmailListResult",
    "SearchResult",
    "ConnectionTestResult",
    "BulkTestResult",
    "SyncOutcome",
    "SyncResult",
]
