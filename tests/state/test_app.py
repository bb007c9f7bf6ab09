"""End-to-end tests for EmailApp.

The app talks to FakeMailBackend through httpx's ASGITransport, so every
operation goes through the real client, store, reducer and coordinators.
"""

import httpx
import pytest
from httpx import ASGITransport

from mailclient import ConnectionStatus, TokenStore
from mailstate import EmailApp, Settings
from mailstate.app import SESSION_EXPIRED_MESSAGE
from mailstate.results import SyncOutcome
from mailstate.state import SearchFilters
from tests.fixtures.accounts import (
    ACTIVE_ACCOUNT,
    GMAIL_ACCOUNT,
    create_account_payload,
    create_email_payload,
)
from tests.fixtures.backend import BASE_URL


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def app_settings():
    return Settings(
        api_base_url=BASE_URL,
        confirm_timeout=0,
        reload_delay=0,
        test_result_display_seconds=0,
    )


@pytest.fixture
async def app(fake_backend, app_settings):
    """Create an EmailApp wired to the fake backend."""
    async with EmailApp.from_settings(
        app_settings, transport=ASGITransport(app=fake_backend.app)
    ) as app:
        yield app


def calls_after(backend, call):
    return backend.calls[backend.calls.index(call) + 1 :]


# =============================================================================
# Accounts
# =============================================================================


class TestAccounts:
    async def test_load_accounts_normalizes_ids(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1"))
        fake_backend.add_account(create_account_payload(account_id="a2"))

        result = await app.load_accounts()

        assert result.success is True
        assert [a.id for a in app.state.accounts] == ["a1", "a2"]
        assert app.state.is_loading is False

    async def test_create_account_keeps_secrets_out_of_state(self, app):
        result = await app.create_account(
            {
                "name": "Work",
                "email": "me@company.com",
                "imapConfig": {"host": "mail.company.com"},
                "authConfig": {"username": "me@company.com", "password": "hunter2"},
            }
        )

        assert result.success is True
        assert app.state.accounts == (result.account,)
        assert "hunter2" not in app.state.model_dump_json()

    async def test_invalid_account_is_rejected_locally(self, app, fake_backend):
        result = await app.create_account({"name": "No email"})

        assert result.success is False
        assert result.error.startswith("Invalid input")
        assert fake_backend.calls == []
        assert app.state.accounts == ()

    async def test_update_account(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1"))
        await app.load_accounts()

        result = await app.update_account(
            "a1",
            {
                "name": "Renamed",
                "email": "user@example.com",
                "imapConfig": {"host": "imap.example.com"},
                "authConfig": {"username": "user@example.com", "password": "new-password"},
            },
        )

        assert result.success is True
        assert app.state.find_account("a1").name == "Renamed"

    async def test_delete_account(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1"))
        await app.load_accounts()
        app.select_account("a1")

        result = await app.delete_account("a1")

        assert result.success is True
        assert app.state.accounts == ()
        assert app.state.selected_account is None

    async def test_delete_missing_account_reports_error(self, app):
        result = await app.delete_account("missing")

        assert result.success is False
        assert result.error == "Email account not found"
        assert app.state.error == "Email account not found"


# =============================================================================
# Connection tests
# =============================================================================


class TestConnectionTests:
    async def test_status_converges_with_outcome(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1", status="failed"))
        await app.load_accounts()

        result = await app.test_connection("a1")

        assert result.success is True
        assert app.state.find_account("a1").connection_status is ConnectionStatus.CONNECTED

    async def test_gmail_guidance(self, app, fake_backend):
        fake_backend.add_account(GMAIL_ACCOUNT)
        fake_backend.connection_results["acc-gmail"] = (False, "Invalid credentials")
        await app.load_accounts()

        result = await app.test_connection(app.state.find_account("acc-gmail"))

        assert result.success is False
        assert "App Password" in app.state.test_results["acc-gmail"].error

    async def test_all_connections(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1"))
        fake_backend.add_account(create_account_payload(account_id="a2"))
        fake_backend.connection_results["a2"] = (False, "Connection refused")
        await app.load_accounts()

        result = await app.test_all_connections()

        assert result.successful == 1
        assert result.total == 2
        assert app.state.find_account("a2").connection_status is ConnectionStatus.FAILED

    async def test_result_is_cleared_after_display_window(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1"))
        await app.load_accounts()
        await app.test_connection("a1")

        await app.clear_test_result_later("a1")

        assert "a1" not in app.state.test_results


# =============================================================================
# Sync
# =============================================================================


class TestSync:
    async def test_no_accounts_makes_no_requests(self, app, fake_backend):
        result = await app.start_sync()

        assert result.outcome is SyncOutcome.NO_ACCOUNTS
        assert fake_backend.calls == []

    async def test_skips_failing_gmail_and_syncs_active_account(self, app, fake_backend):
        fake_backend.add_account(GMAIL_ACCOUNT)
        fake_backend.add_account(ACTIVE_ACCOUNT)
        fake_backend.connection_results["acc-gmail"] = (False, "Invalid credentials")
        fake_backend.add_email(create_email_payload(email_id="m1", account_id="acc-active"))
        await app.load_accounts()

        result = await app.start_sync()

        assert result.outcome is SyncOutcome.STARTED
        assert result.account_id == "acc-active"
        assert "App Password" in result.failures["acc-gmail"]
        assert fake_backend.sync_requests[0]["accountId"] == "acc-active"
        assert fake_backend.sync_requests[0]["folders"] == ["INBOX", "Sent", "Drafts", "Trash"]
        assert fake_backend.count("DELETE", "/sync/cleanup") == 1
        assert ("GET", "/emails") in calls_after(fake_backend, ("POST", "/sync/start"))
        assert [e.id for e in app.state.emails] == ["m1"]

    async def test_cleanup_failure_does_not_block_start(self, app, fake_backend):
        fake_backend.add_account(ACTIVE_ACCOUNT)
        fake_backend.fail_cleanup = True
        await app.load_accounts()

        result = await app.start_sync()

        assert result.outcome is SyncOutcome.STARTED

    async def test_declined_start(self, app, fake_backend):
        fake_backend.add_account(ACTIVE_ACCOUNT)
        fake_backend.sync_start_response = {"success": False, "message": "quota exceeded"}
        await app.load_accounts()

        result = await app.start_sync()

        assert result.outcome is SyncOutcome.START_FAILED
        assert app.state.error == "quota exceeded"
        assert ("GET", "/emails") not in calls_after(fake_backend, ("POST", "/sync/start"))

    async def test_stop_sync(self, app, fake_backend):
        fake_backend.add_account(ACTIVE_ACCOUNT)
        await app.load_accounts()
        started = await app.start_sync()

        result = await app.stop_sync(started.job_id)

        assert result.success is True
        assert fake_backend.jobs[started.job_id]["status"] == "cancelled"


# =============================================================================
# Emails
# =============================================================================


class TestEmails:
    async def test_load_emails_uses_active_filters(self, app, fake_backend):
        fake_backend.add_email(create_email_payload(email_id="m1", is_read=False))
        fake_backend.add_email(create_email_payload(email_id="m2", is_read=True))
        app.set_filters(is_read=False, subject="")

        result = await app.load_emails()

        assert result.success is True
        assert [e.id for e in app.state.emails] == ["m1"]
        assert app.state.pagination.total == 1

    async def test_limit_is_remembered(self, app, fake_backend):
        fake_backend.add_email(create_email_payload(email_id="m1"))
        fake_backend.add_email(create_email_payload(email_id="m2"))

        await app.load_emails(page=2, limit=1)

        assert app.state.pagination.page_size == 1
        assert app.state.pagination.current == 2
        assert app.state.pagination.total == 2
        assert [e.id for e in app.state.emails] == ["m2"]

    async def test_invalid_filters_leave_state_untouched(self, app):
        before = app.state.filters

        result = app.set_filters(colour="red")

        assert result.success is False
        assert app.state.filters is before

    async def test_clear_filters(self, app):
        app.set_filters({"accountId": "a1"}, folder="Sent")

        app.clear_filters()

        assert app.state.filters == SearchFilters()

    async def test_search(self, app, fake_backend):
        fake_backend.add_email(create_email_payload(email_id="m1", subject="Invoice #42"))
        fake_backend.add_email(create_email_payload(email_id="m2", subject="Lunch"))

        result = await app.search_emails("invoice")

        assert [e.id for e in result.results] == ["m1"]
        assert result.total_count == 1

    async def test_mark_read_updates_selection(self, app, fake_backend):
        fake_backend.add_email(create_email_payload(email_id="m1", is_read=False))
        await app.load_emails()
        app.select_email("m1")

        result = await app.mark_email_read("m1")

        assert result.success is True
        assert app.state.selected_email.is_read is True
        assert app.state.emails[0].is_read is True

    async def test_unknown_flag_raises(self, app):
        with pytest.raises(ValueError):
            await app.update_email_flags("m1", is_starred=True)

    async def test_delete_email(self, app, fake_backend):
        fake_backend.add_email(create_email_payload(email_id="m1"))
        await app.load_emails()

        result = await app.delete_email("m1")

        assert result.success is True
        assert app.state.emails == ()

    async def test_invalid_limit_is_rejected_locally(self, app, fake_backend):
        result = await app.load_emails(limit=0)

        assert result.success is False
        assert result.error.startswith("Invalid input")
        assert fake_backend.calls == []
        assert app.state.pagination.page_size == 20
        assert app.state.is_loading is False

    async def test_invalid_pagination(self, app):
        result = app.set_pagination(current=0)

        assert result.success is False
        assert app.state.pagination.current == 1


# =============================================================================
# Authentication
# =============================================================================


class TestSessionExpiry:
    async def test_unrecoverable_401_resets_state(self, fake_backend, app_settings):
        fake_backend.access_token = "fresh"
        tokens = TokenStore(access_token="stale")

        async with EmailApp.from_settings(
            app_settings, tokens=tokens, transport=ASGITransport(app=fake_backend.app)
        ) as app:
            app.set_filters(folder="Sent")

            result = await app.load_accounts()

        assert result.success is False
        assert result.error == SESSION_EXPIRED_MESSAGE
        assert app.state.error == SESSION_EXPIRED_MESSAGE
        assert app.state.filters == SearchFilters()
        assert tokens.access_token is None
        assert result.session_expired is True

    async def test_expired_session_stops_sync_scan(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1", status="failed"))
        fake_backend.add_account(create_account_payload(account_id="a2", status="failed"))
        await app.load_accounts()
        # every later request is rejected and no refresh token is held
        fake_backend.access_token = "issued-elsewhere"

        result = await app.start_sync()

        assert result.outcome is SyncOutcome.SESSION_EXPIRED
        assert result.session_expired is True
        assert result.error == SESSION_EXPIRED_MESSAGE
        assert fake_backend.count("POST", "/email-accounts/a1/test-connection") == 1
        assert fake_backend.count("POST", "/email-accounts/a2/test-connection") == 0
        assert fake_backend.count("POST", "/sync/start") == 0
        assert app.state.accounts == ()
        assert app.state.error == SESSION_EXPIRED_MESSAGE

    async def test_expired_session_stops_test_all(self, app, fake_backend):
        fake_backend.add_account(create_account_payload(account_id="a1"))
        fake_backend.add_account(create_account_payload(account_id="a2"))
        await app.load_accounts()
        fake_backend.access_token = "issued-elsewhere"

        result = await app.test_all_connections()

        assert result.success is False
        assert result.session_expired is True
        assert result.total == 2
        assert len(result.results) == 1
        assert fake_backend.count("POST", "/email-accounts/a2/test-connection") == 0


class TestOwnership:
    async def test_injected_client_is_not_closed(self, mock_client):
        async with EmailApp(mock_client):
            pass

        mock_client.close.assert_not_called()


class TestNetworkFailures:
    """Dropped connections surface as envelopes, never as raised errors."""

    async def test_cleanup_connection_reset_does_not_block_start(self, fake_backend, app_settings):
        fake_backend.add_account(ACTIVE_ACCOUNT)
        fake_backend.network_errors[("DELETE", "/sync/cleanup")] = httpx.ReadError("connection reset")

        async with EmailApp.from_settings(app_settings, transport=fake_backend.transport()) as app:
            await app.load_accounts()
            result = await app.start_sync()

        assert result.outcome is SyncOutcome.STARTED
        assert fake_backend.count("POST", "/sync/start") == 1

    async def test_load_accounts_reports_disconnect(self, fake_backend, app_settings):
        fake_backend.network_errors[("GET", "/email-accounts")] = httpx.RemoteProtocolError(
            "server disconnected"
        )

        async with EmailApp.from_settings(app_settings, transport=fake_backend.transport()) as app:
            result = await app.load_accounts()

        assert result.success is False
        assert "server disconnected" in result.error
        assert app.state.is_loading is False
        assert app.state.error == result.error

    async def test_connection_test_reports_dropped_request(self, fake_backend, app_settings):
        fake_backend.add_account(create_account_payload(account_id="a1"))
        fake_backend.network_errors[("POST", "/email-accounts/a1/test-connection")] = (
            httpx.WriteError("broken pipe")
        )

        async with EmailApp.from_settings(app_settings, transport=fake_backend.transport()) as app:
            await app.load_accounts()
            result = await app.test_connection("a1")

        assert result.success is False
        assert "broken pipe" in result.error
        assert app.state.is_testing("a1") is False
