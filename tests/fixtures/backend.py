"""In-process fake of the mail-management REST API.

FakeMailBackend keeps accounts, emails and sync jobs in memory and serves
them through a FastAPI app with the same routes and response envelopes as
the real backend. Tests reach it through ``httpx.ASGITransport`` so no
server is started.

Behaviour is scripted per test:
- ``connection_results[account_id] = (success, error)`` decides the outcome
  of a connection test (default: success);
- ``sync_start_response`` replaces the body returned by ``/sync/start``;
- ``fail_cleanup`` makes ``/sync/cleanup`` answer 500;
- ``network_errors[(method, path)] = exc`` makes ``transport()`` raise
  ``exc`` for that request instead of delivering it;
- ``access_token`` / ``refresh_token``, when set, enforce bearer auth.
"""

from typing import Any
from uuid import uuid4

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

BASE_URL = "http://testserver/api"


class FakeMailBackend:
    """Scriptable fake backend.

    Attributes:
        app: The FastAPI application.
        accounts: Account documents keyed by id.
        emails: Email documents keyed by id.
        calls: ``(method, path)`` of every request received, in order.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.emails: dict[str, dict[str, Any]] = {}
        self.jobs: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.sync_requests: list[dict[str, Any]] = []
        self.connection_results: dict[str, tuple[bool, str | None]] = {}
        self.sync_start_response: dict[str, Any] | None = None
        self.fail_cleanup = False
        self.network_errors: dict[tuple[str, str], Exception] = {}
        self.access_token: str | None = None
        self.refresh_token: str | None = None
        self.app = self._build_app()

    # ===== Seeding =====

    def add_account(self, payload: dict[str, Any]) -> dict[str, Any]:
        account = dict(payload)
        account.setdefault("_id", uuid4().hex[:24])
        self.accounts[account["_id"]] = account
        return account

    def add_email(self, payload: dict[str, Any]) -> dict[str, Any]:
        email = dict(payload)
        email.setdefault("_id", uuid4().hex[:24])
        self.emails[email["_id"]] = email
        return email

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call == (method, path))

    def transport(self) -> httpx.MockTransport:
        """Transport to the app that fails the requests listed in ``network_errors``."""
        asgi = httpx.ASGITransport(app=self.app)

        async def handler(request: httpx.Request) -> httpx.Response:
            error = self.network_errors.get(
                (request.method, request.url.path.removeprefix("/api"))
            )
            if error is not None:
                raise error
            return await asgi.handle_async_request(request)

        return httpx.MockTransport(handler)

    # ===== App =====

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.middleware("http")
        async def record_and_authenticate(request: Request, call_next):
            path = request.url.path.removeprefix("/api")
            backend.calls.append((request.method, path))
            if backend.access_token and path != "/auth/refresh-token":
                expected = f"Bearer {backend.access_token}"
                if request.headers.get("authorization") != expected:
                    return JSONResponse(
                        status_code=401,
                        content={"success": False, "message": "Invalid or expired token"},
                    )
            return await call_next(request)

        @app.post("/api/auth/refresh-token")
        async def refresh(body: dict[str, Any]):
            if not backend.refresh_token or body.get("refreshToken") != backend.refresh_token:
                return JSONResponse(
                    status_code=401, content={"success": False, "message": "Invalid refresh token"}
                )
            backend.access_token = f"token-{uuid4().hex[:8]}"
            return {"success": True, "data": {"token": backend.access_token}}

        # Accounts

        @app.get("/api/email-accounts")
        async def list_accounts():
            return {"success": True, "data": {"accounts": list(backend.accounts.values())}}

        @app.post("/api/email-accounts", status_code=201)
        async def create_account(body: dict[str, Any]):
            account = dict(body)
            account["authConfig"] = dict(account.get("authConfig") or {})
            account["_id"] = uuid4().hex[:24]
            account["connectionStatus"] = "connected"
            backend.accounts[account["_id"]] = account
            # the real backend echoes the stored secret-bearing sub-document on create
            return {
                "success": True,
                "message": "Email account added successfully",
                "data": {"account": {**account, "id": account["_id"]}},
            }

        @app.put("/api/email-accounts/{account_id}")
        async def update_account(account_id: str, body: dict[str, Any]):
            if account_id not in backend.accounts:
                return JSONResponse(
                    status_code=404, content={"success": False, "message": "Email account not found"}
                )
            backend.accounts[account_id].update(body)
            return {"success": True, "data": {"account": backend.accounts[account_id]}}

        @app.delete("/api/email-accounts/{account_id}")
        async def delete_account(account_id: str):
            if backend.accounts.pop(account_id, None) is None:
                return JSONResponse(
                    status_code=404, content={"success": False, "message": "Email account not found"}
                )
            return {"success": True, "message": "Email account deleted successfully"}

        @app.post("/api/email-accounts/{account_id}/test-connection")
        async def test_connection(account_id: str):
            account = backend.accounts.get(account_id)
            if account is None:
                return JSONResponse(
                    status_code=404, content={"success": False, "message": "Email account not found"}
                )
            success, error = backend.connection_results.get(account_id, (True, None))
            account["connectionStatus"] = "connected" if success else "failed"
            account["lastError"] = error
            return {
                "success": True,
                "data": {
                    "connectionTest": {"success": success, "error": error},
                    "account": {
                        "id": account_id,
                        "connectionStatus": account["connectionStatus"],
                        "lastError": error,
                    },
                },
            }

        # Emails

        @app.get("/api/emails")
        async def list_emails(request: Request):
            params = request.query_params
            page = int(params.get("page", 1))
            limit = int(params.get("limit", 20))
            emails = list(backend.emails.values())
            if "accountId" in params:
                emails = [e for e in emails if e.get("accountId") == params["accountId"]]
            if "folder" in params:
                emails = [e for e in emails if e.get("folder") == params["folder"]]
            if "isRead" in params:
                wanted = params["isRead"] == "true"
                emails = [e for e in emails if bool(e.get("isRead")) is wanted]
            start = (page - 1) * limit
            return {
                "success": True,
                "data": {
                    "emails": emails[start : start + limit],
                    "pagination": {"currentPage": page, "limit": limit, "totalCount": len(emails)},
                },
            }

        @app.put("/api/emails/{email_id}/flags")
        async def update_flags(email_id: str, body: dict[str, Any]):
            email = backend.emails.get(email_id)
            if email is None:
                return JSONResponse(
                    status_code=404, content={"success": False, "message": "Email not found"}
                )
            email.update(body)
            return {"success": True, "data": {"email": email}}

        @app.delete("/api/emails/{email_id}")
        async def delete_email(email_id: str):
            backend.emails.pop(email_id, None)
            return {"success": True}

        @app.post("/api/search/search")
        async def search(body: dict[str, Any]):
            query = body.get("query", "").lower()
            hits = [e for e in backend.emails.values() if query in e.get("subject", "").lower()]
            return {"success": True, "data": {"results": hits, "totalCount": len(hits)}}

        # Sync

        @app.post("/api/sync/start")
        async def start_sync(body: dict[str, Any]):
            backend.sync_requests.append(body)
            if backend.sync_start_response is not None:
                return backend.sync_start_response
            job_id = uuid4().hex[:24]
            backend.jobs[job_id] = {"_id": job_id, "accountId": body["accountId"], "status": "running"}
            return {
                "success": True,
                "message": "Sync job started",
                "data": {"job": backend.jobs[job_id]},
            }

        @app.delete("/api/sync/cleanup")
        async def cleanup():
            if backend.fail_cleanup:
                return JSONResponse(
                    status_code=500, content={"success": False, "message": "Cleanup failed"}
                )
            return {"success": True, "message": "Cleaned up 0 stale jobs"}

        @app.put("/api/sync/{job_id}/stop")
        async def stop(job_id: str):
            job = backend.jobs.get(job_id)
            if job is None:
                return JSONResponse(
                    status_code=404, content={"success": False, "message": "Sync job not found"}
                )
            job["status"] = "cancelled"
            return {"success": True, "message": "Sync job stopped"}

        return app


@pytest.fixture
def fake_backend():
    """Provide an empty fake backend."""
    return FakeMailBackend()
