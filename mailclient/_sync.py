"""Sync job sub-client for the mailhub backend.

This module provides AsyncSyncClient for the sync job endpoints (/sync/*).

This is an internal module. Import from `mailclient` instead.
"""

from typing import Any, Literal

from pydantic import AliasChoices, Field

from mailclient._base import AsyncBaseClient, parse_model, unwrap
from mailclient.models import ActionResponse, Identifier, WireModel, dump_wire

# Folders fetched by a full synchronization
DEFAULT_SYNC_FOLDERS = ("INBOX", "Sent", "Drafts", "Trash")


class SyncOptions(WireModel):
    """Options forwarded to the backend sync job.

    Attributes:
        preserve_flags: Keep IMAP flags when storing messages.
        preserve_dates: Keep original message dates.
        max_emails_per_sync: Upper bound of messages fetched by the job.
    """

    preserve_flags: bool = True
    preserve_dates: bool = True
    max_emails_per_sync: int = 1000


class SyncStartRequest(WireModel):
    """Body of ``POST /sync/start``.

    Attributes:
        account_id: Account to synchronize.
        sync_type: "full" or "incremental".
        folders: IMAP folders to fetch.
        options: Job options.
    """

    account_id: Identifier
    sync_type: Literal["full", "incremental"] = "full"
    folders: list[str] = Field(default_factory=lambda: list(DEFAULT_SYNC_FOLDERS))
    options: SyncOptions = Field(default_factory=SyncOptions)


class SyncStartResponse(ActionResponse):
    """Backend answer to a sync start request.

    Attributes:
        job_id: Id of the created job, when the backend reports it.
    """

    job_id: Identifier | None = Field(None, validation_alias=AliasChoices("jobId", "job_id"))


class AsyncSyncClient(AsyncBaseClient):
    """Asynchronous client for sync job endpoints (/sync/*)."""

    _BASE_PATH = "/sync"

    async def start(self, request: SyncStartRequest) -> SyncStartResponse:
        """Start a sync job.

        Returns:
            The backend acknowledgement; ``success`` may be False with a
            message when the backend declines the job.
        """
        payload = unwrap(await self._post(f"{self._BASE_PATH}/start", json=dump_wire(request)))
        job = payload.get("job")
        job_id: Any = None
        if isinstance(job, dict):
            job_id = job.get("id") or job.get("_id")
        return parse_model(
            SyncStartResponse,
            {
                "success": payload.get("success", True),
                "message": payload.get("message"),
                "jobId": job_id,
            },
        )

    async def cleanup(self) -> ActionResponse:
        """Remove stale or finished sync jobs on the backend."""
        payload = unwrap(await self._delete(f"{self._BASE_PATH}/cleanup"))
        return parse_model(
            ActionResponse,
            {"success": payload.get("success", True), "message": payload.get("message")},
        )

    async def stop(self, job_id: str) -> ActionResponse:
        """Stop a running sync job."""
        payload = unwrap(await self._put(f"{self._BASE_PATH}/{job_id}/stop"))
        return parse_model(
            ActionResponse,
            {"success": payload.get("success", True), "message": payload.get("message")},
        )
