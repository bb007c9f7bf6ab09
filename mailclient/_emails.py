"""Email sub-client for the mailhub backend.

This module provides AsyncEmailsClient for the synchronized-message
endpoints (/emails/*) together with the email models.

This is an internal module. Import from `mailclient` instead.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field, model_validator
from pydantic.alias_generators import to_camel

from mailclient._base import AsyncBaseClient, parse_model, unwrap
from mailclient.models import Identifier, IdentifiedModel, WireModel

# Mapping of IMAP flag names (nested ``flags`` object) to record fields
_FLAG_FIELDS = {
    "seen": "isRead",
    "flagged": "isFlagged",
    "answered": "isAnswered",
    "deleted": "isDeleted",
    "draft": "isDraft",
}


class EmailRecord(IdentifiedModel):
    """A synchronized message as listed by the backend.

    Only the header subset needed for listing is kept; bodies are fetched
    by the backend's own viewers.

    Attributes:
        id: Canonical message identifier.
        account_id: Owning account id.
        folder: IMAP folder the message lives in.
        from_address: Sender (wire key ``from``).
        subject: Subject line.
        date: Message date.
        is_read: IMAP \\Seen flag.
        is_flagged: IMAP \\Flagged flag.
        is_answered: IMAP \\Answered flag.
        is_deleted: IMAP \\Deleted flag.
        is_draft: IMAP \\Draft flag.
        snippet: Short content preview.
        has_attachments: Whether the message carries attachments.
    """

    account_id: Identifier | None = Field(
        None, validation_alias=AliasChoices("accountId", "account_id", "emailAccountId")
    )
    folder: str = "INBOX"
    from_address: str | None = Field(
        None, alias="from", validation_alias=AliasChoices("from", "from_address")
    )
    subject: str = ""
    date: datetime | None = None
    is_read: bool = False
    is_flagged: bool = False
    is_answered: bool = False
    is_deleted: bool = False
    is_draft: bool = False
    snippet: str = ""
    has_attachments: bool = False

    @model_validator(mode="before")
    @classmethod
    def _flatten_backend_document(cls, data: Any) -> Any:
        """Lift nested ``headers``/``flags``/``content`` objects to the top level."""
        if not isinstance(data, dict):
            return data
        flat = dict(data)

        headers = flat.pop("headers", None)
        if isinstance(headers, dict):
            for key in ("from", "subject", "date"):
                if key in headers:
                    flat.setdefault(key, headers[key])

        flags = flat.pop("flags", None)
        if isinstance(flags, dict):
            for imap_name, field_name in _FLAG_FIELDS.items():
                if imap_name in flags:
                    flat.setdefault(field_name, bool(flags[imap_name]))

        content = flat.get("content")
        if isinstance(content, dict):
            flat.setdefault("snippet", content.get("snippet") or (content.get("text") or "")[:200])

        sender = flat.get("from")
        if isinstance(sender, dict):
            flat["from"] = sender.get("address") or sender.get("email")
        elif isinstance(sender, list) and sender:
            first = sender[0]
            flat["from"] = first.get("address") if isinstance(first, dict) else str(first)

        account = flat.get("accountId")
        if isinstance(account, dict):
            # populated reference
            flat["accountId"] = account.get("_id") or account.get("id")

        return flat


class EmailPage(WireModel):
    """Server-reported pagination of an email listing.

    Attributes:
        page: Current 1-based page.
        limit: Page size.
        total: Total number of matching messages.
    """

    page: int = Field(1, validation_alias=AliasChoices("page", "currentPage"))
    limit: int = 20
    total: int = Field(0, validation_alias=AliasChoices("total", "totalCount"))


class EmailListResponse(WireModel):
    """Response of the email listing endpoint.

    Attributes:
        emails: The messages of the requested page.
        pagination: Server-reported pagination.
    """

    emails: list[EmailRecord] = Field(default_factory=list)
    pagination: EmailPage = Field(default_factory=EmailPage)


class AsyncEmailsClient(AsyncBaseClient):
    """Asynchronous client for email endpoints (/emails/*).

    Example:
        async with AsyncMailClient() as client:
            page = await client.emails.get_page({"folder": "INBOX"}, page=1, limit=20)
            print(f"{page.pagination.total} messages")
    """

    _BASE_PATH = "/emails"

    async def get_page(
        self,
        filters: dict[str, Any] | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> EmailListResponse:
        """List one page of synchronized messages.

        Args:
            filters: Already-cleaned wire filters (see ``clean_filters``).
            page: 1-based page number.
            limit: Page size.

        Returns:
            The page of messages plus server-reported pagination.
        """
        params: dict[str, Any] = dict(filters or {})
        params["page"] = page
        params["limit"] = limit

        payload = unwrap(await self._get(self._BASE_PATH, params=params))
        pagination = payload.get("pagination") or {}
        if isinstance(pagination, dict):
            pagination = {"limit": limit, "page": page, **pagination}
        return parse_model(
            EmailListResponse,
            {"emails": payload.get("emails") or [], "pagination": pagination},
        )

    async def get(self, email_id: str) -> EmailRecord:
        """Fetch a single message."""
        payload = unwrap(await self._get(f"{self._BASE_PATH}/{email_id}"))
        return parse_model(EmailRecord, payload.get("email"))

    async def update_flags(self, email_id: str, **flags: bool) -> EmailRecord | None:
        """Set IMAP flags on a message.

        Args:
            email_id: Message id.
            **flags: Any of is_read, is_flagged, is_answered, is_deleted, is_draft.

        Returns:
            The updated message if the backend echoes it, else None.
        """
        allowed = {"is_read", "is_flagged", "is_answered", "is_deleted", "is_draft"}
        unknown = set(flags) - allowed
        if unknown:
            raise ValueError(f"Unknown email flag(s): {', '.join(sorted(unknown))}")

        body = {to_camel(name): value for name, value in flags.items()}
        payload = unwrap(await self._put(f"{self._BASE_PATH}/{email_id}/flags", json=body))
        if isinstance(payload.get("email"), dict):
            return parse_model(EmailRecord, payload["email"])
        return None

    async def delete(self, email_id: str) -> None:
        """Delete a message from the local corpus."""
        await self._delete(f"{self._BASE_PATH}/{email_id}")
