"""Full-text search sub-client for the mailhub backend.

This is an internal module. Import from `mailclient` instead.
"""

from typing import Any, Literal

from pydantic import AliasChoices, Field

from mailclient._base import AsyncBaseClient, parse_model, unwrap
from mailclient._emails import EmailRecord
from mailclient.models import WireModel


class SearchResponse(WireModel):
    """Search hits for one page.

    Attributes:
        results: Matching messages, in backend ranking order.
        total_count: Total number of hits across all pages.
    """

    results: list[EmailRecord] = Field(default_factory=list)
    total_count: int = Field(0, validation_alias=AliasChoices("totalCount", "total_count", "total"))


class AsyncSearchClient(AsyncBaseClient):
    """Asynchronous client for the search endpoint (/search/search).

    Example:
        async with AsyncMailClient() as client:
            hits = await client.search.search("invoice", {"folder": "INBOX"})
            print(hits.total_count)
    """

    _BASE_PATH = "/search"

    async def search(
        self,
        query: str,
        filters: dict[str, Any] | None = None,
        sort_by: str = "relevance",
        sort_order: Literal["asc", "desc"] = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> SearchResponse:
        """Run a full-text search over synchronized messages.

        Args:
            query: Free-text query.
            filters: Already-cleaned wire filters (see ``clean_filters``).
            sort_by: Sort key understood by the backend.
            sort_order: "asc" or "desc".
            page: 1-based page number.
            limit: Page size.

        Returns:
            Hits of the requested page and the total hit count.
        """
        request_data: dict[str, Any] = {
            "query": query,
            "filters": dict(filters or {}),
            "sortBy": sort_by,
            "sortOrder": sort_order,
            "page": page,
            "limit": limit,
        }
        payload = unwrap(await self._post(f"{self._BASE_PATH}/search", json=request_data))
        return parse_model(
            SearchResponse,
            {
                "results": payload.get("results") or [],
                "totalCount": payload.get("totalCount", 0),
            },
        )
