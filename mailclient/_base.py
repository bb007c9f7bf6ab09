"""Base class for all service sub-clients.

Provides the shared request helpers and the response handling common to
every backend resource: unwrapping the ``{"success", "message", "data"}``
envelope and validating payloads into models.

This is an internal module and should not be imported directly by users.
"""

from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from mailclient.exceptions import MalformedResponseError

if TYPE_CHECKING:
    from mailclient._http import AsyncHTTPClient

ModelT = TypeVar("ModelT", bound=BaseModel)


def unwrap(body: Any) -> dict[str, Any]:
    """Flatten a backend response body into a single dict.

    The backend nests payloads under ``data`` next to top-level ``success``
    and ``message`` keys. Both levels are merged, top-level keys winning,
    so callers can read ``accounts`` or ``success`` without caring which
    level they came from. Empty bodies become an empty dict.
    """
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise MalformedResponseError("Expected a JSON object response", response_body=body)

    data = body.get("data")
    if isinstance(data, dict):
        merged = dict(data)
        merged.update({k: v for k, v in body.items() if k != "data"})
        return merged
    return dict(body)


def parse_model(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` into ``model``, raising MalformedResponseError on mismatch."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise MalformedResponseError(
            f"Unexpected {model.__name__} payload: {e.error_count()} validation error(s)",
            response_body=data,
        ) from e


def parse_models(model: type[ModelT], items: Any) -> list[ModelT]:
    """Validate a list payload item by item."""
    if items is None:
        return []
    if not isinstance(items, list):
        raise MalformedResponseError(
            f"Expected a list of {model.__name__}", response_body=items
        )
    return [parse_model(model, item) for item in items]


class AsyncBaseClient:
    """Base class for asynchronous sub-clients.

    Attributes:
        _http: The shared async HTTP client for making requests.
    """

    def __init__(self, http_client: "AsyncHTTPClient") -> None:
        self._http = http_client

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._http.get(path, params=params)

    async def _post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await self._http.post(path, json=json, params=params)

    async def _put(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await self._http.put(path, json=json, params=params)

    async def _delete(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._http.delete(path, params=params)
