"""Shared model helpers for the mailhub client.

The backend speaks camelCase JSON and identifies documents by either
``_id`` or ``id``. Every model here is validated at the response boundary
so that downstream code only ever sees snake_case attributes and a single
canonical ``id``.
"""

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = [
    "Identifier",
    "WireModel",
    "IdentifiedModel",
    "ActionResponse",
    "dump_wire",
    "normalize_identity",
]


def _coerce_identifier(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


# Backend ids are ObjectId strings; numeric ids from other sources are accepted as text
Identifier = Annotated[str, BeforeValidator(_coerce_identifier)]


class WireModel(BaseModel):
    """Immutable model mapped to camelCase JSON on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class IdentifiedModel(WireModel):
    """Wire model carrying the canonical identifier.

    Attributes:
        id: Canonical identifier, read from ``id`` or ``_id``.
    """

    id: Identifier = Field(
        ...,
        validation_alias=AliasChoices("id", "_id"),
        serialization_alias="id",
        description="Canonical identifier",
    )


class ActionResponse(WireModel):
    """Generic acknowledgement returned by action endpoints.

    Attributes:
        success: Whether the backend reports the action as successful.
        message: Optional human-readable message from the backend.
    """

    success: bool = Field(True, description="Whether the action succeeded")
    message: str | None = Field(None, description="Backend message")


def dump_wire(model: BaseModel) -> dict[str, Any]:
    """Serialize a model to the JSON dict the backend expects."""
    return model.model_dump(by_alias=True, exclude_none=True, mode="json")


def normalize_identity(payload: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``payload`` where ``_id`` has been folded into ``id``."""
    normalized = dict(payload)
    if "_id" in normalized:
        legacy = normalized.pop("_id")
        normalized.setdefault("id", legacy)
    if "id" in normalized:
        normalized["id"] = _coerce_identifier(normalized["id"])
    return normalized
