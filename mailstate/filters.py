"""Filter merging and cleaning.

Filters are cleaned before every listing or search request so that an
absent filter, a None filter and an empty-string filter all look the same
to the backend: the key is simply not sent.
"""

from collections.abc import Mapping
from typing import Any

from mailstate.state import SearchFilters


def validate_filter_updates(updates: Mapping[str, Any]) -> dict[str, Any]:
    """Validate ``updates`` against the filter schema.

    Args:
        updates: New values keyed by filter name (snake_case or wire name).

    Returns:
        The validated updates keyed by snake_case field name, ready to be
        shallow-merged into the current filters.

    Raises:
        pydantic.ValidationError: On unknown filter names or invalid values.
    """
    provided = SearchFilters.model_validate(dict(updates))
    # model_fields_set holds snake_case names regardless of the key style used
    return {name: getattr(provided, name) for name in provided.model_fields_set}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def clean_filters(filters: SearchFilters | Mapping[str, Any] | None) -> dict[str, Any]:
    """Return the wire form of ``filters`` with empty values removed.

    ``False`` is a meaningful filter value (e.g. unread only) and is kept.

    Args:
        filters: A SearchFilters instance or a plain mapping of wire names.

    Returns:
        camelCase keys mapped to JSON-ready values.
    """
    if filters is None:
        return {}
    if isinstance(filters, SearchFilters):
        raw = filters.model_dump(by_alias=True, mode="json")
    else:
        raw = dict(filters)
    return {key: value for key, value in raw.items() if not _is_empty(value)}
