"""Base schema and the validation boundary for external payloads."""
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from foodswipe.core.exceptions import PayloadError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound="BaseSchema")


class BaseSchema(BaseModel):
    """Base schema accepting the backend's camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the backend (camelCase, JSON-safe, no nulls)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def reference_id(value: Any) -> Optional[str]:
    """Normalize a reference that may be an id string or an embedded document."""
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        ref = value.get("_id") or value.get("id")
        return str(ref) if ref is not None else None
    return str(value)


def parse_payload(schema: Type[SchemaT], data: Any, source: str = "payload") -> SchemaT:
    """Validate one external payload, raising PayloadError on mismatch."""
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Rejected {source} for {schema.__name__}: {e.error_count()} validation error(s)")
        raise PayloadError(f"Malformed {source}", response_data={"errors": e.errors(include_url=False)})


def parse_list(schema: Type[SchemaT], data: Any, source: str = "payload") -> List[SchemaT]:
    """Validate a list payload, skipping malformed entries.

    Some list endpoints wrap the array (``{"orders": [...]}``); the first list
    value found is used.
    """
    if isinstance(data, dict):
        data = next((value for value in data.values() if isinstance(value, list)), [])
    if not isinstance(data, list):
        raise PayloadError(f"Expected a list in {source}")

    items = []
    for raw in data:
        try:
            items.append(schema.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {schema.__name__} in {source}: {e.error_count()} error(s)")
    return items
