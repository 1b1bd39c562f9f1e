"""Base class for stored records and the decode step for raw documents."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from canteen.core.errors import DecodingError

RecordT = TypeVar("RecordT", bound="Record")


class Record(BaseModel):
    """Typed view over a document; ``id`` is owned by storage, not by the payload."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""

    def to_document(self) -> dict[str, Any]:
        """Serialize into the stored document shape (camelCase, JSON-safe, no id)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


def decode_record(
    model: type[RecordT],
    collection: str,
    record_id: str | None,
    data: dict[str, Any] | None,
) -> RecordT:
    """Validate a raw document into ``model``; fail closed with DecodingError."""
    if not isinstance(data, dict):
        raise DecodingError(collection, record_id, "document is not an object")
    payload = dict(data)
    if record_id is not None:
        payload["id"] = record_id
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise DecodingError(collection, record_id, f"{exc.error_count()} invalid field(s)") from exc
