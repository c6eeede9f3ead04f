"""
Common types and base model configuration shared across all models.
"""

from typing import Annotated, Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, BeforeValidator, ValidationError


def _validate_object_id(v: Any) -> ObjectId:
    if isinstance(v, ObjectId):
        return v
    if isinstance(v, str) and ObjectId.is_valid(v):
        return ObjectId(v)
    raise ValueError(f"Invalid ObjectId: {v}")


PyObjectId = Annotated[ObjectId, BeforeValidator(_validate_object_id)]
"""A BSON ObjectId that accepts both ObjectId instances and valid hex strings."""


class RecordValidationError(Exception):
    """
    Raised when an incoming record fails validation.
    `messages` holds one human readable message per failed field.
    """
    def __init__(self, messages):
        super().__init__(", ".join(messages))
        self.messages = messages


class MongoBaseModel(BaseModel):
    """Base model for all MongoDB document models."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )

    def to_document(self, exclude_unset=False) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=exclude_unset)


def checked_text(value: str | None, label: str, min_length: int | None = None, max_length: int | None = None) -> str:
    """
    Trim and length check a text field, with the messages the website shows to the user.
    """
    if value is None or not value.strip():
        raise ValueError(f"{label} is required")
    value = value.strip()
    if min_length and len(value) < min_length:
        raise ValueError(f"{label} must be at least {min_length} characters long")
    if max_length and len(value) > max_length:
        raise ValueError(f"{label} cannot exceed {max_length} characters")
    return value


def checked_flag(value: bool | None, label: str) -> bool:
    """
    Flags may be left out of an update, but never cleared.
    """
    if value is None:
        raise ValueError(f"{label} must be true or false")
    return value


def _messages(model_cls, exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        field = error["loc"][0] if error["loc"] else None
        finfo = model_cls.model_fields.get(field) if field else None
        label = finfo.title if finfo and finfo.title else str(field)
        if error["type"] == "missing":
            messages.append(f"{label} is required")
        elif error["type"] == "value_error":
            # Our validators raise ValueError with a complete message.
            messages.append(str(error["ctx"]["error"]))
        else:
            messages.append(f"{label}: {error['msg']}")
    return messages


def validate_record(model_cls, data):
    """
    Validate the incoming data against the model; translate pydantic's errors into RecordValidationError.
    """
    try:
        return model_cls.model_validate(data or {})
    except ValidationError as exc:
        raise RecordValidationError(_messages(model_cls, exc)) from exc
