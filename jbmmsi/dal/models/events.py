"""
Models for change notifications and the events relayed to clients.

Every mutation of a record ends up as a RawChange handed to the relay; the relay
turns it into at most one ChangeEvent per logical write.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, Field

from jbmmsi.dal.utils import to_wire


class EntityKind(str, Enum):
    INQUIRY = "Inquiry"
    ANNOUNCEMENT = "Announcement"
    SCHOOL = "School"
    REVIEW = "Review"

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self]

    @property
    def topic(self) -> "Topic":
        return _TOPICS[self]

    @property
    def event_prefix(self) -> str:
        return self.value.lower()


class Operation(str, Enum):
    CREATED = "Created"
    UPDATED = "Updated"
    DELETED = "Deleted"

    @property
    def crud(self) -> str:
        # Same vocabulary as the Kafka envelopes.
        return {"Created": "Create", "Updated": "Update", "Deleted": "Delete"}[self.value]


class Topic(str, Enum):
    """
    What a connection can join. ALL is the state of a connection that has not joined anything specific.
    """
    ALL = "all"
    ANNOUNCEMENTS = "announcements"
    SCHOOLS = "schools"
    REVIEWS = "reviews"
    INQUIRIES = "inquiries"


_COLLECTIONS = {
    EntityKind.INQUIRY: "inquiries",
    EntityKind.ANNOUNCEMENT: "announcements",
    EntityKind.SCHOOL: "schools",
    EntityKind.REVIEW: "reviews",
}

_TOPICS = {
    EntityKind.INQUIRY: Topic.INQUIRIES,
    EntityKind.ANNOUNCEMENT: Topic.ANNOUNCEMENTS,
    EntityKind.SCHOOL: Topic.SCHOOLS,
    EntityKind.REVIEW: Topic.REVIEWS,
}


def _entity_id_as_str(v: Any) -> Any:
    if isinstance(v, ObjectId):
        return str(v)
    return v


EntityId = Annotated[str, BeforeValidator(_entity_id_as_str), Field(min_length=1)]


class RawChange(BaseModel):
    """
    A notification as received from one of the upstream sources.

    `payload` is the record as already formatted by the caller; `document` is what the dedup hash is computed from.
    `sequence` is an optional ordering token (for change streams, the clusterTime as a (time, inc) tuple).
    Tokens are only ever compared with tokens for the same record.
    """

    entity_kind: EntityKind
    operation: Operation
    entity_id: EntityId
    document: dict[str, Any] | None = None
    payload: dict[str, Any] | None = None
    sequence: int | tuple[int, int] | None = None
    source: Literal["direct", "changestream"] = "direct"


class ChangeEvent(BaseModel):
    """
    The canonical event forwarded to the connections and any other sinks.
    """

    entity_kind: EntityKind
    operation: Operation
    entity_id: str
    payload: dict[str, Any]
    source_sequence: int

    @property
    def name(self) -> str:
        return f"{self.entity_kind.event_prefix}_{self.operation.value.lower()}"

    @property
    def topic(self) -> Topic:
        return self.entity_kind.topic

    def wire_payload(self) -> dict[str, Any]:
        return to_wire(self.payload)

    def kafka_value(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "CRUD": self.operation.crud,
            "sequence": self.source_sequence,
            "value": self.wire_payload(),
        }
