"""
Central data model definitions used across the project.

This module defines the canonical structure of records, entity kinds and
notifications so that:
- the store, the modules and the console surfaces share the same field names
- every kind (Staff, Course, Task) has the same identifying contract
  (``id`` + secondary id) with a kind-specific attribute payload
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from workload.errors import StorageReadError


class View(str, Enum):
    """The three tabs every entity module can show."""

    LIST = "list"
    FORM = "form"
    DETAIL = "detail"


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    DELETE = "delete"


@dataclass(frozen=True)
class EntityKind:
    """
    Static description of one managed record kind.

    storage_key:     key of the collection in the persistent store
    secondary_field: name of the human-readable id in stored records
    prefix/width:    secondary id format, e.g. STAFF + 3 digits
    required:        fields that must be non-blank on create and update
    search_fields:   fields matched by the free-text query
    filter_fields:   fields offered as equality filters ("All" disables)
    title_field:     field used as the display name of a record
    """

    name: str
    label: str
    plural: str
    storage_key: str
    secondary_field: str
    prefix: str
    required: tuple[str, ...]
    search_fields: tuple[str, ...]
    filter_fields: tuple[str, ...]
    title_field: str
    added_message: str
    updated_message: str
    deleted_message: str
    width: int = 3

    def format_secondary_id(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.width}d}"

    def title_of(self, record: "Record") -> str:
        value = record.attributes.get(self.title_field)
        return "" if value is None else str(value)


@dataclass
class Record:
    """
    One record of a collection.

    ``id`` is the numeric primary key, unique within its collection and
    never changed by an update. ``secondary_id`` is the formatted code
    shown to users (STAFF003, COURSE012, T004). Everything else is kept
    in ``attributes`` exactly as it is stored.
    """

    kind: str
    id: int
    secondary_id: str
    attributes: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        if name == "id":
            return self.id
        return self.attributes.get(name, default)

    def to_dict(self, kind: EntityKind) -> dict[str, Any]:
        """
        Flatten to the stored JSON shape:
        {"id": 3, "staffId": "STAFF003", "name": ..., ...}
        """
        out: dict[str, Any] = {"id": self.id, kind.secondary_field: self.secondary_id}
        for key, value in self.attributes.items():
            if key in ("id", kind.secondary_field):
                continue
            out[key] = value
        return out

    @classmethod
    def from_dict(cls, kind: EntityKind, data: Any) -> "Record":
        """
        Build a record from one stored object.

        Records written before secondary ids existed get one derived from
        their numeric id. Raises StorageReadError for anything that is not
        an object with an integer id.
        """
        if not isinstance(data, dict):
            raise StorageReadError(f"{kind.storage_key}: expected an object, got {type(data).__name__}")

        raw_id = data.get("id")
        # bool is an int subclass, but never a valid id
        if isinstance(raw_id, bool) or not isinstance(raw_id, int):
            raise StorageReadError(f"{kind.storage_key}: record without integer id: {raw_id!r}")

        secondary = data.get(kind.secondary_field)
        if not isinstance(secondary, str) or not secondary.strip():
            secondary = kind.format_secondary_id(raw_id)

        attributes = {k: v for k, v in data.items() if k not in ("id", kind.secondary_field)}
        return cls(kind=kind.name, id=raw_id, secondary_id=secondary.strip(), attributes=attributes)


@dataclass
class Notification:
    """
    A transient status message.

    ``expires_at`` is measured on the owning emitter's clock; ``None`` means
    the message stays until it is dismissed.
    """

    text: str
    kind: NotificationKind
    expires_at: Optional[float] = None
