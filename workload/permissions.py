"""
Role-based permission gate.

Two roles:
- Administrator: may create, update, delete and view every record
- Staff:         may view everything, and may only upload a profile
                 picture onto their own staff record

The gate is consulted by the entity modules themselves, not only by the
console surfaces, so a Staff session can never persist a mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from workload.model import Record


class Role(str, Enum):
    ADMINISTRATOR = "Administrator"
    STAFF = "Staff"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        """Accept 'Administrator', 'admin', 'staff', ... (case-insensitive)."""
        if isinstance(value, Role):
            return value
        v = (value or "").strip().lower()
        if v in ("administrator", "admin"):
            return cls.ADMINISTRATOR
        if v == "staff":
            return cls.STAFF
        raise ValueError(f"Unknown role: {value!r} (expected Administrator or Staff)")


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPLOAD_PICTURE = "upload_picture"


_ALLOWED: dict[Role, frozenset[Action]] = {
    Role.ADMINISTRATOR: frozenset(Action),
    Role.STAFF: frozenset({Action.VIEW, Action.UPLOAD_PICTURE}),
}

_VERBS = {
    Action.VIEW: "view",
    Action.CREATE: "add",
    Action.UPDATE: "edit",
    Action.DELETE: "delete",
    Action.UPLOAD_PICTURE: "upload pictures for",
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def authorize(role: Role, action: Action, plural: str = "records") -> Decision:
    """
    Decide whether ``role`` may perform ``action`` at all.

    A Staff upload is additionally limited to the caller's own record;
    see ``authorize_upload``.
    """
    if action in _ALLOWED[Role.parse(role)]:
        return Decision(True)
    return Decision(False, f"You do not have permission to {_VERBS[action]} {plural}.")


def resolve_own_record(records: Sequence[Record], identity: Optional[str]) -> Optional[Record]:
    """
    Find the caller's own staff record.

    Matches the email case-insensitively. If nothing matches (or there is
    no identity yet) the first record of the collection is used, so a
    staff session still has a profile before login is wired up.
    """
    ident = (identity or "").strip().lower()
    if ident:
        for r in records:
            email = r.attributes.get("email")
            if isinstance(email, str) and email.strip().lower() == ident:
                return r
    return records[0] if records else None


def authorize_upload(
    role: Role, target: Record, records: Sequence[Record], identity: Optional[str]
) -> Decision:
    """Administrators may upload for anyone, Staff only onto their own record."""
    role = Role.parse(role)
    decision = authorize(role, Action.UPLOAD_PICTURE)
    if not decision:
        return decision
    if role is Role.ADMINISTRATOR:
        return Decision(True)
    own = resolve_own_record(records, identity)
    if own is not None and own.id == target.id:
        return Decision(True)
    return Decision(False, "You can only upload your own profile picture.")
