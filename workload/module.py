"""
Entity modules: the list -> form -> detail workflow shared by Staff,
Course and Task.

An ``EntityModule`` owns one collection. It hydrates it from the store
(or seeds sample data on first run), derives the visible subset through
the filter engine, and runs every mutation through the permission gate
before persisting the whole collection and emitting a notification.

Handlers never raise for user mistakes: validation, permission and upload
failures become an ``error`` notification and leave the collection and
the view state exactly as they were.
"""

from __future__ import annotations

import logging
import secrets
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from workload.errors import PermissionDenied, StorageReadError, UploadError, ValidationError, WorkloadError
from workload.filters import ALL, FilterCriteria, apply_filters, filter_options
from workload.ids import next_id, next_secondary_id
from workload.kinds import STAFF, get_kind, sample_records
from workload.model import EntityKind, Record, View
from workload.notify import Notifier
from workload.permissions import Action, Role, authorize, authorize_upload, resolve_own_record
from workload.storage import Store
from workload.uploads import MAX_UPLOAD_BYTES, PendingUpload, UploadedFile, read_as_data_url, validate_image

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields."
PICTURE_FIELD = "profilePicture"


@dataclass(frozen=True)
class ConfirmationToken:
    """Issued by ``request_delete``; only ``confirm_delete`` with it deletes."""

    record_id: int
    nonce: str


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class EntityModule:
    def __init__(
        self,
        kind: EntityKind | str,
        store: Store,
        role: Role | str = Role.ADMINISTRATOR,
        identity: Optional[str] = None,
        notifier: Optional[Notifier] = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self.kind = get_kind(kind) if isinstance(kind, str) else kind
        self.store = store
        self.role = Role.parse(role)
        self.identity = identity
        self.notifier = notifier if notifier is not None else Notifier()
        self.max_upload_bytes = max_upload_bytes

        self.records: list[Record] = []
        self.view = View.LIST
        self.editing: Optional[Record] = None
        self.selected: Optional[Record] = None
        self.criteria = FilterCriteria(
            equals={name: ALL for name in self.kind.filter_fields},
            search_fields=self.kind.search_fields,
        )
        self._pending_deletes: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self) -> None:
        """
        Hydrate the collection. A missing or unreadable key is replaced by
        the sample collection, which is saved right away.
        """
        records = self._hydrate()
        if records is None:
            records = [Record.from_dict(self.kind, d) for d in sample_records(self.kind)]
            self._persist(records)
            logger.info("Seeded %d sample %s", len(records), self.kind.plural)

        self.records = records
        self.view = View.LIST
        self.editing = None
        self.selected = None
        self._pending_deletes.clear()

        # Staff users see their own profile without picking it first
        if self.role is Role.STAFF and self.kind.name == STAFF.name:
            self.selected = self.own_record()

    def _hydrate(self) -> Optional[list[Record]]:
        raw = self.store.load(self.kind.storage_key)
        if raw is None:
            return None
        try:
            records = [Record.from_dict(self.kind, d) for d in raw]
            ids = [r.id for r in records]
            if len(set(ids)) != len(ids):
                raise StorageReadError(f"{self.kind.storage_key}: duplicate record ids")
        except StorageReadError as exc:
            logger.warning("Reseeding %s: %s", self.kind.plural, exc)
            return None
        return records

    def close(self) -> None:
        self.notifier.close()
        self._pending_deletes.clear()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def visible(self) -> list[Record]:
        """The collection narrowed by the current criteria (recomputed on every access)."""
        return apply_filters(self.records, self.criteria)

    def set_filter(self, name: str, value: str) -> None:
        if name not in self.kind.filter_fields:
            raise ValueError(f"{self.kind.label} cannot be filtered by {name!r}")
        self.criteria = self.criteria.with_equal(name, value or ALL)

    def set_query(self, query: str) -> None:
        self.criteria = self.criteria.with_query(query)

    def clear_filters(self) -> None:
        self.criteria = FilterCriteria(
            equals={name: ALL for name in self.kind.filter_fields},
            search_fields=self.kind.search_fields,
        )

    def filter_options(self, name: str) -> list[str]:
        return filter_options(self.records, name)

    def find(self, record_id: int) -> Optional[Record]:
        for r in self.records:
            if r.id == record_id:
                return r
        return None

    def _get(self, record_id: int) -> Record:
        record = self.find(record_id)
        if record is None:
            raise ValidationError(f"{self.kind.label} {record_id} not found.")
        return record

    def own_record(self) -> Optional[Record]:
        """
        The staff record belonging to the session identity. Staff sessions
        fall back to the first record when no email matches.
        """
        if self.kind.name != STAFF.name:
            return None
        if self.role is Role.STAFF:
            return resolve_own_record(self.records, self.identity)
        ident = (self.identity or "").strip().lower()
        for r in self.records:
            email = r.attributes.get("email")
            if ident and isinstance(email, str) and email.strip().lower() == ident:
                return r
        return None

    def draft_defaults(self) -> dict[str, Any]:
        """Prefilled values for a new-record form (the next secondary id)."""
        return {
            self.kind.secondary_field: next_secondary_id(
                (r.secondary_id for r in self.records), self.kind.prefix, self.kind.width
            )
        }

    def form_values(self) -> dict[str, Any]:
        if self.editing is not None:
            return self.editing.to_dict(self.kind)
        return self.draft_defaults()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def start_add(self) -> bool:
        try:
            self._require(Action.CREATE)
        except WorkloadError as exc:
            self._fail(exc)
            return False
        self.editing = None
        self.view = View.FORM
        return True

    def start_edit(self, record_id: int) -> bool:
        try:
            self._require(Action.UPDATE)
            record = self._get(record_id)
        except WorkloadError as exc:
            self._fail(exc)
            return False
        self.editing = record
        self.view = View.FORM
        return True

    def cancel_form(self) -> None:
        self.editing = None
        self.view = View.LIST

    def show_list(self) -> None:
        self.view = View.LIST

    def view_record(self, record_id: int) -> Optional[Record]:
        try:
            self._require(Action.VIEW)
            record = self._get(record_id)
        except WorkloadError as exc:
            self._fail(exc)
            return None
        self.selected = record
        self.view = View.DETAIL
        return record

    def submit(self, draft: Mapping[str, Any]) -> Optional[Record]:
        """Form submit: update the record being edited, otherwise create."""
        if self.editing is not None:
            return self.update(self.editing.id, draft)
        return self.create(draft)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, draft: Mapping[str, Any]) -> Optional[Record]:
        try:
            self._require(Action.CREATE)
            self._validate(draft)
        except WorkloadError as exc:
            self._fail(exc)
            return None

        secondary = draft.get(self.kind.secondary_field)
        if _is_blank(secondary):
            secondary = self.draft_defaults()[self.kind.secondary_field]

        record = Record(
            kind=self.kind.name,
            id=next_id(r.id for r in self.records),
            secondary_id=str(secondary).strip(),
            attributes=self._attributes_from(draft),
        )
        self._commit([*self.records, record])
        logger.info("Created %s %s (%s)", self.kind.name, record.id, record.secondary_id)

        self.editing = None
        self.view = View.LIST
        self.notifier.success(self.kind.added_message)
        return record

    def update(self, record_id: int, changes: Mapping[str, Any]) -> Optional[Record]:
        """
        Merge ``changes`` into the record with ``record_id``. The numeric id
        never changes; the record keeps its position in the collection.
        """
        try:
            self._require(Action.UPDATE)
            existing = self._get(record_id)
            attributes = {**existing.attributes, **self._attributes_from(changes)}
            self._validate(attributes)
        except WorkloadError as exc:
            self._fail(exc)
            return None

        secondary = changes.get(self.kind.secondary_field)
        updated = Record(
            kind=self.kind.name,
            id=existing.id,
            secondary_id=existing.secondary_id if _is_blank(secondary) else str(secondary).strip(),
            attributes=attributes,
        )
        self._commit([updated if r.id == record_id else r for r in self.records])
        logger.info("Updated %s %s", self.kind.name, record_id)

        if self.selected is not None and self.selected.id == record_id:
            self.selected = updated
        self.editing = None
        self.view = View.LIST
        self.notifier.success(self.kind.updated_message)
        return updated

    def request_delete(self, record_id: int) -> Optional[ConfirmationToken]:
        """
        First step of a delete: check permission and existence, hand out a
        token. Nothing is removed and no notification is shown yet.
        """
        try:
            self._require(Action.DELETE)
            self._get(record_id)
        except WorkloadError as exc:
            self._fail(exc)
            return None
        token = ConfirmationToken(record_id=record_id, nonce=secrets.token_hex(8))
        self._pending_deletes[token.nonce] = record_id
        return token

    def cancel_delete(self, token: ConfirmationToken) -> None:
        self._pending_deletes.pop(token.nonce, None)

    def confirm_delete(self, token: ConfirmationToken) -> bool:
        try:
            self._require(Action.DELETE)
            if self._pending_deletes.pop(token.nonce, None) != token.record_id:
                raise ValidationError("This delete request is no longer valid.")
            self._get(token.record_id)
        except WorkloadError as exc:
            self._fail(exc)
            return False

        record_id = token.record_id
        self._commit([r for r in self.records if r.id != record_id])
        logger.info("Deleted %s %s", self.kind.name, record_id)

        if self.selected is not None and self.selected.id == record_id:
            self.selected = None
            if self.view is View.DETAIL:
                self.view = View.LIST
        if self.editing is not None and self.editing.id == record_id:
            self.editing = None
            self.view = View.LIST
        self.notifier.deleted(self.kind.deleted_message)
        return True

    def delete(self, record_id: int, confirm: Callable[[Record], bool]) -> bool:
        """Both delete steps in one call; ``confirm`` is the yes/no gate."""
        token = self.request_delete(record_id)
        if token is None:
            return False
        record = self.find(record_id)
        if record is None or not confirm(record):
            self.cancel_delete(token)
            return False
        return self.confirm_delete(token)

    # ------------------------------------------------------------------
    # Profile pictures
    # ------------------------------------------------------------------

    def begin_upload(
        self, record_id: int, upload: UploadedFile, executor: Optional[Executor] = None
    ) -> Optional[PendingUpload]:
        """
        Check the upload and start converting it. Returns None (after an
        error notification) when the caller may not upload onto this record
        or the file is not acceptable.
        """
        try:
            if self.kind.name != STAFF.name:
                raise ValidationError("Profile pictures can only be set on staff records.")
            target = self._get(record_id)
            decision = authorize_upload(self.role, target, self.records, self.identity)
            if not decision:
                raise PermissionDenied(decision.reason)
            validate_image(upload, self.max_upload_bytes)
        except WorkloadError as exc:
            self._fail(exc)
            return None
        return PendingUpload(record_id=record_id, upload=upload, future=read_as_data_url(upload, executor))

    def complete_upload(self, pending: PendingUpload) -> Optional[Record]:
        """
        Merge a finished conversion into its record and persist. Blocks
        until the conversion is done. Concurrent uploads are not ordered:
        whichever completes last wins.
        """
        try:
            exc = pending.future.exception()
            if exc is not None:
                raise UploadError(f"Could not read image: {exc}") from exc
            target = self._get(pending.record_id)
        except WorkloadError as err:
            self._fail(err)
            return None

        attributes = dict(target.attributes)
        attributes[PICTURE_FIELD] = pending.future.result()
        updated = Record(kind=target.kind, id=target.id, secondary_id=target.secondary_id, attributes=attributes)
        self._commit([updated if r.id == target.id else r for r in self.records])
        logger.info("Updated profile picture of %s %s", self.kind.name, target.id)

        if self.selected is not None and self.selected.id == target.id:
            self.selected = updated
        self.notifier.success("Profile picture updated successfully!")
        return updated

    def upload_picture(self, record_id: int, upload: UploadedFile) -> Optional[Record]:
        pending = self.begin_upload(record_id, upload)
        if pending is None:
            return None
        return self.complete_upload(pending)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, action: Action) -> None:
        decision = authorize(self.role, action, self.kind.plural)
        if not decision:
            raise PermissionDenied(decision.reason)

    def _validate(self, values: Mapping[str, Any]) -> None:
        missing = [name for name in self.kind.required if _is_blank(values.get(name))]
        if missing:
            logger.debug("Missing required %s fields: %s", self.kind.name, ", ".join(missing))
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    def _attributes_from(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in values.items() if k not in ("id", self.kind.secondary_field)}

    def _persist(self, records: list[Record]) -> None:
        self.store.save(self.kind.storage_key, [r.to_dict(self.kind) for r in records])

    def _commit(self, records: list[Record]) -> None:
        # save first: a notification always means the write was issued
        self._persist(records)
        self.records = records

    def _fail(self, exc: WorkloadError) -> None:
        logger.info("%s: %s", type(exc).__name__, exc)
        self.notifier.error(str(exc))


class Session:
    """
    The three modules of one signed-in user, sharing a store.

    Modules are activated lazily on first access, the way a tab is only
    loaded when it is opened.
    """

    def __init__(
        self,
        store: Store,
        role: Role | str = Role.ADMINISTRATOR,
        identity: Optional[str] = None,
        notification_ms: Optional[int] = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self.store = store
        self.role = Role.parse(role)
        self.identity = identity
        self.notification_ms = notification_ms
        self.max_upload_bytes = max_upload_bytes
        self._modules: dict[str, EntityModule] = {}

    def module(self, kind: EntityKind | str) -> EntityModule:
        k = get_kind(kind) if isinstance(kind, str) else kind
        if k.name not in self._modules:
            notifier = Notifier() if self.notification_ms is None else Notifier(duration_ms=self.notification_ms)
            mod = EntityModule(
                k,
                self.store,
                role=self.role,
                identity=self.identity,
                notifier=notifier,
                max_upload_bytes=self.max_upload_bytes,
            )
            mod.activate()
            self._modules[k.name] = mod
        return self._modules[k.name]

    def close(self) -> None:
        for mod in self._modules.values():
            mod.close()
        self._modules.clear()
