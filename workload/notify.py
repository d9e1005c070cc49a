"""
Transient status messages (success / error / delete).

One emitter per module holds at most one notification. A new message
replaces the previous one and restarts the expiry; ``dismiss`` closes it
by hand; ``close`` is called when the module goes away. Expiry is checked
against an injectable clock, which keeps tests free of sleeps.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from workload.model import Notification, NotificationKind

DEFAULT_DURATION_MS = 3000

Listener = Callable[[Notification], None]


class Notifier:
    def __init__(
        self,
        duration_ms: int = DEFAULT_DURATION_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration_ms = duration_ms
        self._clock = clock
        self._current: Optional[Notification] = None
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener`` with every emitted notification (used for rendering)."""
        self._listeners.append(listener)

    def emit(self, text: str, kind: NotificationKind = NotificationKind.SUCCESS) -> Notification:
        expires_at = self._clock() + self.duration_ms / 1000.0 if self.duration_ms > 0 else None
        note = Notification(text=text, kind=NotificationKind(kind), expires_at=expires_at)
        self._current = note
        for listener in list(self._listeners):
            listener(note)
        return note

    def success(self, text: str) -> Notification:
        return self.emit(text, NotificationKind.SUCCESS)

    def error(self, text: str) -> Notification:
        return self.emit(text, NotificationKind.ERROR)

    def deleted(self, text: str) -> Notification:
        return self.emit(text, NotificationKind.DELETE)

    @property
    def current(self) -> Optional[Notification]:
        """The visible notification, or None once it expired or was dismissed."""
        note = self._current
        if note is None:
            return None
        if note.expires_at is not None and self._clock() >= note.expires_at:
            self._current = None
            return None
        return note

    @property
    def visible(self) -> bool:
        return self.current is not None

    def dismiss(self) -> None:
        self._current = None

    def close(self) -> None:
        """Drop any pending notification and all listeners."""
        self._current = None
        self._listeners.clear()
