"""Keyed mutual exclusion inside one process."""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager

from app.domain.errors import DispatchInProgress


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class NotificationLockRegistry:
    """Hand out one lock per key (a notification id or a user and channel pair).

    Entries are reference counted and removed once nobody holds or waits for
    them, so the registry does not grow with the number of keys.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(
        self, key: Hashable, *, timeout: float, busy_message: str | None = None
    ) -> Iterator[None]:
        """Hold the lock for ``key`` or raise :class:`DispatchInProgress`."""

        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1

        acquired = entry.lock.acquire(timeout=timeout)
        try:
            if not acquired:
                raise DispatchInProgress(
                    busy_message or f"La notificación {key} ya se está procesando"
                )
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


__all__ = ["NotificationLockRegistry"]
