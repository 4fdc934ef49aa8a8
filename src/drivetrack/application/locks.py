# -*- coding: utf-8 -*-
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass(slots=True)
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class DriveLocks:
    """One lock per drive; serializes bulk allotment runs, manual assignment and stage moves.

    An entry lives only while someone holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @contextmanager
    def hold(self, drive_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(drive_id)
            if entry is None:
                entry = self._entries[drive_id] = _Entry()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[drive_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


__all__ = ["DriveLocks"]
