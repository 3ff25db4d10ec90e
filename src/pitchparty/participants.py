"""Ordered waiting queue of participants."""

from __future__ import annotations

import threading


class ParticipantQueue:
    """Participants in pitch order. The head of the queue pitches next."""

    def __init__(self, names: list[str] | None = None) -> None:
        self._lock = threading.Lock()
        self._names: list[str] = _clean(names or [])

    def replace(self, text: str) -> list[str]:
        """Replace the roster with one name per line; blank lines are dropped."""
        names = _clean(text.splitlines())
        with self._lock:
            self._names = names
            return list(self._names)

    def remove(self, name: str) -> bool:
        """Remove every occurrence of ``name``. Returns True if any was removed."""
        with self._lock:
            remaining = [n for n in self._names if n != name]
            removed = len(remaining) != len(self._names)
            self._names = remaining
            return removed

    def advance(self) -> str | None:
        """Drop the head of the queue and return it (None when empty)."""
        with self._lock:
            if not self._names:
                return None
            return self._names.pop(0)

    def next(self) -> str | None:
        with self._lock:
            return self._names[0] if self._names else None

    def snapshot(self) -> list[str]:
        with self._lock:
            return list(self._names)


def _clean(names: list[str]) -> list[str]:
    return [stripped for stripped in (n.strip() for n in names) if stripped]
