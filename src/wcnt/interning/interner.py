from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Final

WILDCARD: Final[str] = "_"


@dataclass(frozen=True, slots=True)
class Handle:
    """Opaque identifier for an interned string.

    Handles compare and hash on a single integer. They are only meaningful for
    the interner that produced them.
    """

    index: int


class StringInterner:
    """Arena of strings with a reverse lookup table.

    Lookups of already-interned text never take the lock. Allocation is
    serialised so that two threads interning the same text get the same handle.
    """

    def __init__(self) -> None:
        self._strings: list[str] = []
        self._handles: dict[str, Handle] = {}
        self._lock = threading.Lock()
        self.wildcard = self.intern(WILDCARD)

    def __len__(self) -> int:
        return len(self._strings)

    def intern(self, text: str) -> Handle:
        handle = self._handles.get(text)
        if handle is not None:
            return handle
        with self._lock:
            handle = self._handles.get(text)
            if handle is None:
                handle = Handle(len(self._strings))
                self._strings.append(text)
                self._handles[text] = handle
            return handle

    def get(self, text: str) -> Handle | None:
        return self._handles.get(text)

    def lookup(self, handle: Handle) -> str:
        if not 0 <= handle.index < len(self._strings):
            raise KeyError(handle)
        return self._strings[handle.index]

    def lookup_optional(self, handle: Handle | None) -> str | None:
        if handle is None:
            return None
        return self.lookup(handle)
