from __future__ import annotations

from typing import List, Optional

HISTORY_LIMIT = 50


class EditHistory:
    """
    Bounded undo/redo ring over snapshots of one text value.
    The entry at `cursor` is always the current text.
    """

    def __init__(self, initial: str = "", limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = int(limit)
        self.entries: List[str] = [initial]
        self.cursor = 0

    @property
    def current(self) -> str:
        return self.entries[self.cursor]

    @property
    def can_undo(self) -> bool:
        return self.cursor > 0

    @property
    def can_redo(self) -> bool:
        return self.cursor < len(self.entries) - 1

    def reset(self, text: str = "") -> None:
        self.entries = [text]
        self.cursor = 0

    def push(self, text: str) -> None:
        if text == self.entries[self.cursor]:
            return
        del self.entries[self.cursor + 1 :]
        self.entries.append(text)
        self.cursor += 1
        if len(self.entries) > self.limit:
            del self.entries[0]
            self.cursor -= 1

    def undo(self) -> Optional[str]:
        if self.cursor <= 0:
            return None
        self.cursor -= 1
        return self.entries[self.cursor]

    def redo(self) -> Optional[str]:
        if self.cursor >= len(self.entries) - 1:
            return None
        self.cursor += 1
        return self.entries[self.cursor]
