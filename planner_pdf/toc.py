"""Table of contents entries captured while titles are drawn."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TocEntry:
    title: str
    page_index: int

    @property
    def page_number(self):
        """1-based number as printed in the document."""
        return self.page_index + 1


class TocRecorder:
    """Append-only list of (title, page) pairs in rendering order."""

    def __init__(self):
        self._entries = []

    def record(self, title, page_index):
        entry = TocEntry(title, page_index)
        self._entries.append(entry)
        return entry

    @property
    def entries(self):
        return tuple(self._entries)

    def __len__(self):
        return len(self._entries)
