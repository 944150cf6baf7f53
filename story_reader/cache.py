"""Per-story chapter cache shared between open readers.

Writers never overwrite an entry: every write is a merge keyed by chapter
id, so a reader that appended a chapter cannot lose one another reader
fetched in the meantime.
"""

from __future__ import annotations

from collections.abc import Iterable

from story_reader.models import Chapter


def merge_chapters(
    existing: Iterable[Chapter], incoming: Iterable[Chapter]
) -> tuple[Chapter, ...]:
    """Union two chapter sequences by id, sorted by chapter number.

    Incoming chapters replace existing ones with the same id. Merging the
    same chapters twice is a no-op.
    """
    by_id = {c.id: c for c in existing}
    for chapter in incoming:
        by_id[chapter.id] = chapter
    return tuple(sorted(by_id.values(), key=lambda c: (c.chapter_number, c.id)))


class SessionCache:
    def __init__(self) -> None:
        self._entries: dict[int, tuple[Chapter, ...]] = {}

    def get(self, story_id: int) -> tuple[Chapter, ...] | None:
        return self._entries.get(story_id)

    def merge(self, story_id: int, chapters: Iterable[Chapter]) -> tuple[Chapter, ...]:
        """Merge chapters into the entry for story_id and return the result."""
        merged = merge_chapters(self._entries.get(story_id, ()), chapters)
        self._entries[story_id] = merged
        return merged

    def invalidate(self, story_id: int) -> None:
        self._entries.pop(story_id, None)

    def clear(self) -> None:
        self._entries.clear()
