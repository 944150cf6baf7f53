"""In-memory story service for offline reading and smoke tests.

Implements the StoryService protocol plus the library calls without any
network access. Chapters are stitched together from canned fragments so
the branching flow can be exercised end to end; after `max_chapters` the
story ends with a chapter that offers no choices.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from story_reader.errors import Conflict, NotFound
from story_reader.models import (
    Chapter,
    ChapterContent,
    ChoicePair,
    Choice,
    Story,
    StoryMode,
    StoryPage,
)

logger = logging.getLogger(__name__)

_OPENING = (
    "Pip the little fox found a glowing acorn at the edge of the Whispering "
    "Wood. It hummed softly, as if it wanted to be followed."
)

_BRANCHES: dict[Choice, tuple[str, str]] = {
    "A": (
        "Into the Wood",
        "Pip tiptoed between the tall trees. Fireflies gathered around the "
        "acorn and lit a path of tiny lanterns.",
    ),
    "B": (
        "Down by the River",
        "Pip followed the humming to the riverbank, where a sleepy otter was "
        "building a raft out of leaves.",
    ),
}

_NEXT_CHOICES = ChoicePair(a="Follow the fireflies", b="Ask the otter for help")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DemoStoryService:
    """StoryService backed by dicts. One interactive story is seeded as id 1."""

    def __init__(self, max_chapters: int = 5) -> None:
        self._max_chapters = max_chapters
        self._stories: dict[int, Story] = {}
        self._chapters: dict[int, list[Chapter]] = {}
        self._next_story_id = 1
        self._next_chapter_id = 1
        self.create_story_sync("A fox finds a magic acorn", mood="curious")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, story_id: int) -> Story:
        story = self._stories.get(story_id)
        if story is None:
            raise NotFound(f"Story {story_id} not found", 404)
        return story

    def _new_chapter(self, story_id: int, title: str, text: str, terminal: bool) -> Chapter:
        chapters = self._chapters[story_id]
        chapter = Chapter(
            id=self._next_chapter_id,
            chapter_number=len(chapters) + 1,
            content=ChapterContent(title=title, text=text),
            mood_tag=self._stories[story_id].metadata.get("mood"),
            choices=None if terminal else _NEXT_CHOICES,
            created_at=_now(),
        )
        self._next_chapter_id += 1
        chapters.append(chapter)
        return chapter

    def create_story_sync(
        self, prompt: str, mood: str | None = None, mode: StoryMode = "INTERACTIVE"
    ) -> Story:
        story_id = self._next_story_id
        self._next_story_id += 1
        self._stories[story_id] = Story(
            id=story_id,
            title=prompt.strip().capitalize() or "Untitled",
            status="PUBLISHED",
            mode=mode,
            metadata={"prompt": prompt, "mood": mood} if mood else {"prompt": prompt},
            created_at=_now(),
        )
        self._chapters[story_id] = []
        self._new_chapter(
            story_id, "The Glowing Acorn", _OPENING, terminal=mode == "ONE_SHOT"
        )
        return self._stories[story_id]

    # ------------------------------------------------------------------
    # StoryService protocol
    # ------------------------------------------------------------------

    async def fetch_story(self, story_id: int) -> Story:
        story = self._require(story_id)
        return story.model_copy(update={"chapters": list(self._chapters[story_id])})

    async def fetch_chapters(self, story_id: int) -> list[Chapter]:
        self._require(story_id)
        return list(self._chapters[story_id])

    async def request_next_chapter(self, story_id: int, choice: Choice) -> Chapter:
        self._require(story_id)
        if self._chapters[story_id][-1].is_terminal:
            raise Conflict(f"Story {story_id} has already ended", 409)
        title, text = _BRANCHES[choice]
        number = len(self._chapters[story_id]) + 1
        terminal = number >= self._max_chapters
        if terminal:
            title, text = "Home Again", text + " And then Pip curled up and fell fast asleep."
        logger.debug("demo story=%s choice=%s -> chapter %d", story_id, choice, number)
        return self._new_chapter(story_id, title, text, terminal)

    # ------------------------------------------------------------------
    # Library calls
    # ------------------------------------------------------------------

    async def list_stories(
        self,
        page: int = 0,
        size: int = 10,
        sort_by: str = "createdAt",
        direction: str = "DESC",
    ) -> StoryPage:
        stories = sorted(self._stories.values(), key=lambda s: (s.created_at, s.id))
        if direction == "DESC":
            stories.reverse()
        total = len(stories)
        total_pages = (total + size - 1) // size if size else 0
        return StoryPage(
            content=stories[page * size:(page + 1) * size],
            number=page,
            size=size,
            total_pages=total_pages,
            total_elements=total,
            first=page == 0,
            last=page >= total_pages - 1,
        )

    async def create_story(
        self, prompt: str, mood: str | None = None, mode: StoryMode = "INTERACTIVE"
    ) -> Story:
        return self.create_story_sync(prompt, mood=mood, mode=mode)

    async def delete_story(self, story_id: int) -> None:
        self._require(story_id)
        del self._stories[story_id]
        del self._chapters[story_id]
