"""Test helpers: model builders and a scripted StoryService."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from story_reader.models import Chapter, ChapterContent, ChoicePair, Story

CREATED = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_chapter(number: int, *, id: int | None = None, choices: bool = True) -> Chapter:
    """Chapter `number`; its id defaults to 100 + number."""
    return Chapter(
        id=100 + number if id is None else id,
        chapter_number=number,
        content=ChapterContent(title=f"Chapter {number}", text=f"Text of chapter {number}."),
        choices=ChoicePair(a=f"Left {number}", b=f"Right {number}") if choices else None,
        created_at=CREATED,
    )


def make_story(story_id: int = 1, title: str = "The Glowing Acorn") -> Story:
    return Story(id=story_id, title=title, mode="INTERACTIVE", created_at=CREATED)


class StubStoryService:
    """StoryService with canned responses and call recording.

    next_chapters is consumed in order by request_next_chapter; an Exception
    entry is raised instead of returned. Set advance_gate / chapters_gate to
    an asyncio.Event to hold the corresponding call until the test sets it.
    """

    def __init__(self, story: Story | None = None, chapters: list[Chapter] | None = None) -> None:
        self.story = story or make_story()
        self.chapters: list[Chapter] = list(chapters or [])
        self.next_chapters: list[Chapter | Exception] = []
        self.story_error: Exception | None = None
        self.chapters_error: Exception | None = None
        self.advance_gate: asyncio.Event | None = None
        self.chapters_gate: asyncio.Event | None = None
        self.calls: list[tuple] = []

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def fetch_story(self, story_id: int) -> Story:
        self.calls.append(("fetch_story", story_id))
        if self.story_error is not None:
            raise self.story_error
        return self.story

    async def fetch_chapters(self, story_id: int) -> list[Chapter]:
        self.calls.append(("fetch_chapters", story_id))
        if self.chapters_gate is not None:
            await self.chapters_gate.wait()
        if self.chapters_error is not None:
            raise self.chapters_error
        return list(self.chapters)

    async def request_next_chapter(self, story_id: int, choice: str) -> Chapter:
        self.calls.append(("request_next_chapter", story_id, choice))
        if self.advance_gate is not None:
            await self.advance_gate.wait()
        result = self.next_chapters.pop(0)
        if isinstance(result, Exception):
            raise result
        return result
