"""Branching session controller: one reader's view of one story.

Session flow:
  1. open(story_id) fetches story metadata and the chapter list together,
     merges the chapters into the shared cache and puts the cursor on the
     latest chapter.
  2. go_to_previous() / go_to_next() move the cursor. They never touch the
     network and stay available while an advance is in flight.
  3. advance(choice) asks the server for the next chapter. Only allowed from
     the latest chapter, only when it offers choices, and only one at a time.
  4. The returned chapter is reconciled against the freshest sequence by
     chapter id, never by position, so refreshes that land in between
     cannot produce duplicates or gaps. A chapter numbered at or below the
     latest one at request time is an integrity violation and forces a
     full reload.

Every await is tagged with the epoch of the session that issued it. open()
and close() bump the epoch, which turns any response still in flight into
a no-op when it arrives.

The controller publishes an immutable SessionView after every transition.
Service errors are attached to the view rather than raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel, ConfigDict

from story_reader.cache import SessionCache, merge_chapters
from story_reader.client import StoryService
from story_reader.errors import (
    Conflict,
    IntegrityViolation,
    NotFound,
    StoryServiceError,
    Unauthorized,
)
from story_reader.models import CHOICES, Chapter, Choice, Story

logger = logging.getLogger(__name__)

SessionStatus = Literal["idle", "loading", "ready", "advancing"]


def _latest_index(chapters: tuple[Chapter, ...]) -> int:
    return max(len(chapters) - 1, 0)


class SessionView(BaseModel):
    """Snapshot of a reading session. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    story_id: int | None = None
    story: Story | None = None
    chapters: tuple[Chapter, ...] = ()
    cursor: int = 0
    status: SessionStatus = "idle"
    error: StoryServiceError | None = None
    not_found: bool = False

    @property
    def current_chapter(self) -> Chapter | None:
        if not self.chapters:
            return None
        return self.chapters[self.cursor]

    @property
    def latest_chapter(self) -> Chapter | None:
        return self.chapters[-1] if self.chapters else None

    @property
    def is_at_latest(self) -> bool:
        return self.cursor == len(self.chapters) - 1

    @property
    def can_go_previous(self) -> bool:
        return self.cursor > 0

    @property
    def can_go_next(self) -> bool:
        return self.cursor < len(self.chapters) - 1

    @property
    def choices_offered(self) -> bool:
        chapter = self.current_chapter
        return (
            self.is_at_latest
            and chapter is not None
            and not chapter.is_terminal
            and self.status != "advancing"
        )

    @property
    def is_the_end(self) -> bool:
        chapter = self.current_chapter
        return self.is_at_latest and chapter is not None and chapter.is_terminal


class BranchingSession:
    """Navigable, append-only view of one story's chapters.

    Args:
        service:         Anything implementing StoryService.
        cache:           Chapter cache shared with other sessions. A private
                         one is created when omitted.
        on_unauthorized: Called once per rejected token, e.g. to sign out.
    """

    def __init__(
        self,
        service: StoryService,
        cache: SessionCache | None = None,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self._service = service
        self._cache = cache if cache is not None else SessionCache()
        self._on_unauthorized = on_unauthorized
        self._view = SessionView()
        self._epoch = 0
        self._pending_epoch: int | None = None

    @property
    def view(self) -> SessionView:
        return self._view

    def _update(self, **fields) -> None:
        self._view = self._view.model_copy(update=fields)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def open(self, story_id: int) -> None:
        """Load a story and put the cursor on its latest chapter."""
        self._epoch += 1
        epoch = self._epoch
        self._pending_epoch = None
        cached = self._cache.get(story_id) or ()
        self._view = SessionView(
            story_id=story_id,
            chapters=cached,
            cursor=_latest_index(cached),
            status="loading",
        )
        logger.debug("open story=%s epoch=%d cached=%d", story_id, epoch, len(cached))

        try:
            story, chapters = await asyncio.gather(
                self._service.fetch_story(story_id),
                self._service.fetch_chapters(story_id),
                return_exceptions=True,
            )
            if epoch != self._epoch:
                logger.info("discarding stale load of story=%s", story_id)
                return

            for result in (story, chapters):
                if isinstance(result, StoryServiceError):
                    self._record_error(result)
                    return
                if isinstance(result, BaseException):
                    raise result

            merged = merge_chapters(
                self._view.chapters, self._cache.merge(story_id, chapters)
            )
            self._view = SessionView(
                story_id=story_id,
                story=story,
                chapters=merged,
                cursor=_latest_index(merged),
                status="ready",
            )
        finally:
            if epoch == self._epoch and self._view.status == "loading":
                self._update(status="ready")

    async def reload(self) -> None:
        """Refetch the chapter list and jump to the latest chapter.

        Retries the whole open() if the story itself never loaded.
        """
        view = self._view
        if view.story_id is None:
            return
        if view.story is None:
            await self.open(view.story_id)
            return
        await self._reload_chapters(view.story_id, self._epoch)

    async def _reload_chapters(self, story_id: int, epoch: int) -> None:
        try:
            chapters = await self._service.fetch_chapters(story_id)
        except StoryServiceError as e:
            if epoch == self._epoch:
                self._record_error(e)
            return
        if epoch != self._epoch:
            logger.info("discarding stale chapter list for story=%s", story_id)
            return

        merged = merge_chapters(self._view.chapters, self._cache.merge(story_id, chapters))
        self._update(chapters=merged, cursor=_latest_index(merged), error=None)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def go_to_previous(self) -> bool:
        if not self._view.can_go_previous:
            logger.debug("go_to_previous ignored at cursor=%d", self._view.cursor)
            return False
        self._update(cursor=self._view.cursor - 1)
        return True

    def go_to_next(self) -> bool:
        if not self._view.can_go_next:
            logger.debug("go_to_next ignored at cursor=%d", self._view.cursor)
            return False
        self._update(cursor=self._view.cursor + 1)
        return True

    def is_at_latest(self) -> bool:
        return self._view.is_at_latest

    # ------------------------------------------------------------------
    # Advancing
    # ------------------------------------------------------------------

    def _advance_blocker(self) -> str | None:
        view = self._view
        if view.story is None:
            return "no story loaded"
        if self._pending_epoch == self._epoch or view.status == "advancing":
            return "an advance is already pending"
        if view.status != "ready":
            return f"session is {view.status}"
        if not view.is_at_latest:
            return "not at the latest chapter"
        chapter = view.current_chapter
        if chapter is None or chapter.is_terminal:
            return "chapter offers no choices"
        return None

    async def advance(self, choice: Choice) -> Chapter | None:
        """Request the chapter that follows `choice`.

        Returns the new chapter, or None when the call was rejected, failed,
        or was superseded. Failures are left on view.error.
        """
        if choice not in CHOICES:
            raise ValueError(f"choice must be 'A' or 'B', got {choice!r}")
        reason = self._advance_blocker()
        if reason:
            logger.debug("advance(%s) rejected: %s", choice, reason)
            return None

        epoch = self._epoch
        story_id = self._view.story_id
        issued_at = self._view.latest_chapter.chapter_number
        self._pending_epoch = epoch
        self._update(status="advancing", error=None)
        try:
            return await self._advance(story_id, choice, epoch, issued_at)
        finally:
            if self._pending_epoch == epoch:
                self._pending_epoch = None
            if epoch == self._epoch and self._view.status == "advancing":
                self._update(status="ready")

    async def _advance(
        self, story_id: int, choice: Choice, epoch: int, issued_at: int
    ) -> Chapter | None:
        try:
            chapter = await self._service.request_next_chapter(story_id, choice)
        except Conflict:
            logger.info("advance on story=%s already running server-side, ignored", story_id)
            return None
        except StoryServiceError as e:
            if epoch == self._epoch:
                self._record_error(e)
            return None

        if epoch != self._epoch:
            logger.info("discarding stale chapter id=%s for story=%s", chapter.id, story_id)
            return None
        return await self._append(story_id, chapter, epoch, issued_at)

    async def _append(
        self, story_id: int, chapter: Chapter, epoch: int, issued_at: int
    ) -> Chapter | None:
        # issued_at is the latest chapter number when the request went out.
        # Anything at or below it is never a new chapter, even with a known id.
        # Above it, compare against the current view: a refresh may have
        # landed while the request was in flight.
        chapters = self._view.chapters
        known = any(c.id == chapter.id for c in chapters)
        expected = chapters[-1].chapter_number + 1 if chapters else 1
        if chapter.chapter_number <= issued_at or (
            not known and chapter.chapter_number != expected
        ):
            violation = IntegrityViolation(
                f"chapter id={chapter.id} has number {chapter.chapter_number}, "
                f"expected {expected}"
            )
            logger.warning(
                "IntegrityViolation on story=%s: %s; reloading chapters",
                story_id, violation,
            )
            await self._reload_chapters(story_id, epoch)
            return None

        merged = merge_chapters(chapters, self._cache.merge(story_id, [chapter]))
        cursor = next(i for i, c in enumerate(merged) if c.id == chapter.id)
        self._update(chapters=merged, cursor=cursor)
        return chapter

    # ------------------------------------------------------------------
    # Errors and teardown
    # ------------------------------------------------------------------

    def _record_error(self, error: StoryServiceError) -> None:
        if isinstance(error, Unauthorized):
            logger.warning("story API rejected the session token: %s", error)
            if self._on_unauthorized is not None:
                self._on_unauthorized()
        else:
            logger.info("story=%s: %s", self._view.story_id, error)
        self._update(
            error=error,
            not_found=self._view.not_found or isinstance(error, NotFound),
        )

    def dismiss_error(self) -> None:
        self._update(error=None)

    def close(self) -> None:
        """Drop the session. Responses still in flight will be ignored."""
        self._epoch += 1
        self._pending_epoch = None
        self._view = SessionView()
