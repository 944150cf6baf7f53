"""Terminal reader: renders a SessionView and drives a BranchingSession.

Commands:
  p      previous chapter
  n      next chapter
  a / b  pick an option on the latest chapter
  r      reload the chapter list from the server
  q      quit
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from story_reader.session import BranchingSession, SessionView

logger = logging.getLogger(__name__)

HELP = "[p] previous  [n] next  [a]/[b] choose  [r] reload  [q] quit"


def render_view(view: SessionView) -> str:
    """Plain-text rendering of one reader screen."""
    if view.status == "idle":
        return "No story open."
    if view.not_found:
        return "Story not found."
    if view.story is None:
        if view.error is not None:
            return f"Could not load story: {view.error}\n[r] retry  [q] quit"
        return "Loading story..."

    chapter = view.current_chapter
    if chapter is None:
        return f"{view.story.title}\n\nThis story has no chapters yet."

    latest = view.latest_chapter
    lines = [
        f"{view.story.title} | Chapter {chapter.chapter_number} of {latest.chapter_number}",
    ]
    if chapter.image_url:
        lines.append(f"[illustration] {chapter.image_url}")
    lines += ["", chapter.content.title, "", chapter.content.text, ""]

    if view.status == "advancing":
        lines.append("Writing the next chapter...")
    elif view.choices_offered:
        lines.append("What happens next?")
        lines.append(f"  [a] {chapter.choices.a}")
        lines.append(f"  [b] {chapter.choices.b}")
    elif view.is_the_end:
        lines.append("The End (for now!)")
    elif not view.is_at_latest:
        lines.append("Read on with [n] to reach the latest chapter.")

    if view.error is not None:
        lines.append(f"! {view.error}")
    lines += ["", HELP]
    return "\n".join(lines)


async def run_reader(
    session: BranchingSession,
    story_id: int,
    prompt: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
) -> None:
    """Open story_id and process commands until quit or end of input."""
    await session.open(story_id)
    out(render_view(session.view))
    try:
        while True:
            try:
                command = (await asyncio.to_thread(prompt, "> ")).strip().lower()
            except EOFError:
                break

            if command in ("q", "quit"):
                break
            elif command == "p":
                session.go_to_previous()
            elif command == "n":
                session.go_to_next()
            elif command in ("a", "b"):
                await session.advance(command.upper())
            elif command == "r":
                await session.reload()
            else:
                out(f"Unknown command {command!r}. {HELP}")
                continue
            out(render_view(session.view))
    finally:
        session.close()
        logger.debug("reader closed story=%s", story_id)
