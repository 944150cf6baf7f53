"""Story reader: terminal launcher for the interactive story API."""

import argparse
import asyncio
import logging
import sys
from getpass import getpass
from pathlib import Path

from pydantic import ValidationError

from story_reader import (
    AuthSession,
    BranchingSession,
    DemoStoryService,
    HttpStoryService,
    Settings,
    StoryServiceError,
    load_settings,
    login,
)
from story_reader.reader import run_reader

ROOT = Path(__file__).parent


def _service(args: argparse.Namespace, settings: Settings):
    if args.demo:
        return DemoStoryService()
    if not settings.token:
        sys.exit("STORY_API_TOKEN is not set. Run `main.py login` first, or pass --demo.")
    return HttpStoryService(
        settings.api_url, AuthSession(token=settings.token), timeout=settings.timeout
    )


async def _login(args: argparse.Namespace, settings: Settings) -> None:
    password = getpass(f"Password for {args.username}: ")
    auth = await login(settings.api_url, args.username, password, timeout=settings.timeout)
    print(f"Logged in as {auth.username} ({auth.role}).")
    print(f"export STORY_API_TOKEN={auth.token}")


async def _list(args: argparse.Namespace, settings: Settings) -> None:
    service = _service(args, settings)
    page = await service.list_stories(page=args.page, size=args.size)
    if not page.content:
        print("No stories yet.")
        return
    for story in page.content:
        print(f"{story.id:>5}  {story.mode:<11}  {story.title}")
    print(f"page {page.number + 1} of {max(page.total_pages, 1)} ({page.total_elements} stories)")


async def _read(args: argparse.Namespace, settings: Settings) -> None:
    session = BranchingSession(
        _service(args, settings),
        on_unauthorized=lambda: print("Your session has expired. Run `main.py login` again."),
    )
    await run_reader(session, args.story_id)


def main():
    parser = argparse.ArgumentParser(description="Read interactive stories in the terminal")
    parser.add_argument("--demo", action="store_true",
                        help="Use the built-in offline story instead of the API")
    parser.add_argument("--env-file", type=Path, default=None,
                        help="Settings file (default: ./.env)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log HTTP calls and session transitions")
    sub = parser.add_subparsers(dest="command", required=True)

    p_login = sub.add_parser("login", help="Exchange a username and password for a token")
    p_login.add_argument("username")

    p_list = sub.add_parser("list", help="List your stories")
    p_list.add_argument("--page", type=int, default=0)
    p_list.add_argument("--size", type=int, default=10)

    p_read = sub.add_parser("read", help="Open a story in the reader")
    p_read.add_argument("story_id", type=int)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = load_settings(args.env_file or ROOT / ".env")
    except ValidationError as e:
        sys.exit(f"Invalid settings: {e}")

    handlers = {"login": _login, "list": _list, "read": _read}
    try:
        asyncio.run(handlers[args.command](args, settings))
    except StoryServiceError as e:
        sys.exit(f"Error: {e}")
    except KeyboardInterrupt:
        print("\nBye.")


if __name__ == "__main__":
    main()
