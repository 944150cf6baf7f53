import pytest

from helpers import StubStoryService, make_chapter

from story_reader.cache import SessionCache
from story_reader.session import BranchingSession


@pytest.fixture
def cache() -> SessionCache:
    return SessionCache()


@pytest.fixture
def three_chapters() -> StubStoryService:
    """Story 1 with three chapters, all offering choices."""
    return StubStoryService(chapters=[make_chapter(1), make_chapter(2), make_chapter(3)])


@pytest.fixture
def session(three_chapters: StubStoryService, cache: SessionCache) -> BranchingSession:
    return BranchingSession(three_chapters, cache=cache)
