"""Client for the interactive story API and the branching chapter reader.

Layout:
  models    Story, Chapter, AuthSession and friends (pydantic, camelCase wire)
  errors    NotFound, Unauthorized, GenerationFailed, Conflict,
            IntegrityViolation, ServiceUnavailable
  client    StoryService protocol, HttpStoryService, login()
  cache     SessionCache and merge_chapters()
  session   BranchingSession controller and its SessionView snapshots
  demo      DemoStoryService, an in-memory backend
  reader    terminal rendering and command loop
  config    Settings from STORY_API_* environment variables
"""

# Re-export the public symbols so `from story_reader import BranchingSession` works.

from .cache import SessionCache, merge_chapters  # noqa: F401
from .client import HttpStoryService, StoryService, login  # noqa: F401
from .config import Settings, load_settings  # noqa: F401
from .demo import DemoStoryService  # noqa: F401
from .errors import (  # noqa: F401
    Conflict,
    GenerationFailed,
    IntegrityViolation,
    NotFound,
    ServiceUnavailable,
    StoryServiceError,
    Unauthorized,
)
from .models import (  # noqa: F401
    AuthSession,
    Chapter,
    ChapterContent,
    ChoicePair,
    Story,
    StoryPage,
)
from .session import BranchingSession, SessionView  # noqa: F401
