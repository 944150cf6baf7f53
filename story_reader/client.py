"""Story API client: HTTP connection to the story backend.

The session controller depends only on the StoryService protocol:

    async def fetch_story(self, story_id: int) -> Story: ...
    async def fetch_chapters(self, story_id: int) -> list[Chapter]: ...
    async def request_next_chapter(self, story_id: int, choice: Choice) -> Chapter: ...

Two implementations are provided:

    HttpStoryService  real HTTP client for the story REST API. Also exposes
                      the library calls (list, create, delete).
    DemoStoryService  in-memory stand-in, see story_reader.demo.

Authentication is explicit: call login() to obtain an AuthSession and pass
it to HttpStoryService. An expired token surfaces as Unauthorized; nothing
here signs the user out or redirects.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from story_reader.errors import (
    Conflict,
    GenerationFailed,
    NotFound,
    ServiceUnavailable,
    StoryServiceError,
    Unauthorized,
)
from story_reader.models import (
    AuthSession,
    Chapter,
    Choice,
    Story,
    StoryMode,
    StoryPage,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0  # AI generation is slow

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Protocol: every story service implementation must match these signatures
# ---------------------------------------------------------------------------

class StoryService(Protocol):
    async def fetch_story(self, story_id: int) -> Story: ...

    async def fetch_chapters(self, story_id: int) -> list[Chapter]: ...

    async def request_next_chapter(self, story_id: int, choice: Choice) -> Chapter: ...


# ---------------------------------------------------------------------------
# Shared request plumbing
# ---------------------------------------------------------------------------

def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict) and data.get("message"):
        return f": {data['message']}"
    return ""


def _status_error(
    e: httpx.HTTPStatusError, *, generating: bool
) -> StoryServiceError:
    status = e.response.status_code
    message = f"Story API returned HTTP {status}{_error_detail(e.response)}"
    if status == 401:
        return Unauthorized(message, status)
    if status in (403, 404):
        return NotFound(message, status)
    if status == 409:
        return Conflict(message, status)
    if status >= 500:
        if generating:
            return GenerationFailed(message, status)
        return ServiceUnavailable(message, status)
    return StoryServiceError(message, status)


async def _send(
    method: str,
    url: str,
    *,
    headers: dict[str, str],
    timeout: float,
    generating: bool = False,
    **kwargs: Any,
) -> httpx.Response:
    """Issue one request and translate every httpx failure into the taxonomy."""
    unavailable = GenerationFailed if generating else ServiceUnavailable
    logger.debug("story api %s %s", method, url)

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.request(method, url, headers=headers, **kwargs)
            resp.raise_for_status()
    except httpx.ConnectError as e:
        raise unavailable(f"Cannot connect to story API at {url}") from e
    except httpx.TimeoutException as e:
        raise unavailable(f"Story API timed out after {timeout}s") from e
    except httpx.HTTPStatusError as e:
        raise _status_error(e, generating=generating) from e
    except httpx.RequestError as e:
        raise unavailable(f"Story API request failed: {type(e).__name__}: {e}") from e

    logger.debug("story api %s %s -> %s", method, url, resp.status_code)
    return resp


def _parse(model: type[ModelT], resp: httpx.Response) -> ModelT:
    try:
        return model.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise StoryServiceError(
            f"Unexpected response format for {model.__name__}"
        ) from e


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def login(
    base_url: str,
    username: str,
    password: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> AuthSession:
    """Exchange credentials for an AuthSession.

    Raises Unauthorized on bad credentials.
    """
    url = f"{base_url.rstrip('/')}/auth/login"
    resp = await _send(
        "POST", url,
        headers={"Content-Type": "application/json"},
        timeout=timeout,
        json={"username": username, "password": password},
    )
    return _parse(AuthSession, resp)


# ---------------------------------------------------------------------------
# HttpStoryService: connects to the real backend
# ---------------------------------------------------------------------------

class HttpStoryService:
    """Async HTTP client for the story REST API.

    Endpoints (relative to base_url, e.g. "http://localhost:8080/api/v1"):
      GET    /stories                   paginated library
      GET    /stories/{id}              story metadata
      GET    /stories/{id}/chapters     ordered chapter list
      POST   /stories/{id}/chapters/next  {"userChoice": "A" | "B"}
      POST   /stories/generate-interactive  multipart prompt/mood
      POST   /stories/generate-one-shot     multipart prompt/mood/mode
      DELETE /stories/{id}

    Args:
        base_url: API root including the version prefix.
        auth:     Credential from login(); sent as a bearer token.
        timeout:  HTTP timeout in seconds. Defaults to 60.
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthSession,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return self._auth.headers()

    async def _call(
        self, method: str, path: str, *, generating: bool = False, **kwargs: Any
    ) -> httpx.Response:
        return await _send(
            method,
            f"{self._base_url}{path}",
            headers=self._headers(),
            timeout=self._timeout,
            generating=generating,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Reader calls (StoryService protocol)
    # ------------------------------------------------------------------

    async def fetch_story(self, story_id: int) -> Story:
        resp = await self._call("GET", f"/stories/{story_id}")
        return _parse(Story, resp)

    async def fetch_chapters(self, story_id: int) -> list[Chapter]:
        resp = await self._call("GET", f"/stories/{story_id}/chapters")
        try:
            data = resp.json()
            if not isinstance(data, list):
                raise ValueError("expected a JSON array")
            return [Chapter.model_validate(c) for c in data]
        except (ValueError, ValidationError) as e:
            raise StoryServiceError("Unexpected response format for chapter list") from e

    async def request_next_chapter(self, story_id: int, choice: Choice) -> Chapter:
        resp = await self._call(
            "POST", f"/stories/{story_id}/chapters/next",
            generating=True,
            json={"userChoice": choice},
        )
        return _parse(Chapter, resp)

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
        resp = await self._call(
            "GET", "/stories",
            params={"page": page, "size": size, "sortBy": sort_by, "direction": direction},
        )
        return _parse(StoryPage, resp)

    async def create_story(
        self,
        prompt: str,
        mood: str | None = None,
        mode: StoryMode = "INTERACTIVE",
    ) -> Story:
        """Ask the backend to generate a new story from a prompt.

        Fields go out as multipart form parts, which is what the API expects
        even without a file attached.
        """
        fields: dict[str, tuple[None, str]] = {"prompt": (None, prompt)}
        if mood:
            fields["mood"] = (None, mood)
        if mode == "ONE_SHOT":
            fields["mode"] = (None, mode)
            path = "/stories/generate-one-shot"
        else:
            path = "/stories/generate-interactive"
        resp = await self._call("POST", path, generating=True, files=fields)
        return _parse(Story, resp)

    async def delete_story(self, story_id: int) -> None:
        await self._call("DELETE", f"/stories/{story_id}")
