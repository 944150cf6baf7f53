"""Core domain models.

Stories and chapters arrive from the story API as camelCase JSON; every
model accepts both the wire names and the snake_case attribute names.
Pydantic is used for validation and serialisation at every data boundary.
All models are frozen: the reader never edits a chapter.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Choice = Literal["A", "B"]
StoryMode = Literal["ONE_SHOT", "INTERACTIVE"]
StoryStatus = Literal["DRAFT", "PUBLISHED"]
Role = Literal["PARENT", "KID"]

CHOICES: tuple[Choice, ...] = ("A", "B")


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ChapterContent(WireModel):
    title: str
    text: str


class ChoicePair(WireModel):
    """The two labelled options offered at the end of a chapter."""

    a: str = Field(alias="A")
    b: str = Field(alias="B")

    def label(self, choice: Choice) -> str:
        return self.a if choice == "A" else self.b


class Chapter(WireModel):
    """One generated narrative unit. Numbering is assigned by the server."""

    id: int
    chapter_number: int = Field(ge=1)
    content: ChapterContent
    image_url: str | None = None
    original_sketch_url: str | None = None
    mood_tag: str | None = None
    choices: ChoicePair | None = None  # None on the final chapter
    created_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.choices is None


class Story(WireModel):
    """Story metadata. The server is the source of truth for chapter order."""

    id: int
    title: str
    status: StoryStatus = "DRAFT"
    mode: StoryMode
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    chapters: list[Chapter] = Field(default_factory=list)

    @property
    def is_interactive(self) -> bool:
        return self.mode == "INTERACTIVE"

    @property
    def chapter_ids(self) -> list[int]:
        return [c.id for c in self.chapters]


class StoryPage(WireModel):
    """One page of the caller's story library."""

    content: list[Story] = Field(default_factory=list)
    number: int = 0
    size: int = 0
    total_pages: int = 0
    total_elements: int = 0
    first: bool = True
    last: bool = True


class AuthSession(WireModel):
    """Credential returned by login and passed explicitly to the client."""

    token: str
    user_id: int | None = None
    username: str = ""
    role: Role | None = None

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}
