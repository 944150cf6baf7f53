"""Tests for story_reader.models."""

import pytest
from pydantic import ValidationError

from helpers import CREATED, make_chapter

from story_reader.models import AuthSession, Chapter, ChoicePair, Story, StoryPage

CHAPTER_JSON = {
    "id": 7,
    "chapterNumber": 2,
    "content": {"title": "Into the Wood", "text": "Pip tiptoed."},
    "imageUrl": "https://cdn.example/7.png",
    "originalSketchUrl": None,
    "moodTag": "curious",
    "choices": {"A": "Follow the fireflies", "B": "Ask the otter"},
    "createdAt": "2025-03-01T09:30:00Z",
}


class TestChapter:
    def test_parses_wire_names(self) -> None:
        c = Chapter.model_validate(CHAPTER_JSON)
        assert c.id == 7
        assert c.chapter_number == 2
        assert c.content.title == "Into the Wood"
        assert c.image_url == "https://cdn.example/7.png"
        assert c.mood_tag == "curious"
        assert c.choices.a == "Follow the fireflies"
        assert c.choices.b == "Ask the otter"

    def test_accepts_python_names(self) -> None:
        c = make_chapter(3)
        assert c.chapter_number == 3
        assert c.id == 103

    def test_optional_fields_default_to_none(self) -> None:
        data = {k: v for k, v in CHAPTER_JSON.items()
                if k not in ("imageUrl", "originalSketchUrl", "moodTag", "choices")}
        c = Chapter.model_validate(data)
        assert c.image_url is None
        assert c.choices is None

    def test_no_choices_is_terminal(self) -> None:
        assert make_chapter(1, choices=False).is_terminal
        assert not make_chapter(1).is_terminal

    def test_chapter_number_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Chapter.model_validate({**CHAPTER_JSON, "chapterNumber": 0})

    def test_frozen(self) -> None:
        c = make_chapter(1)
        with pytest.raises(ValidationError):
            c.chapter_number = 9

    def test_dump_by_alias_uses_wire_names(self) -> None:
        dumped = Chapter.model_validate(CHAPTER_JSON).model_dump(by_alias=True)
        assert dumped["chapterNumber"] == 2
        assert dumped["choices"] == {"A": "Follow the fireflies", "B": "Ask the otter"}


class TestChoicePair:
    def test_label(self) -> None:
        pair = ChoicePair(a="left", b="right")
        assert pair.label("A") == "left"
        assert pair.label("B") == "right"


class TestStory:
    def test_required_fields(self) -> None:
        s = Story.model_validate({
            "id": 1, "title": "The Acorn", "status": "PUBLISHED",
            "mode": "INTERACTIVE", "metadata": {"mood": "happy"},
            "createdAt": "2025-03-01T09:30:00Z",
        })
        assert s.is_interactive
        assert s.chapters == []
        assert s.metadata == {"mood": "happy"}

    def test_embedded_chapters_and_ids(self) -> None:
        s = Story.model_validate({
            "id": 1, "title": "x", "mode": "ONE_SHOT",
            "createdAt": "2025-03-01T09:30:00Z",
            "chapters": [CHAPTER_JSON],
        })
        assert not s.is_interactive
        assert s.chapter_ids == [7]

    def test_invalid_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Story(id=1, title="x", mode="ENDLESS", created_at=CREATED)


class TestStoryPage:
    def test_parses_spring_page(self) -> None:
        page = StoryPage.model_validate({
            "content": [], "totalPages": 3, "totalElements": 25,
            "number": 1, "size": 10, "first": False, "last": False,
            "pageable": {"pageNumber": 1, "pageSize": 10, "offset": 10},
            "empty": True,
        })
        assert page.total_pages == 3
        assert page.total_elements == 25
        assert not page.first


class TestAuthSession:
    def test_parses_login_response(self) -> None:
        auth = AuthSession.model_validate({
            "token": "jwt", "userId": 4, "username": "mia",
            "role": "PARENT", "message": "ok",
        })
        assert auth.user_id == 4
        assert auth.role == "PARENT"

    def test_bare_token(self) -> None:
        auth = AuthSession(token="jwt")
        assert auth.user_id is None
        assert auth.headers() == {"Authorization": "Bearer jwt"}
