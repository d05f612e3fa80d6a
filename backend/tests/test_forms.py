from datetime import date

import pytest

from minara_cms.errors import ValidationError
from minara_cms.forms import (
    as_bool,
    as_date,
    as_nullable_trim,
    parse_create,
    parse_update,
    removed_blobs,
    single_uploads,
)
from minara_cms.models import Upload
from minara_cms.resource_config import get_resource

ARTICLES = get_resource("articles")
BOOKS = get_resource("books")
WRITERS = get_resource("writers")


def _article_form(**overrides):
    form = {
        "title": " Al-Fatiha ",
        "topic": "Quran",
        "writers": "Mufti Ahmed",
        "language": "english",
        "date": "2024-01-05",
        "isPublished": "yes",
    }
    form.update(overrides)
    return form


@pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes", "Y", True])
def test_as_bool_true(value):
    assert as_bool(value) is True


@pytest.mark.parametrize("value", ["0", "false", "no", "", None, "maybe", False])
def test_as_bool_false(value):
    assert as_bool(value) is False


def test_as_nullable_trim():
    assert as_nullable_trim("  x ") == "x"
    assert as_nullable_trim("   ") is None
    assert as_nullable_trim(None) is None


def test_as_date():
    assert as_date("2024-01-05") == date(2024, 1, 5)
    assert as_date("2024-01-05T10:00:00Z") == date(2024, 1, 5)
    assert as_date("") is None


def test_as_date_invalid():
    with pytest.raises(ValidationError):
        as_date("05/01/2024", "date")


def test_parse_create_coerces():
    values = parse_create(ARTICLES, _article_form())
    assert values["title"] == "Al-Fatiha"
    assert values["isPublished"] is True
    assert values["date"] == date(2024, 1, 5)
    assert values["translator"] is None
    assert values["englishDescription"] is None


def test_parse_create_missing_required():
    with pytest.raises(ValidationError) as exc:
        parse_create(ARTICLES, _article_form(topic="  ", writers=None))
    assert "topic" in exc.value.message
    assert "writers" in exc.value.message


def test_parse_create_requires_blobs():
    form = {
        "title": "Book", "isbn": "1", "description": "<p>d</p>", "author": "A",
        "bookDate": "2024-01-01", "status": "available", "category": "Fiqh",
        "isPublished": "1", "language": "urdu",
    }
    with pytest.raises(ValidationError) as exc:
        parse_create(BOOKS, form, {"coverImage": Upload(data=b"img")})
    assert "attachment" in exc.value.message


def test_parse_create_rejects_bad_choice():
    form = {"name": "A", "email": "a@example.com", "joinedDate": "2024-01-01", "status": "Retired"}
    with pytest.raises(ValidationError):
        parse_create(WRITERS, form)


def test_parse_update_only_supplied_fields():
    values = parse_update(ARTICLES, {"topic": "Hadith", "unknown": "x"})
    assert values == {"topic": "Hadith"}


def test_parse_update_rejects_blank_required():
    with pytest.raises(ValidationError):
        parse_update(ARTICLES, {"title": "  "})


def test_parse_update_allows_false_flag():
    assert parse_update(ARTICLES, {"isPublished": "false"}) == {"isPublished": False}


def test_explicit_slug_only_where_supported():
    questions = get_resource("questions")
    assert parse_update(questions, {"slug": " custom slug "})["slug"] == "custom slug"
    assert "slug" not in parse_update(ARTICLES, {"slug": "custom"})


def test_removed_blobs():
    assert removed_blobs(ARTICLES, {"removeImage": "true"}) == ["image"]
    assert removed_blobs(BOOKS, {"removeCoverImage": "1", "removeAttachment": "0"}) == ["coverImage"]


def test_single_uploads_keeps_configured_fields():
    files = {"image": [Upload(data=b"a"), Upload(data=b"b")], "other": [Upload(data=b"c")]}
    uploads = single_uploads(ARTICLES, files)
    assert list(uploads) == ["image"]
    assert uploads["image"].data == b"a"
