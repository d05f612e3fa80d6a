import asyncio
from datetime import date

import pytest

from minara_cms.db import (
    affected_rows,
    build_blob_query,
    build_delete,
    build_get_query,
    build_insert,
    build_list_query,
    build_update,
)
from minara_cms.errors import ValidationError
from minara_cms.models import Upload
from minara_cms.resource_config import get_resource

ARTICLES = get_resource("articles")
QUESTIONS = get_resource("questions")
TRANSLATORS = get_resource("translators")


def test_list_excludes_deleted_by_default():
    sql, args = build_list_query(ARTICLES)
    assert "WHERE is_deleted = false" in sql
    assert "is_deleted," not in sql
    assert args == []


def test_list_include_deleted_returns_flag():
    sql, _ = build_list_query(ARTICLES, include_deleted=True)
    assert "WHERE" not in sql
    assert "is_deleted FROM articles" in sql


def test_list_filters_are_parameterized():
    sql, args = build_list_query(ARTICLES, {"topic": "Quran", "isPublished": True}, limit=10, offset=20)
    assert "topic = $1" in sql
    assert "is_published = $2" in sql
    assert sql.endswith("LIMIT $3 OFFSET $4")
    assert args == ["Quran", True, 10, 20]
    assert "Quran" not in sql


def test_list_hard_delete_table_has_no_flag():
    sql, _ = build_list_query(TRANSLATORS)
    assert "is_deleted" not in sql


def test_get_query():
    sql, args = build_get_query(ARTICLES, 7)
    assert "WHERE id = $1 AND is_deleted = false" in sql
    assert args == [7]


def test_insert_with_blob_and_name():
    values = {"writer": "Mufti", "slug": "what-is-salah"}
    upload = Upload(data=b"\x89PNG", filename="q.png", content_type="image/png")
    sql, args = build_insert(QUESTIONS, values, {"image": upload})
    assert sql.startswith("INSERT INTO questions (writer, slug, image, image_name, created_on, modified_on)")
    assert "VALUES ($1, $2, $3, $4, NOW(), NOW()) RETURNING id" in sql
    assert args == ["Mufti", "what-is-salah", b"\x89PNG", "q.png"]


def test_update_touches_only_supplied_fields():
    sql, args = build_update(ARTICLES, 7, {"topic": "Hadith", "englishTitle": "New"})
    assert sql == (
        "UPDATE articles SET topic = $1, english_title = $2, modified_on = NOW() "
        "WHERE id = $3 AND is_deleted = false"
    )
    assert args == ["Hadith", "New", 7]


def test_update_clears_blob():
    sql, args = build_update(ARTICLES, 7, {}, clear_blobs=["image"])
    assert "image = NULL" in sql
    assert args == [7]


def test_update_upload_wins_over_clear():
    sql, _ = build_update(ARTICLES, 7, {}, {"image": Upload(data=b"x")}, clear_blobs=["image"])
    assert "image = NULL" not in sql
    assert "image = $1" in sql


def test_update_without_fields_rejected():
    with pytest.raises(ValidationError):
        build_update(ARTICLES, 7, {})


def test_soft_and_hard_delete():
    sql, args = build_delete(ARTICLES, 7)
    assert sql.startswith("UPDATE articles SET is_deleted = true")
    assert "AND is_deleted = false" in sql
    assert args == [7]
    sql, _ = build_delete(TRANSLATORS, 3)
    assert sql == "DELETE FROM translators WHERE id = $1"


def test_blob_query_reads_name_field():
    sql, _ = build_blob_query(QUESTIONS, 5, "image")
    assert sql.startswith("SELECT image, image_name FROM questions")


def test_affected_rows():
    assert affected_rows("UPDATE 1") == 1
    assert affected_rows("DELETE 0") == 0
    assert affected_rows("INSERT 0 3") == 3
    assert affected_rows("") == 0


def test_store_get_record_maps_columns(store, fake_pool):
    fake_pool.handler = lambda method, sql, args: {"id": 7, "english_title": "Al-Fatiha", "is_published": True}
    row = asyncio.run(store.get_record(ARTICLES, 7))
    assert row == {"id": 7, "englishTitle": "Al-Fatiha", "isPublished": True}


def test_store_update_reports_affected(store, fake_pool):
    fake_pool.handler = lambda method, sql, args: "UPDATE 0"
    assert asyncio.run(store.update_record(ARTICLES, 7, {"topic": "x"})) == 0


def test_store_insert_gallery_inserts_children(store, fake_pool):
    fake_pool.handler = lambda method, sql, args: 42 if method == "fetchval" else None
    images = [Upload(data=b"a", filename="a.jpg", content_type="image/jpeg"), Upload(data=b"b")]
    gallery_id = asyncio.run(store.insert_gallery("Eid", None, date(2024, 4, 10), "eid", images))
    assert gallery_id == 42
    inserts = [c for c in fake_pool.calls if "INSERT INTO gallery_images" in c[1]]
    assert len(inserts) == 2
    assert inserts[0][2] == (42, b"a", "a.jpg", "image/jpeg")


def test_store_get_blob(store, fake_pool):
    fake_pool.handler = lambda method, sql, args: {"attachment": b"%PDF"}
    blob = asyncio.run(store.get_blob(get_resource("books"), 1, "attachment"))
    assert blob.data == b"%PDF"
    assert blob.content_type == "application/pdf"
