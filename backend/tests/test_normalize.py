import pytest

from minara_cms.errors import ValidationError
from minara_cms.resource_config import get_resource
from minara_cms.text.language import Language
from minara_cms.text.normalize import (
    derive_slug,
    normalize_row,
    preview_text,
    record_slug,
    representative_title,
    slug_source,
    variant_blocks,
)

ARTICLES = get_resource("articles")
QUESTIONS = get_resource("questions")


def test_representative_title_prefers_primary(al_fatiha_article):
    assert representative_title(al_fatiha_article, ARTICLES) == "Al-Fatiha: An Introduction"


def test_representative_title_follows_language_order():
    row = {"questionEnglish": " ", "questionUrdu": "نماز کیا ہے؟", "questionHindi": "नमाज़"}
    assert representative_title(row, QUESTIONS) == "نماز کیا ہے؟"
    order = (Language.HINDI, Language.URDU, Language.ENGLISH, Language.ROMAN_URDU)
    assert representative_title(row, QUESTIONS, order) == "नमाज़"


def test_preview_strips_html_and_clamps():
    row = {"englishDescription": "<p>" + "Long text " * 40 + "</p>"}
    preview = preview_text(row, ARTICLES, length=50)
    assert "<" not in preview
    assert len(preview) <= 51
    assert preview.endswith("…")


def test_preview_empty_when_no_variants():
    assert preview_text({"title": "Only a title"}, ARTICLES) == ""


def test_slug_source_explicit_slug_first():
    row = {"slug": "What Is Salah", "questionEnglish": "Another question"}
    assert slug_source(row, QUESTIONS) == "What Is Salah"


def test_slug_source_skips_unsluggable():
    row = {"questionUrdu": "نماز کیا ہے؟", "questionRoman": "Namaz kya hai?"}
    assert slug_source(row, QUESTIONS) == "Namaz kya hai?"


def test_record_slug_falls_back_to_singular():
    row = {"title": "سورۃ الفاتحہ"}
    assert record_slug(row, ARTICLES) == "article"


def test_derive_slug_requires_a_title():
    with pytest.raises(ValidationError):
        derive_slug({"questionEnglish": "  ", "answerEnglish": "text"}, QUESTIONS)


def test_derive_slug(al_fatiha_article):
    assert derive_slug(al_fatiha_article, ARTICLES) == "al-fatiha-an-introduction"


def test_variant_blocks(al_fatiha_article):
    blocks = variant_blocks(al_fatiha_article, ARTICLES)
    assert [b["language"] for b in blocks] == ["english", "urdu"]
    assert blocks[0]["direction"] == "ltr"
    assert blocks[1]["direction"] == "rtl"
    assert "<script" not in blocks[0]["html"]
    assert "onclick=" not in blocks[0]["html"]
    assert "The opening chapter." in blocks[0]["html"]


def test_normalize_row_adds_derived_fields(al_fatiha_article):
    row = normalize_row(al_fatiha_article, ARTICLES)
    assert row["slug"] == "al-fatiha-an-introduction"
    assert row["preview"].startswith("The opening chapter.")
    assert row["direction"] == "ltr"
    assert row["id"] == 7
