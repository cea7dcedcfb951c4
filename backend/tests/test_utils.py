"""
Portfolio CMS - Tests
"""

from datetime import datetime, timedelta, timezone

from app.utils.clock import next_timestamp, to_naive_utc
from app.utils.hashing import canonical_content, content_fingerprint
from app.utils.text_processing import (
    build_search_body,
    normalize_text,
    serialize_sections,
    tokenize,
    truncate_text,
)


# ── Text Processing Tests ──

class TestNormalizeText:
    def test_keeps_ordinary_punctuation(self):
        assert normalize_text("Conversion = 5% uplift") == "Conversion = 5% uplift"

    def test_keeps_words_that_look_like_handlers(self):
        assert normalize_text("Onboarding = faster") == "Onboarding = faster"

    def test_markup_is_stored_verbatim(self):
        assert normalize_text("<b>Brand</b> refresh") == "<b>Brand</b> refresh"

    def test_drops_control_characters(self):
        assert normalize_text("a\x00b\x07c") == "a b c"

    def test_collapses_whitespace(self):
        assert normalize_text("  a \n\n b  ") == "a b"

    def test_empty_string(self):
        assert normalize_text("") == ""


class TestTruncateText:
    def test_short_text_untouched(self):
        assert truncate_text("short", 50) == "short"

    def test_cuts_at_word_boundary(self):
        result = truncate_text("alpha beta gamma delta", 12)
        assert result == "alpha beta..."


class TestSearchBody:
    def test_concatenates_title_description_and_sections(self):
        body = build_search_body("Title", "Desc", {"hero": {"title": "H"}})
        assert body.startswith("Title Desc ")
        assert '"hero"' in body

    def test_empty_sections_serialize_to_nothing(self):
        assert serialize_sections({}) == ""
        assert build_search_body("Only", None, None) == "Only"

    def test_tokenize_dedupes_and_lowercases(self):
        assert tokenize("Brand brand BRAND refresh a") == ["brand", "refresh"]


# ── Hashing Tests ──

class TestContentFingerprint:
    def test_deterministic(self):
        h1 = content_fingerprint("A", None, {"hero": {"title": "H"}})
        h2 = content_fingerprint("A", None, {"hero": {"title": "H"}})
        assert h1 == h2

    def test_key_order_does_not_matter(self):
        h1 = content_fingerprint("A", "d", {"hero": {"title": "H", "text": "t"}})
        h2 = content_fingerprint("A", "d", {"hero": {"text": "t", "title": "H"}})
        assert h1 == h2

    def test_any_content_field_changes_hash(self):
        base = content_fingerprint("A", "d", {})
        assert content_fingerprint("B", "d", {}) != base
        assert content_fingerprint("A", "e", {}) != base
        assert content_fingerprint("A", "d", {"overview": {"summary": "s"}}) != base

    def test_missing_sections_equal_empty(self):
        assert canonical_content("A", None, None) == canonical_content("A", None, {})


# ── Clock Tests ──

class TestClock:
    def test_aware_values_become_naive_utc(self):
        aware = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_naive_utc(aware) == datetime(2026, 1, 1, 10, 0)

    def test_next_timestamp_never_goes_backwards(self):
        future = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)
        bumped = next_timestamp(future)
        assert bumped > future
        assert bumped - future == timedelta(microseconds=1)
