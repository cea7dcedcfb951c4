import pytest

from app.core.errors import ValidationError
from app.domain.case_studies.sections import (
    GallerySection,
    HeroSection,
    SectionName,
    normalize_sections,
    parse_sections,
)


def test_parse_sections_builds_typed_variants_in_caller_order() -> None:
    parsed = parse_sections(
        {
            "gallery": {"images": [{"url": "https://cdn.example.com/a.jpg", "alt": "A"}]},
            "hero": {"title": "H", "subtitle": "Sub"},
        }
    )

    assert list(parsed) == [SectionName.GALLERY, SectionName.HERO]
    assert isinstance(parsed[SectionName.HERO], HeroSection)
    assert isinstance(parsed[SectionName.GALLERY], GallerySection)
    assert parsed[SectionName.GALLERY].images[0].alt == "A"


def test_missing_sections_are_empty() -> None:
    assert parse_sections(None) == {}
    assert normalize_sections({}) == {}


def test_normalize_sections_drops_nulls_and_keeps_enabled_flag() -> None:
    stored = normalize_sections({"hero": {"title": "H", "subtitle": None}})
    assert stored == {"hero": {"enabled": True, "title": "H"}}


def test_sections_must_be_a_mapping() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_sections(["hero"])
    assert exc_info.value.field == "sections"


def test_unknown_section_is_named_in_error() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_sections({"footer": {"title": "x"}})
    assert exc_info.value.field == "sections.footer"
    assert "hero" in exc_info.value.message


def test_nested_field_error_names_exact_path() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_sections({"gallery": {"images": [{"alt": "no url"}]}})
    assert exc_info.value.field == "sections.gallery.images.0.url"


def test_unexpected_field_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_sections({"hero": {"title": "H", "colour": "red"}})
    assert exc_info.value.field == "sections.hero.colour"


def test_section_payload_must_be_object() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_sections({"overview": "just text"})
    assert exc_info.value.field == "sections.overview"


def test_disabled_sections_are_kept_with_their_flag() -> None:
    stored = normalize_sections(
        {
            "hero": {"title": "H"},
            "reflection": {"enabled": False, "content": "private notes"},
        }
    )
    assert stored["hero"]["enabled"] is True
    assert stored["reflection"]["enabled"] is False
    assert stored["reflection"]["content"] == "private notes"
