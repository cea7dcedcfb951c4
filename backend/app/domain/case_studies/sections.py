"""
Typed section payloads.

A case study's ``sections`` is an ordered mapping of section name to content.
The name is the tag: each name has exactly one model, every model can be
switched off with ``enabled`` without losing its content.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ValidationError


class SectionName(StrEnum):
    HERO = "hero"
    OVERVIEW = "overview"
    PROBLEM = "problem"
    PROCESS = "process"
    SHOWCASE = "showcase"
    REFLECTION = "reflection"
    GALLERY = "gallery"
    RESOURCES = "resources"


class Section(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True


class MediaImage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., min_length=1, max_length=2048)
    alt: str | None = Field(default=None, max_length=300)
    caption: str | None = Field(default=None, max_length=500)


class ProcessStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None


class ResourceLink(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., min_length=1, max_length=2048)


class HeroSection(Section):
    title: str | None = Field(default=None, max_length=300)
    subtitle: str | None = Field(default=None, max_length=300)
    text: str | None = None
    image: str | None = Field(default=None, max_length=2048)


class OverviewSection(Section):
    title: str | None = Field(default=None, max_length=300)
    summary: str | None = None


class ProblemSection(Section):
    title: str | None = Field(default=None, max_length=300)
    description: str | None = None


class ProcessSection(Section):
    title: str | None = Field(default=None, max_length=300)
    description: str | None = None
    steps: list[ProcessStep] | None = None


class ShowcaseSection(Section):
    title: str | None = Field(default=None, max_length=300)
    description: str | None = None
    images: list[MediaImage] | None = None


class ReflectionSection(Section):
    title: str | None = Field(default=None, max_length=300)
    content: str | None = None


class GallerySection(Section):
    title: str | None = Field(default=None, max_length=300)
    images: list[MediaImage] = Field(default_factory=list)


class ResourcesSection(Section):
    title: str | None = Field(default=None, max_length=300)
    links: list[ResourceLink] = Field(default_factory=list)


SECTION_MODELS: dict[SectionName, type[Section]] = {
    SectionName.HERO: HeroSection,
    SectionName.OVERVIEW: OverviewSection,
    SectionName.PROBLEM: ProblemSection,
    SectionName.PROCESS: ProcessSection,
    SectionName.SHOWCASE: ShowcaseSection,
    SectionName.REFLECTION: ReflectionSection,
    SectionName.GALLERY: GallerySection,
    SectionName.RESOURCES: ResourcesSection,
}


def parse_sections(raw: Any) -> dict[SectionName, Section]:
    """Validate a raw payload into typed sections, keeping the caller's order.

    Raises ValidationError naming the offending field, e.g. ``sections.gallery.images.0.url``.
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValidationError("sections", "must be an object keyed by section name")

    parsed: dict[SectionName, Section] = {}
    for key, payload in raw.items():
        try:
            name = SectionName(str(key))
        except ValueError:
            allowed = ", ".join(item.value for item in SectionName)
            raise ValidationError(f"sections.{key}", f"unknown section (expected one of: {allowed})") from None

        model = SECTION_MODELS[name]
        if isinstance(payload, model):
            parsed[name] = payload
            continue
        if isinstance(payload, Section):
            payload = payload.model_dump()
        if not isinstance(payload, Mapping):
            raise ValidationError(f"sections.{name.value}", "must be an object")

        try:
            parsed[name] = model.model_validate(dict(payload))
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            loc = ".".join(str(part) for part in first.get("loc", ()))
            field = f"sections.{name.value}.{loc}" if loc else f"sections.{name.value}"
            raise ValidationError(field, first.get("msg", "invalid value")) from None
    return parsed


def dump_sections(sections: Mapping[SectionName, Section]) -> dict[str, dict[str, Any]]:
    return {
        str(name): section.model_dump(mode="json", exclude_none=True)
        for name, section in sections.items()
    }


def normalize_sections(raw: Any) -> dict[str, dict[str, Any]]:
    """Validate and return the JSON form stored on the record."""
    return dump_sections(parse_sections(raw))
