"""
Portfolio CMS - Text Processing Utilities
=========================================
Whitespace normalization for plain-text fields and text flattening for the search projection.
"""

import json
import re
from typing import Any

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def normalize_text(text: str) -> str:
    """
    Input Guard: trim a plain-text field and collapse its whitespace.
    Only control characters are dropped; markup is stored verbatim.
    """
    if not text:
        return ""

    # Remove null bytes and other control characters
    text = _CONTROL_RE.sub(" ", text)

    # Normalize whitespace
    return re.sub(r"\s+", " ", text).strip()


def truncate_text(text: str, max_length: int = 500) -> str:
    """Truncate text to max_length, ending at a word boundary."""
    if not text or len(text) <= max_length:
        return text or ""
    truncated = text[:max_length]
    last_space = truncated.rfind(' ')
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated + "..."


def serialize_sections(sections: dict[str, Any] | None) -> str:
    """Sections as a single JSON line, key order preserved."""
    if not sections:
        return ""
    return json.dumps(sections, ensure_ascii=False, separators=(",", ":"))


def build_search_body(title: str | None, description: str | None, sections: dict[str, Any] | None) -> str:
    parts = [title or "", description or "", serialize_sections(sections)]
    return " ".join(parts).strip()


_TOKEN_RE = re.compile(r"\w{2,}", re.UNICODE)


def tokenize(text: str) -> list[str]:
    """Lowercased, de-duplicated word tokens in first-seen order."""
    seen: set[str] = set()
    tokens: list[str] = []
    for match in _TOKEN_RE.findall((text or "").lower()):
        if match not in seen:
            seen.add(match)
            tokens.append(match)
    return tokens
