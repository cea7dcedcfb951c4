"""Utils package."""
from app.utils.clock import next_timestamp, to_naive_utc, utcnow
from app.utils.hashing import canonical_content, content_fingerprint
from app.utils.text_processing import (
    build_search_body, normalize_text, serialize_sections, tokenize, truncate_text,
)

__all__ = [
    "next_timestamp", "to_naive_utc", "utcnow",
    "canonical_content", "content_fingerprint",
    "build_search_body", "normalize_text", "serialize_sections", "tokenize", "truncate_text",
]
