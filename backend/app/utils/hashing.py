"""
Portfolio CMS - Content Fingerprints
====================================
A case study's content is title + description + sections. Two writes carry the
same content exactly when their fingerprints match.
"""

import hashlib
import json
from typing import Any


def canonical_content(title: str | None, description: str | None, sections: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "sections": sections or {},
    }


def content_fingerprint(title: str | None, description: str | None, sections: dict[str, Any] | None) -> str:
    payload = json.dumps(
        canonical_content(title, description, sections),
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
