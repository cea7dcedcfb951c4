"""Models package."""
from app.models.case_study import (
    CaseStudy, CaseStudyVersion, VersionComment, SearchIndexEntry,
    CaseStudyStatus, ContentType,
)
from app.models.audit import ActionAuditLog

__all__ = [
    "CaseStudy", "CaseStudyVersion", "VersionComment", "SearchIndexEntry",
    "CaseStudyStatus", "ContentType",
    "ActionAuditLog",
]
