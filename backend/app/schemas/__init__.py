"""
Portfolio CMS - Pydantic Schemas
================================
Request/Response schemas for the API layer.
"""

from app.schemas.case_study import (
    CaseStudyCreate, CaseStudyUpdate, CaseStudyRecord, CaseStudyPage,
    PublishRequest, RevertRequest, VersionCommentCreate, VersionCommentRecord,
    VersionRecord, VersionComparison, VersionStats, SearchHit,
)

__all__ = [
    "CaseStudyCreate", "CaseStudyUpdate", "CaseStudyRecord", "CaseStudyPage",
    "PublishRequest", "RevertRequest", "VersionCommentCreate", "VersionCommentRecord",
    "VersionRecord", "VersionComparison", "VersionStats", "SearchHit",
]
