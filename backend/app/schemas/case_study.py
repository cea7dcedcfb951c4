"""
Portfolio CMS - Case Study Schemas
==================================
Request/Response schemas for case studies, their versions and search hits.
Sections stay loosely typed here; the service validates them against the
per-section models so errors name the exact offending field.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.models.case_study import CaseStudyStatus


# ── Write Schemas ──

class CaseStudyCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    sections: Optional[Any] = None
    project_image_url: Optional[str] = Field(None, max_length=1024)
    status: CaseStudyStatus = CaseStudyStatus.DRAFT
    featured: bool = False
    order_index: int = 0
    tags: list[str] = Field(default_factory=list)
    change_summary: Optional[str] = Field(None, max_length=500)


class CaseStudyUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    sections: Optional[Any] = None
    project_image_url: Optional[str] = Field(None, max_length=1024)
    status: Optional[CaseStudyStatus] = None
    featured: Optional[bool] = None
    order_index: Optional[int] = None
    tags: Optional[list[str]] = None
    change_summary: Optional[str] = Field(None, max_length=500)
    expected_updated_at: Optional[datetime] = None


class PublishRequest(BaseModel):
    expected_updated_at: Optional[datetime] = None


class RevertRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    expected_updated_at: Optional[datetime] = None


class VersionCommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=4000)


# ── Read Schemas ──

class CaseStudyRecord(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: Optional[str] = None
    project_image_url: Optional[str] = None
    sections: dict[str, Any] = Field(default_factory=dict)
    status: CaseStudyStatus
    featured: bool
    order_index: int
    tags: list[str] = Field(default_factory=list)
    views_count: int = 0
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    current_version_number: Optional[int] = None
    warnings: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CaseStudyPage(BaseModel):
    items: list[CaseStudyRecord]
    total: int
    page: int
    per_page: int


class VersionCommentRecord(BaseModel):
    id: uuid.UUID
    version_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    comment: str
    created_at: datetime

    class Config:
        from_attributes = True


class VersionRecord(BaseModel):
    id: uuid.UUID
    case_study_id: uuid.UUID
    version_number: int
    content: dict[str, Any]
    change_summary: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    is_current: bool
    comments: list[VersionCommentRecord] = Field(default_factory=list)


class VersionComparison(BaseModel):
    case_study_id: uuid.UUID
    from_version: int
    to_version: int
    fields: dict[str, Any]
    sections: dict[str, Any]
    identical: bool


class VersionStats(BaseModel):
    case_study_id: uuid.UUID
    total_versions: int
    current_version_number: Optional[int] = None
    first_version_at: Optional[datetime] = None
    last_version_at: Optional[datetime] = None
    contributors: list[uuid.UUID] = Field(default_factory=list)


class SearchHit(BaseModel):
    content_type: str
    content_id: uuid.UUID
    title: Optional[str] = None
    snippet: str = ""
    tags: list[str] = Field(default_factory=list)
    status: Optional[str] = None
