"""
Portfolio CMS - Case Study Models
=================================
Record store, version ledger and search projection for portfolio case studies.
Status values: draft | published | archived (any status may move to any other).
"""

import enum
import uuid

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer,
    JSON, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.utils.clock import utcnow


JsonDocument = JSON().with_variant(JSONB(), "postgresql")


# ── Enums ──

class CaseStudyStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentType(str, enum.Enum):
    CASE_STUDY = "case_study"
    PROJECT = "project"
    TEMPLATE = "template"


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


# ── Models ──

class CaseStudy(Base):
    __tablename__ = "case_studies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)  # auth.users.id of the creating editor

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    project_image_url = Column(String(1024), nullable=True)
    sections = Column(JsonDocument, nullable=False, default=dict)

    status = Column(
        Enum(
            CaseStudyStatus,
            name="case_study_status",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=CaseStudyStatus.DRAFT,
        index=True,
    )
    featured = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)
    tags = Column(JsonDocument, nullable=False, default=list)
    views_count = Column(Integer, nullable=False, default=0)

    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    versions = relationship(
        "CaseStudyVersion",
        back_populates="case_study",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CaseStudyVersion.version_number",
    )

    __table_args__ = (
        Index("ix_case_studies_order_updated", "order_index", "updated_at"),
    )

    def __repr__(self):
        return f"<CaseStudy(id={self.id}, title='{self.title[:40]}', status={self.status})>"


class CaseStudyVersion(Base):
    """Immutable content snapshot; only `is_current` ever flips after insert."""

    __tablename__ = "case_study_versions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    case_study_id = Column(
        Uuid,
        ForeignKey("case_studies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number = Column(Integer, nullable=False)
    content = Column(JsonDocument, nullable=False)  # {title, description, sections}
    change_summary = Column(Text, nullable=True)
    created_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    is_current = Column(Boolean, nullable=False, default=False)

    case_study = relationship("CaseStudy", back_populates="versions")
    comments = relationship(
        "VersionComment",
        back_populates="version",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="VersionComment.created_at",
    )

    __table_args__ = (
        UniqueConstraint("case_study_id", "version_number", name="uq_case_study_versions_number"),
        Index(
            "uq_case_study_versions_one_current",
            "case_study_id",
            unique=True,
            postgresql_where=is_current.is_(True),
            sqlite_where=is_current.is_(True),
        ),
        Index("ix_case_study_versions_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<CaseStudyVersion(case_study_id={self.case_study_id}, v={self.version_number}, current={self.is_current})>"


class VersionComment(Base):
    __tablename__ = "version_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    version_id = Column(
        Uuid,
        ForeignKey("case_study_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Uuid, nullable=True, index=True)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    version = relationship("CaseStudyVersion", back_populates="comments")


class SearchIndexEntry(Base):
    """Derived projection; rebuildable from source tables at any time."""

    __tablename__ = "search_index"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    content_type = Column(String(50), nullable=False, index=True)
    content_id = Column(Uuid, nullable=False, index=True)
    title = Column(Text, nullable=True)
    body = Column(Text, nullable=True)
    tags = Column(JsonDocument, nullable=False, default=list)
    # Denormalized so the access predicate can filter search hits without a join.
    owner_id = Column(Uuid, nullable=True, index=True)
    status = Column(String(16), nullable=True)
    search_vector = Column(Text().with_variant(TSVECTOR(), "postgresql"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("content_type", "content_id", name="uq_search_index_content"),
        CheckConstraint(
            "content_type IN ('case_study', 'project', 'template')",
            name="ck_search_index_content_type",
        ),
        Index("ix_search_index_search_vector", "search_vector", postgresql_using="gin"),
    )
