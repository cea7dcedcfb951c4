"""
Version ledger writer.

Every content-changing write appends one immutable snapshot and moves the
"current" pointer onto it. Content is title + description + sections; writes
that leave all three untouched append nothing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.logging import get_logger
from app.models import CaseStudy, CaseStudyVersion, VersionComment
from app.utils.hashing import canonical_content, content_fingerprint

logger = get_logger("services.version_ledger")


@dataclass(slots=True)
class LedgerStats:
    total_versions: int
    current_version_number: int | None
    first_version_at: datetime | None
    last_version_at: datetime | None
    contributors: list[uuid.UUID]


def snapshot_of(case_study: CaseStudy) -> dict[str, Any]:
    return canonical_content(case_study.title, case_study.description, case_study.sections)


def content_changed(previous: dict[str, Any] | None, current: dict[str, Any]) -> bool:
    if previous is None:
        return True
    return content_fingerprint(
        previous.get("title"), previous.get("description"), previous.get("sections")
    ) != content_fingerprint(current.get("title"), current.get("description"), current.get("sections"))


class VersionLedger:
    async def record(
        self,
        db: AsyncSession,
        case_study: CaseStudy,
        *,
        previous_content: dict[str, Any] | None,
        created_by: uuid.UUID | None,
        change_summary: str | None = None,
    ) -> CaseStudyVersion | None:
        """Append a snapshot if content differs from `previous_content`.

        Must run in the same transaction that wrote `case_study`, after the row
        lock was taken, so two writers can never both compute the same number.
        """
        content = snapshot_of(case_study)
        if not content_changed(previous_content, content):
            return None

        max_row = await db.execute(
            select(func.max(CaseStudyVersion.version_number)).where(
                CaseStudyVersion.case_study_id == case_study.id
            )
        )
        next_number = int(max_row.scalar() or 0) + 1

        # Old current goes false before the insert so the one-current index never sees two.
        await db.execute(
            update(CaseStudyVersion)
            .where(
                CaseStudyVersion.case_study_id == case_study.id,
                CaseStudyVersion.is_current.is_(True),
            )
            .values(is_current=False)
            .execution_options(synchronize_session=False)
        )

        version = CaseStudyVersion(
            case_study_id=case_study.id,
            version_number=next_number,
            content=content,
            change_summary=change_summary,
            created_by=created_by,
            created_at=case_study.updated_at,
            is_current=True,
        )
        db.add(version)
        await db.flush()

        logger.info(
            "case_study_version_recorded",
            case_study_id=str(case_study.id),
            version_number=next_number,
        )
        return version

    async def current_number(self, db: AsyncSession, case_study_id: uuid.UUID) -> int | None:
        row = await db.execute(
            select(CaseStudyVersion.version_number).where(
                CaseStudyVersion.case_study_id == case_study_id,
                CaseStudyVersion.is_current.is_(True),
            )
        )
        return row.scalar_one_or_none()

    async def list_versions(
        self,
        db: AsyncSession,
        case_study_id: uuid.UUID,
        *,
        limit: int = 50,
        with_comments: bool = False,
    ) -> list[CaseStudyVersion]:
        stmt = (
            select(CaseStudyVersion)
            .where(CaseStudyVersion.case_study_id == case_study_id)
            .order_by(CaseStudyVersion.version_number.desc())
            .limit(max(1, min(limit, 500)))
        )
        if with_comments:
            stmt = stmt.options(selectinload(CaseStudyVersion.comments))
        rows = await db.execute(stmt)
        return list(rows.scalars().all())

    async def get_version(
        self,
        db: AsyncSession,
        case_study_id: uuid.UUID,
        version_number: int,
        *,
        with_comments: bool = False,
    ) -> CaseStudyVersion | None:
        stmt = select(CaseStudyVersion).where(
            CaseStudyVersion.case_study_id == case_study_id,
            CaseStudyVersion.version_number == version_number,
        )
        if with_comments:
            stmt = stmt.options(selectinload(CaseStudyVersion.comments))
        row = await db.execute(stmt)
        return row.scalar_one_or_none()

    async def get_by_id(self, db: AsyncSession, version_id: uuid.UUID) -> CaseStudyVersion | None:
        row = await db.execute(select(CaseStudyVersion).where(CaseStudyVersion.id == version_id))
        return row.scalar_one_or_none()

    async def add_comment(
        self,
        db: AsyncSession,
        *,
        version: CaseStudyVersion,
        user_id: uuid.UUID | None,
        comment: str,
    ) -> VersionComment:
        item = VersionComment(version_id=version.id, user_id=user_id, comment=comment)
        db.add(item)
        await db.flush()
        return item

    async def stats(self, db: AsyncSession, case_study_id: uuid.UUID) -> LedgerStats:
        agg = await db.execute(
            select(
                func.count(CaseStudyVersion.id),
                func.min(CaseStudyVersion.created_at),
                func.max(CaseStudyVersion.created_at),
            ).where(CaseStudyVersion.case_study_id == case_study_id)
        )
        total, first_at, last_at = agg.one()
        contributors = await db.execute(
            select(CaseStudyVersion.created_by)
            .where(
                CaseStudyVersion.case_study_id == case_study_id,
                CaseStudyVersion.created_by.is_not(None),
            )
            .distinct()
        )
        return LedgerStats(
            total_versions=int(total or 0),
            current_version_number=await self.current_number(db, case_study_id),
            first_version_at=first_at,
            last_version_at=last_at,
            contributors=sorted(contributors.scalars().all(), key=str),
        )
