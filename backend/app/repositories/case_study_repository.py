from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.models import CaseStudy, CaseStudyStatus, CaseStudyVersion


class CaseStudyRepository:
    async def get(
        self,
        db: AsyncSession,
        case_study_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> CaseStudy | None:
        stmt = (
            select(CaseStudy)
            .where(CaseStudy.id == case_study_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = await db.execute(stmt)
        return row.scalar_one_or_none()

    async def add(self, db: AsyncSession, case_study: CaseStudy) -> CaseStudy:
        db.add(case_study)
        await db.flush()
        return case_study

    async def delete(self, db: AsyncSession, case_study_id: uuid.UUID) -> bool:
        result = await db.execute(delete(CaseStudy).where(CaseStudy.id == case_study_id))
        return (result.rowcount or 0) > 0

    async def list_visible(
        self,
        db: AsyncSession,
        *,
        visibility: ColumnElement[bool],
        status: CaseStudyStatus | None = None,
        search: str | None = None,
        featured: bool | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[CaseStudy], int]:
        filters: list[Any] = [visibility]
        if status is not None:
            filters.append(CaseStudy.status == status)
        if featured is not None:
            filters.append(CaseStudy.featured.is_(featured))
        if search:
            filters.append(func.lower(CaseStudy.title).contains(search.strip().lower(), autoescape=True))

        total_row = await db.execute(select(func.count()).select_from(CaseStudy).where(*filters))
        total = int(total_row.scalar_one() or 0)

        rows = await db.execute(
            select(CaseStudy)
            .where(*filters)
            .order_by(CaseStudy.order_index.asc(), CaseStudy.updated_at.desc(), CaseStudy.id.asc())
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(rows.scalars().all()), total

    async def list_batch(self, db: AsyncSession, *, after: uuid.UUID | None, limit: int) -> list[CaseStudy]:
        stmt = select(CaseStudy).order_by(CaseStudy.id.asc()).limit(max(1, limit))
        if after is not None:
            stmt = stmt.where(CaseStudy.id > after)
        rows = await db.execute(stmt)
        return list(rows.scalars().all())

    async def increment_views(self, db: AsyncSession, case_study_id: uuid.UUID) -> int | None:
        result = await db.execute(
            update(CaseStudy)
            .where(CaseStudy.id == case_study_id)
            .values(views_count=CaseStudy.views_count + 1)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            return None
        row = await db.execute(select(CaseStudy.views_count).where(CaseStudy.id == case_study_id))
        return row.scalar_one_or_none()

    async def current_version_numbers(
        self,
        db: AsyncSession,
        case_study_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, int]:
        if not case_study_ids:
            return {}
        rows = await db.execute(
            select(CaseStudyVersion.case_study_id, CaseStudyVersion.version_number).where(
                CaseStudyVersion.case_study_id.in_(case_study_ids),
                CaseStudyVersion.is_current.is_(True),
            )
        )
        return {case_study_id: number for case_study_id, number in rows.all()}
