"""
Search projection refresher:
- rebuilds one search_index row per case study on every write (delete, then insert)
- the body is title, description and every stored section, disabled ones included
- computes the tsvector on Postgres, a token string elsewhere
- failures never undo the primary write; they surface as a degraded-search warning
"""

from __future__ import annotations

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.security import Actor
from app.domain.case_studies.access_policy import visibility_clause
from app.models import CaseStudy, ContentType, SearchIndexEntry
from app.utils.clock import utcnow
from app.utils.text_processing import build_search_body, tokenize

logger = get_logger("services.search_projection")

SEARCH_DEGRADED = "search_index_degraded"


def _is_postgres(db: AsyncSession) -> bool:
    return db.get_bind().dialect.name == "postgresql"


class SearchProjection:
    def __init__(self, search_config: str = "english") -> None:
        self.search_config = search_config

    async def refresh(self, db: AsyncSession, case_study: CaseStudy) -> SearchIndexEntry:
        await self.remove(db, case_study.id)

        body = build_search_body(
            case_study.title,
            case_study.description,
            case_study.sections,
        )
        if _is_postgres(db):
            vector = func.to_tsvector(self.search_config, body)
        else:
            vector = " ".join(tokenize(body))

        now = utcnow()
        entry = SearchIndexEntry(
            content_type=ContentType.CASE_STUDY.value,
            content_id=case_study.id,
            title=case_study.title,
            body=body,
            tags=list(case_study.tags or []),
            owner_id=case_study.owner_id,
            status=getattr(case_study.status, "value", case_study.status),
            search_vector=vector,
            created_at=now,
            updated_at=now,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def refresh_best_effort(self, db: AsyncSession, case_study: CaseStudy) -> list[str]:
        """Refresh inside a savepoint; return warnings instead of raising."""
        try:
            async with db.begin_nested():
                await self.refresh(db, case_study)
        except SQLAlchemyError as exc:
            logger.warning(
                "search_index_refresh_failed",
                case_study_id=str(case_study.id),
                error=str(exc.__class__.__name__),
            )
            return [SEARCH_DEGRADED]
        return []

    async def remove(self, db: AsyncSession, content_id: uuid.UUID) -> None:
        await db.execute(
            delete(SearchIndexEntry).where(
                SearchIndexEntry.content_type == ContentType.CASE_STUDY.value,
                SearchIndexEntry.content_id == content_id,
            )
        )

    async def search(
        self,
        db: AsyncSession,
        query: str,
        *,
        actor: Actor,
        limit: int = 20,
    ) -> list[SearchIndexEntry]:
        stmt = select(SearchIndexEntry).where(
            visibility_clause(actor, SearchIndexEntry.owner_id, SearchIndexEntry.status)
        )
        if _is_postgres(db):
            ts_query = func.plainto_tsquery(self.search_config, query)
            stmt = stmt.where(SearchIndexEntry.search_vector.op("@@")(ts_query)).order_by(
                func.ts_rank(SearchIndexEntry.search_vector, ts_query).desc(),
                SearchIndexEntry.updated_at.desc(),
            )
        else:
            tokens = tokenize(query)
            if not tokens:
                return []
            for token in tokens:
                stmt = stmt.where(func.lower(SearchIndexEntry.body).contains(token, autoescape=True))
            stmt = stmt.order_by(SearchIndexEntry.updated_at.desc())
        rows = await db.execute(stmt.limit(max(1, min(limit, 100))))
        return list(rows.scalars().all())

    async def clear(self, db: AsyncSession) -> int:
        result = await db.execute(
            delete(SearchIndexEntry).where(SearchIndexEntry.content_type == ContentType.CASE_STUDY.value)
        )
        return result.rowcount or 0
