from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps.rbac import get_current_actor
from app.api.deps.services import get_case_study_service
from app.api.envelope import success_envelope
from app.core.security import Actor
from app.services.case_study_service import CaseStudyService

router = APIRouter(prefix="/search", tags=["Search"])


@router.get("")
async def search_content(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    hits = await service.search(actor, q, limit=limit)
    return success_envelope(
        [item.model_dump(mode="json") for item in hits],
        meta={"query": q, "count": len(hits)},
    )
