"""
Portfolio CMS - Case Study Routes
=================================
CRUD, publish, version history and comments for portfolio case studies.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from app.api.deps.rbac import get_current_actor, require_authenticated
from app.api.deps.services import get_case_study_service
from app.api.envelope import success_envelope
from app.core.security import Actor
from app.models import CaseStudyStatus
from app.schemas import (
    CaseStudyCreate,
    CaseStudyUpdate,
    PublishRequest,
    RevertRequest,
    VersionCommentCreate,
)
from app.services.case_study_service import CaseStudyService

router = APIRouter(prefix="/case-studies", tags=["Case Studies"])


@router.get("")
async def list_case_studies(
    status_filter: CaseStudyStatus | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=200),
    featured: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    result = await service.list_case_studies(
        actor,
        status=status_filter,
        search=search,
        featured=featured,
        page=page,
        per_page=per_page,
    )
    return success_envelope(result.model_dump(mode="json"))


@router.post("")
async def create_case_study(
    payload: CaseStudyCreate,
    actor: Actor = Depends(require_authenticated),
    service: CaseStudyService = Depends(get_case_study_service),
):
    record = await service.create(actor, payload)
    return success_envelope(record.model_dump(mode="json"), status_code=status.HTTP_201_CREATED)


@router.get("/{case_study_id}")
async def get_case_study(
    case_study_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    record = await service.get(actor, case_study_id)
    return success_envelope(record.model_dump(mode="json"))


@router.put("/{case_study_id}")
async def update_case_study(
    case_study_id: uuid.UUID,
    payload: CaseStudyUpdate,
    actor: Actor = Depends(require_authenticated),
    service: CaseStudyService = Depends(get_case_study_service),
):
    record = await service.update(actor, case_study_id, payload)
    return success_envelope(record.model_dump(mode="json"))


@router.post("/{case_study_id}/publish")
async def publish_case_study(
    case_study_id: uuid.UUID,
    payload: PublishRequest | None = None,
    actor: Actor = Depends(require_authenticated),
    service: CaseStudyService = Depends(get_case_study_service),
):
    record = await service.publish(
        actor,
        case_study_id,
        expected_updated_at=payload.expected_updated_at if payload else None,
    )
    return success_envelope(record.model_dump(mode="json"))


@router.post("/{case_study_id}/views")
async def record_case_study_view(
    case_study_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    views = await service.record_view(actor, case_study_id)
    return success_envelope({"id": str(case_study_id), "views_count": views})


@router.delete("/{case_study_id}")
async def delete_case_study(
    case_study_id: uuid.UUID,
    confirm: bool = Query(default=False),
    actor: Actor = Depends(require_authenticated),
    service: CaseStudyService = Depends(get_case_study_service),
):
    deleted = await service.delete(actor, case_study_id, confirmed=confirm)
    return success_envelope({"id": str(case_study_id), "deleted": deleted})


# ── Version history ──

@router.get("/{case_study_id}/versions")
async def list_case_study_versions(
    case_study_id: uuid.UUID,
    limit: int = Query(default=50, ge=1, le=500),
    include_comments: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    versions = await service.list_versions(
        actor, case_study_id, limit=limit, with_comments=include_comments
    )
    return success_envelope([item.model_dump(mode="json") for item in versions])


@router.get("/{case_study_id}/versions/stats")
async def case_study_version_stats(
    case_study_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    stats = await service.version_stats(actor, case_study_id)
    return success_envelope(stats.model_dump(mode="json"))


@router.get("/{case_study_id}/versions/compare")
async def compare_case_study_versions(
    case_study_id: uuid.UUID,
    from_version: int = Query(..., alias="from", ge=1),
    to_version: int = Query(..., alias="to", ge=1),
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    comparison = await service.compare_versions(actor, case_study_id, from_version, to_version)
    return success_envelope(comparison.model_dump(mode="json"))


@router.get("/{case_study_id}/versions/{version_number}")
async def get_case_study_version(
    case_study_id: uuid.UUID,
    version_number: int,
    include_comments: bool = Query(default=True),
    actor: Actor = Depends(get_current_actor),
    service: CaseStudyService = Depends(get_case_study_service),
):
    version = await service.get_version(
        actor, case_study_id, version_number, with_comments=include_comments
    )
    return success_envelope(version.model_dump(mode="json"))


@router.post("/{case_study_id}/versions/{version_number}/revert")
async def revert_case_study_version(
    case_study_id: uuid.UUID,
    version_number: int,
    payload: RevertRequest | None = None,
    actor: Actor = Depends(require_authenticated),
    service: CaseStudyService = Depends(get_case_study_service),
):
    record = await service.revert_to_version(
        actor,
        case_study_id,
        version_number,
        reason=payload.reason if payload else None,
        expected_updated_at=payload.expected_updated_at if payload else None,
    )
    return success_envelope(record.model_dump(mode="json"))


@router.post("/versions/{version_id}/comments")
async def add_case_study_version_comment(
    version_id: uuid.UUID,
    payload: VersionCommentCreate,
    actor: Actor = Depends(require_authenticated),
    service: CaseStudyService = Depends(get_case_study_service),
):
    comment = await service.add_version_comment(actor, version_id, payload.comment)
    return success_envelope(comment.model_dump(mode="json"), status_code=status.HTTP_201_CREATED)
