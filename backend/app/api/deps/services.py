from __future__ import annotations

from fastapi import Request

from app.services.case_study_service import CaseStudyService


def get_case_study_service(request: Request) -> CaseStudyService:
    """The service instance built at startup around the app's session factory."""
    return request.app.state.case_study_service
