"""Lazy service exports so importing one service does not pull in the whole write path."""

__all__ = [
    "AuditService",
    "CaseStudyService",
    "SearchProjection",
    "VersionLedger",
]


def __getattr__(name: str):
    if name == "AuditService":
        from app.services.audit_service import AuditService

        return AuditService
    if name == "CaseStudyService":
        from app.services.case_study_service import CaseStudyService

        return CaseStudyService
    if name == "SearchProjection":
        from app.services.search_projection import SearchProjection

        return SearchProjection
    if name == "VersionLedger":
        from app.services.version_ledger import VersionLedger

        return VersionLedger
    raise AttributeError(name)
