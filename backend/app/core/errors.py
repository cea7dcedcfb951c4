"""
Portfolio CMS - Error Taxonomy
==============================
Every failure surfaced by the case-study write path is one of these kinds.
Messages are safe to show to callers; driver text never appears in them.
"""

from __future__ import annotations

from typing import Any


class CaseStudyError(Exception):
    """Base error with a machine-readable kind and a caller-safe message."""

    kind: str = "internal_error"
    status_code: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class ValidationError(CaseStudyError):
    kind = "validation_error"
    status_code = 400

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}", details={"field": field})
        self.field = field


class ConflictError(CaseStudyError):
    kind = "conflict"
    status_code = 409

    def __init__(self, case_study_id: Any, *, expected: Any, actual: Any) -> None:
        super().__init__(
            "The case study was modified by another writer. Re-fetch the latest record and resubmit.",
            details={
                "case_study_id": str(case_study_id),
                "expected_updated_at": _iso(expected),
                "actual_updated_at": _iso(actual),
            },
        )


class NotFoundError(CaseStudyError):
    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any) -> None:
        super().__init__(
            f"{resource} {resource_id} not found",
            details={"resource": resource, "resource_id": str(resource_id)},
        )


class AuthorizationError(CaseStudyError):
    kind = "authorization_error"
    status_code = 403

    def __init__(self, action: str, resource_id: Any = None) -> None:
        details: dict[str, Any] = {"action": action}
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(f"Not authorized to {action} this case study", details=details)


class StorageError(CaseStudyError):
    kind = "storage_error"
    status_code = 503

    def __init__(self, operation: str, *, retryable: bool = True, attempts: int | None = None) -> None:
        details: dict[str, Any] = {"operation": operation}
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(
            f"Storage is temporarily unavailable while trying to {operation}",
            details=details,
            retryable=retryable,
        )


class UnconfirmedWriteError(CaseStudyError):
    kind = "unconfirmed_write"
    status_code = 504

    def __init__(self, case_study_id: Any, *, attempts: int) -> None:
        super().__init__(
            "The write could not be confirmed. Re-fetch the case study before retrying.",
            details={"case_study_id": str(case_study_id), "attempts": attempts},
        )


def _iso(value: Any) -> str | None:
    if value is None:
        return None
    isoformat = getattr(value, "isoformat", None)
    return isoformat() if isoformat else str(value)
