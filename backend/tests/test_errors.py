from datetime import datetime

from app.core.errors import (
    AuthorizationError,
    CaseStudyError,
    ConflictError,
    NotFoundError,
    StorageError,
    UnconfirmedWriteError,
    ValidationError,
)


def test_every_kind_is_a_case_study_error_with_distinct_status() -> None:
    errors = [
        ValidationError("title", "is required"),
        ConflictError("cs-1", expected=datetime(2026, 1, 1), actual=datetime(2026, 1, 2)),
        NotFoundError("case study", "cs-1"),
        AuthorizationError("write", "cs-1"),
        StorageError("update case study"),
        UnconfirmedWriteError("cs-1", attempts=3),
    ]
    assert all(isinstance(item, CaseStudyError) for item in errors)
    assert [item.status_code for item in errors] == [400, 409, 404, 403, 503, 504]
    assert len({item.kind for item in errors}) == len(errors)


def test_validation_error_names_field() -> None:
    exc = ValidationError("sections.hero.title", "must be a string")
    assert exc.message.startswith("sections.hero.title")
    assert exc.to_dict() == {
        "kind": "validation_error",
        "message": "sections.hero.title: must be a string",
        "retryable": False,
        "details": {"field": "sections.hero.title"},
    }


def test_conflict_carries_both_timestamps() -> None:
    exc = ConflictError("cs-1", expected=datetime(2026, 1, 1, 9), actual=datetime(2026, 1, 1, 10))
    assert exc.retryable is False
    assert exc.details["expected_updated_at"] == "2026-01-01T09:00:00"
    assert exc.details["actual_updated_at"] == "2026-01-01T10:00:00"


def test_storage_error_retry_hint() -> None:
    transient = StorageError("create case study", attempts=3)
    permanent = StorageError("create case study", retryable=False, attempts=1)
    assert transient.retryable is True
    assert transient.details == {"operation": "create case study", "attempts": 3}
    assert permanent.retryable is False


def test_messages_never_contain_driver_text() -> None:
    exc = StorageError("update case study")
    assert "asyncpg" not in exc.message
    assert "update case study" in exc.message
