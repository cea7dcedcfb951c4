"""
Case study service:
- the only write path for case studies (create, update, publish, revert, delete)
- one transaction per write: record row, version snapshot, search entry, audit row
- transient storage failures retried with backoff, then surfaced as StorageError
- every acknowledged write is re-read until visible, bounded by a timeout
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_fixed,
)

from app.core.config import Settings, get_settings
from app.core.errors import (
    AuthorizationError,
    CaseStudyError,
    ConflictError,
    NotFoundError,
    StorageError,
    UnconfirmedWriteError,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.security import Actor
from app.domain.case_studies.access_policy import (
    Action,
    can_create,
    ensure_allowed,
    visibility_clause,
)
from app.domain.case_studies.diffing import diff_content
from app.domain.case_studies.sections import normalize_sections
from app.models import CaseStudy, CaseStudyStatus, CaseStudyVersion
from app.repositories.case_study_repository import CaseStudyRepository
from app.schemas import (
    CaseStudyCreate,
    CaseStudyPage,
    CaseStudyRecord,
    CaseStudyUpdate,
    SearchHit,
    VersionCommentRecord,
    VersionComparison,
    VersionRecord,
    VersionStats,
)
from app.services.audit_service import AuditService
from app.services.search_projection import SearchProjection
from app.services.version_ledger import VersionLedger, content_changed, snapshot_of
from app.utils.clock import next_timestamp, to_naive_utc
from app.utils.hashing import canonical_content
from app.utils.text_processing import normalize_text, truncate_text

logger = get_logger("services.case_study")

T = TypeVar("T")

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
ENTITY = "case_study"


def is_transient_error(exc: BaseException) -> bool:
    """Connection-level failures worth retrying; constraint and data errors are not."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, (ConnectionError, asyncio.TimeoutError))


class _NotYetVisible(Exception):
    pass


@dataclass(slots=True)
class _WriteOutcome:
    case_study_id: uuid.UUID
    updated_at: datetime
    content: dict[str, Any]
    warnings: list[str] = field(default_factory=list)


def _clean_title(value: Any) -> str:
    if value is None:
        raise ValidationError("title", "is required")
    if not isinstance(value, str):
        raise ValidationError("title", "must be a string")
    title = normalize_text(value)
    if not title:
        raise ValidationError("title", "must not be empty")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError("title", f"must be at most {TITLE_MAX_LENGTH} characters")
    return title


def _clean_description(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("description", "must be a string")
    if len(value) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError("description", f"must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return value


def _clean_tags(tags: list[str] | None) -> list[str]:
    cleaned: list[str] = []
    for tag in tags or []:
        value = normalize_text(tag).lower()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def _status_value(status: Any) -> str | None:
    return getattr(status, "value", status)


def _to_record(case_study: CaseStudy, version_number: int | None, warnings: list[str] | None = None) -> CaseStudyRecord:
    return CaseStudyRecord.model_validate(case_study).model_copy(
        update={"current_version_number": version_number, "warnings": list(warnings or [])}
    )


def _to_version_record(version: CaseStudyVersion, *, with_comments: bool = False) -> VersionRecord:
    comments = []
    if with_comments:
        comments = [VersionCommentRecord.model_validate(item) for item in version.comments]
    return VersionRecord(
        id=version.id,
        case_study_id=version.case_study_id,
        version_number=version.version_number,
        content=version.content,
        change_summary=version.change_summary,
        created_by=version.created_by,
        created_at=version.created_at,
        is_current=version.is_current,
        comments=comments,
    )


class CaseStudyService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        *,
        repository: CaseStudyRepository | None = None,
        ledger: VersionLedger | None = None,
        projection: SearchProjection | None = None,
        audit: AuditService | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.settings = settings or get_settings()
        self.repository = repository or CaseStudyRepository()
        self.ledger = ledger or VersionLedger()
        self.projection = projection or SearchProjection(self.settings.search_config)
        self.audit = audit or AuditService()

    # ── Writes ──

    async def create(self, actor: Actor, data: CaseStudyCreate) -> CaseStudyRecord:
        if not can_create(actor):
            raise AuthorizationError("create")
        title = _clean_title(data.title)
        description = _clean_description(data.description)
        sections = normalize_sections(data.sections)
        tags = _clean_tags(data.tags)
        case_study_id = uuid.uuid4()
        intended = canonical_content(title, description, sections)
        attempts = 0

        async def _write(db: AsyncSession) -> _WriteOutcome:
            nonlocal attempts
            attempts += 1
            if attempts > 1:
                # An earlier attempt may have committed before its acknowledgement was lost.
                existing = await self.repository.get(db, case_study_id)
                if existing is not None:
                    logger.info("case_study_create_already_landed", case_study_id=str(case_study_id), attempt=attempts)
                    return _WriteOutcome(case_study_id, existing.updated_at, intended)

            now = next_timestamp(None)
            case_study = CaseStudy(
                id=case_study_id,
                owner_id=actor.user_id,
                title=title,
                description=description,
                project_image_url=data.project_image_url,
                sections=sections,
                status=data.status,
                featured=data.featured,
                order_index=data.order_index,
                tags=tags,
                views_count=0,
                published_at=now if data.status == CaseStudyStatus.PUBLISHED else None,
                created_at=now,
                updated_at=now,
            )
            await self.repository.add(db, case_study)
            await self.ledger.record(
                db,
                case_study,
                previous_content=None,
                created_by=actor.user_id,
                change_summary=data.change_summary or "Initial version",
            )
            warnings = await self.projection.refresh_best_effort(db, case_study)
            await self.audit.log_action(
                db,
                action="case_study_created",
                entity_type=ENTITY,
                entity_id=case_study.id,
                actor=actor,
                to_state=_status_value(case_study.status),
            )
            return _WriteOutcome(case_study.id, case_study.updated_at, snapshot_of(case_study), warnings)

        outcome = await self._run("create case study", _write)
        logger.info("case_study_created", case_study_id=str(outcome.case_study_id), warnings=outcome.warnings)
        return await self._confirm_written(outcome)

    async def update(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        data: CaseStudyUpdate,
        *,
        expected_updated_at: datetime | None = None,
    ) -> CaseStudyRecord:
        changes = data.model_dump(exclude_unset=True, exclude={"expected_updated_at", "change_summary"})
        return await self._apply_update(
            actor,
            case_study_id,
            changes,
            expected_updated_at=expected_updated_at or data.expected_updated_at,
            change_summary=data.change_summary,
            action="case_study_updated",
        )

    async def publish(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        *,
        expected_updated_at: datetime | None = None,
    ) -> CaseStudyRecord:
        return await self._apply_update(
            actor,
            case_study_id,
            {"status": CaseStudyStatus.PUBLISHED},
            expected_updated_at=expected_updated_at,
            change_summary=None,
            action="case_study_published",
        )

    async def revert_to_version(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        version_number: int,
        *,
        reason: str | None = None,
        expected_updated_at: datetime | None = None,
    ) -> CaseStudyRecord:
        version = await self._read_version(actor, case_study_id, version_number)
        content = version.content or {}
        summary = f"Reverted to version {version_number}"
        if reason:
            summary = f"{summary}: {reason}"
        return await self._apply_update(
            actor,
            case_study_id,
            {
                "title": content.get("title"),
                "description": content.get("description"),
                "sections": content.get("sections") or {},
            },
            expected_updated_at=expected_updated_at,
            change_summary=summary,
            action="case_study_reverted",
            details={"reverted_to_version": version_number},
        )

    async def delete(self, actor: Actor, case_study_id: uuid.UUID, *, confirmed: bool) -> bool:
        """Delete a case study and everything derived from it.

        Deleting an id that does not exist is a successful no-op (returns False).
        """
        if not confirmed:
            raise ValidationError("confirm", "deletion must be explicitly confirmed")

        async def _write(db: AsyncSession) -> bool:
            case_study = await self.repository.get(db, case_study_id, for_update=True)
            if case_study is None:
                return False
            ensure_allowed(
                actor,
                owner_id=case_study.owner_id,
                status=case_study.status,
                action=Action.DELETE,
                resource_id=case_study_id,
            )
            await self.projection.remove(db, case_study_id)
            await self.audit.log_action(
                db,
                action="case_study_deleted",
                entity_type=ENTITY,
                entity_id=case_study_id,
                actor=actor,
                from_state=_status_value(case_study.status),
                details={"title": case_study.title},
            )
            return await self.repository.delete(db, case_study_id)

        deleted = await self._run("delete case study", _write)
        if deleted:
            await self._confirm(case_study_id, lambda row: row is None)
            logger.info("case_study_deleted", case_study_id=str(case_study_id))
        return deleted

    async def record_view(self, actor: Actor, case_study_id: uuid.UUID) -> int:
        """Bump the view counter. Not content: no snapshot, no updated_at change."""

        async def _write(db: AsyncSession) -> int:
            case_study = await self._load_readable(db, actor, case_study_id)
            views = await self.repository.increment_views(db, case_study.id)
            return int(views or 0)

        return await self._run("record case study view", _write)

    async def add_version_comment(
        self,
        actor: Actor,
        version_id: uuid.UUID,
        comment: str,
    ) -> VersionCommentRecord:
        if not actor.is_authenticated:
            raise AuthorizationError("comment on")
        text = (comment or "").strip()
        if not text:
            raise ValidationError("comment", "must not be empty")

        async def _write(db: AsyncSession) -> VersionCommentRecord:
            version = await self.ledger.get_by_id(db, version_id)
            if version is None:
                raise NotFoundError("version", version_id)
            await self._load_readable(db, actor, version.case_study_id)
            item = await self.ledger.add_comment(db, version=version, user_id=actor.user_id, comment=text)
            return VersionCommentRecord.model_validate(item)

        return await self._run("add version comment", _write)

    async def rebuild_search_index(self, *, batch_size: int = 200) -> int:
        """Drop every case-study search entry and recompute it from the source table."""
        removed = await self._run("clear search index", self.projection.clear)
        rebuilt = 0
        after: uuid.UUID | None = None
        while True:

            async def _batch(db: AsyncSession, after: uuid.UUID | None = after) -> list[uuid.UUID]:
                rows = await self.repository.list_batch(db, after=after, limit=batch_size)
                for case_study in rows:
                    await self.projection.refresh(db, case_study)
                return [row.id for row in rows]

            ids = await self._run("rebuild search index", _batch)
            if not ids:
                break
            rebuilt += len(ids)
            after = ids[-1]
        logger.info("search_index_rebuilt", removed=removed, rebuilt=rebuilt)
        return rebuilt

    # ── Reads ──

    async def get(self, actor: Actor, case_study_id: uuid.UUID) -> CaseStudyRecord:
        async def _read(db: AsyncSession) -> CaseStudyRecord:
            case_study = await self._load_readable(db, actor, case_study_id)
            return _to_record(case_study, await self.ledger.current_number(db, case_study_id))

        return await self._run("read case study", _read)

    async def list_case_studies(
        self,
        actor: Actor,
        *,
        status: CaseStudyStatus | None = None,
        search: str | None = None,
        featured: bool | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> CaseStudyPage:
        page = max(1, page)
        per_page = max(1, min(per_page, self.settings.list_max_per_page))

        async def _read(db: AsyncSession) -> CaseStudyPage:
            rows, total = await self.repository.list_visible(
                db,
                visibility=visibility_clause(actor, CaseStudy.owner_id, CaseStudy.status),
                status=status,
                search=search,
                featured=featured,
                offset=(page - 1) * per_page,
                limit=per_page,
            )
            numbers = await self.repository.current_version_numbers(db, [row.id for row in rows])
            return CaseStudyPage(
                items=[_to_record(row, numbers.get(row.id)) for row in rows],
                total=total,
                page=page,
                per_page=per_page,
            )

        return await self._run("list case studies", _read)

    async def list_versions(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        *,
        limit: int = 50,
        with_comments: bool = False,
    ) -> list[VersionRecord]:
        async def _read(db: AsyncSession) -> list[VersionRecord]:
            await self._load_readable(db, actor, case_study_id)
            versions = await self.ledger.list_versions(
                db, case_study_id, limit=limit, with_comments=with_comments
            )
            return [_to_version_record(item, with_comments=with_comments) for item in versions]

        return await self._run("list case study versions", _read)

    async def get_version(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        version_number: int,
        *,
        with_comments: bool = False,
    ) -> VersionRecord:
        version = await self._read_version(actor, case_study_id, version_number, with_comments=with_comments)
        return _to_version_record(version, with_comments=with_comments)

    async def compare_versions(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        from_version: int,
        to_version: int,
    ) -> VersionComparison:
        async def _read(db: AsyncSession) -> VersionComparison:
            await self._load_readable(db, actor, case_study_id)
            old = await self.ledger.get_version(db, case_study_id, from_version)
            if old is None:
                raise NotFoundError("version", f"{case_study_id}@v{from_version}")
            new = await self.ledger.get_version(db, case_study_id, to_version)
            if new is None:
                raise NotFoundError("version", f"{case_study_id}@v{to_version}")
            diff = diff_content(old.content or {}, new.content or {})
            return VersionComparison(
                case_study_id=case_study_id,
                from_version=from_version,
                to_version=to_version,
                **diff,
            )

        return await self._run("compare case study versions", _read)

    async def version_stats(self, actor: Actor, case_study_id: uuid.UUID) -> VersionStats:
        async def _read(db: AsyncSession) -> VersionStats:
            await self._load_readable(db, actor, case_study_id)
            stats = await self.ledger.stats(db, case_study_id)
            return VersionStats(
                case_study_id=case_study_id,
                total_versions=stats.total_versions,
                current_version_number=stats.current_version_number,
                first_version_at=stats.first_version_at,
                last_version_at=stats.last_version_at,
                contributors=stats.contributors,
            )

        return await self._run("read case study version stats", _read)

    async def search(self, actor: Actor, query: str, *, limit: int | None = None) -> list[SearchHit]:
        text = (query or "").strip()
        if not text:
            raise ValidationError("query", "must not be empty")
        limit = limit or self.settings.search_default_limit

        async def _read(db: AsyncSession) -> list[SearchHit]:
            entries = await self.projection.search(db, text, actor=actor, limit=limit)
            return [
                SearchHit(
                    content_type=entry.content_type,
                    content_id=entry.content_id,
                    title=entry.title,
                    snippet=truncate_text(entry.body or "", 240),
                    tags=list(entry.tags or []),
                    status=entry.status,
                )
                for entry in entries
            ]

        return await self._run("search case studies", _read)

    # ── Internals ──

    async def _apply_update(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        changes: dict[str, Any],
        *,
        expected_updated_at: datetime | None,
        change_summary: str | None,
        action: str,
        details: dict[str, Any] | None = None,
    ) -> CaseStudyRecord:
        changes = self._validate_changes(changes)
        expected = to_naive_utc(expected_updated_at)

        async def _write(db: AsyncSession) -> _WriteOutcome:
            case_study = await self.repository.get(db, case_study_id, for_update=True)
            if case_study is None:
                raise NotFoundError("case study", case_study_id)
            ensure_allowed(
                actor,
                owner_id=case_study.owner_id,
                status=case_study.status,
                action=Action.WRITE,
                resource_id=case_study_id,
            )
            if expected is not None and to_naive_utc(case_study.updated_at) != expected:
                logger.info(
                    "case_study_update_conflict",
                    case_study_id=str(case_study_id),
                    expected_updated_at=expected.isoformat(),
                )
                raise ConflictError(case_study_id, expected=expected, actual=case_study.updated_at)

            previous_content = snapshot_of(case_study)
            previous_status = case_study.status
            for key, value in changes.items():
                setattr(case_study, key, value)
            now = next_timestamp(case_study.updated_at)
            if case_study.status == CaseStudyStatus.PUBLISHED and case_study.published_at is None:
                case_study.published_at = now
            case_study.updated_at = now
            await db.flush()

            version = await self.ledger.record(
                db,
                case_study,
                previous_content=previous_content,
                created_by=actor.user_id,
                change_summary=change_summary,
            )
            warnings = await self.projection.refresh_best_effort(db, case_study)
            await self.audit.log_action(
                db,
                action=action,
                entity_type=ENTITY,
                entity_id=case_study_id,
                actor=actor,
                from_state=_status_value(previous_status),
                to_state=_status_value(case_study.status),
                reason=change_summary,
                details={
                    **(details or {}),
                    "fields": sorted(changes),
                    "version_number": version.version_number if version else None,
                },
            )
            return _WriteOutcome(case_study.id, case_study.updated_at, snapshot_of(case_study), warnings)

        outcome = await self._run("update case study", _write)
        logger.info(action, case_study_id=str(case_study_id), warnings=outcome.warnings)
        return await self._confirm_written(outcome)

    def _validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "title":
                cleaned[key] = _clean_title(value)
            elif key == "description":
                cleaned[key] = _clean_description(value)
            elif key == "sections":
                cleaned[key] = normalize_sections(value)
            elif key == "tags":
                cleaned[key] = _clean_tags(value)
            elif key in {"status", "featured", "order_index"}:
                # Non-nullable; an explicit null means "leave as is".
                if value is not None:
                    cleaned[key] = value
            else:
                cleaned[key] = value
        return cleaned

    async def _load_readable(self, db: AsyncSession, actor: Actor, case_study_id: uuid.UUID) -> CaseStudy:
        case_study = await self.repository.get(db, case_study_id)
        if case_study is None:
            raise NotFoundError("case study", case_study_id)
        ensure_allowed(
            actor,
            owner_id=case_study.owner_id,
            status=case_study.status,
            action=Action.READ,
            resource_id=case_study_id,
        )
        return case_study

    async def _read_version(
        self,
        actor: Actor,
        case_study_id: uuid.UUID,
        version_number: int,
        *,
        with_comments: bool = False,
    ) -> CaseStudyVersion:
        async def _read(db: AsyncSession) -> CaseStudyVersion:
            await self._load_readable(db, actor, case_study_id)
            version = await self.ledger.get_version(
                db, case_study_id, version_number, with_comments=with_comments
            )
            if version is None:
                raise NotFoundError("version", f"{case_study_id}@v{version_number}")
            return version

        return await self._run("read case study version", _read)

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run `work` in its own transaction, retrying transient storage failures."""
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(1, self.settings.storage_retry_attempts)),
                wait=wait_exponential(
                    multiplier=self.settings.storage_retry_min_wait_seconds,
                    min=self.settings.storage_retry_min_wait_seconds,
                    max=self.settings.storage_retry_max_wait_seconds,
                ),
                retry=retry_if_exception(is_transient_error),
                before_sleep=_log_storage_retry(operation),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    async with self._session_factory() as db:
                        async with db.begin():
                            return await work(db)
        except CaseStudyError:
            raise
        except (SQLAlchemyError, ConnectionError, asyncio.TimeoutError) as exc:
            transient = is_transient_error(exc)
            logger.error(
                "storage_operation_failed",
                operation=operation,
                attempts=attempts,
                retryable=transient,
                error=str(exc.__class__.__name__),
            )
            raise StorageError(operation, retryable=transient, attempts=attempts) from None

    async def _confirm_written(self, outcome: _WriteOutcome) -> CaseStudyRecord:
        def _landed(row: CaseStudy | None) -> bool:
            return (
                row is not None
                and to_naive_utc(row.updated_at) == to_naive_utc(outcome.updated_at)
                and not content_changed(outcome.content, snapshot_of(row))
            )

        row, version_number = await self._confirm(outcome.case_study_id, _landed)
        return _to_record(row, version_number, outcome.warnings)

    async def _confirm(
        self,
        case_study_id: uuid.UUID,
        landed: Callable[[CaseStudy | None], bool],
    ) -> tuple[CaseStudy | None, int | None]:
        """Re-read in a fresh session until `landed` holds or the budget runs out."""
        attempts = 0

        async def _poll() -> tuple[CaseStudy | None, int | None]:
            nonlocal attempts
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(1, self.settings.confirm_attempts))
                | stop_after_delay(self.settings.confirm_timeout_seconds),
                wait=wait_fixed(self.settings.confirm_wait_seconds),
                retry=retry_if_exception_type((_NotYetVisible, SQLAlchemyError)),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    async with self._session_factory() as db:
                        row = await self.repository.get(db, case_study_id)
                        version_number = None
                        if row is not None:
                            version_number = await self.ledger.current_number(db, case_study_id)
                    if not landed(row):
                        logger.info(
                            "case_study_confirm_retry",
                            case_study_id=str(case_study_id),
                            attempt=attempts,
                        )
                        raise _NotYetVisible()
                    return row, version_number

        try:
            return await asyncio.wait_for(_poll(), timeout=self.settings.confirm_timeout_seconds)
        except (_NotYetVisible, SQLAlchemyError, asyncio.TimeoutError) as exc:
            logger.warning(
                "case_study_write_unconfirmed",
                case_study_id=str(case_study_id),
                attempts=attempts,
                error=str(exc.__class__.__name__),
            )
            raise UnconfirmedWriteError(case_study_id, attempts=attempts) from None


def _log_storage_retry(operation: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "storage_retry",
            operation=operation,
            attempt=retry_state.attempt_number,
            error=str(exc.__class__.__name__) if exc else None,
        )

    return _before_sleep
