from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from app.domain.case_studies.diffing import diff_content
from app.models import CaseStudy, CaseStudyVersion
from app.services.version_ledger import VersionLedger, content_changed, snapshot_of
from app.utils.clock import next_timestamp


def _case_study(**overrides) -> CaseStudy:
    now = next_timestamp(None)
    values = {
        "id": uuid.uuid4(),
        "owner_id": uuid.uuid4(),
        "title": "A",
        "description": None,
        "sections": {"hero": {"enabled": True, "title": "H"}},
        "tags": [],
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return CaseStudy(**values)


async def _versions(db, case_study_id) -> list[CaseStudyVersion]:
    rows = await db.execute(
        select(CaseStudyVersion)
        .where(CaseStudyVersion.case_study_id == case_study_id)
        .order_by(CaseStudyVersion.version_number)
    )
    return list(rows.scalars().all())


def test_content_changed_ignores_non_content_fields() -> None:
    left = _case_study(views_count=1, featured=False)
    right = _case_study(views_count=99, featured=True)
    assert not content_changed(snapshot_of(left), snapshot_of(right))
    assert content_changed(None, snapshot_of(left))
    assert content_changed(snapshot_of(left), snapshot_of(_case_study(description="new")))


@pytest.mark.asyncio
async def test_first_write_is_version_one(session_factory) -> None:
    ledger = VersionLedger()
    async with session_factory() as db:
        async with db.begin():
            case_study = _case_study()
            db.add(case_study)
            await db.flush()
            version = await ledger.record(db, case_study, previous_content=None, created_by=case_study.owner_id)

    assert version is not None
    assert version.version_number == 1
    assert version.is_current is True
    assert version.content == {"title": "A", "description": None, "sections": {"hero": {"enabled": True, "title": "H"}}}


@pytest.mark.asyncio
async def test_changes_flip_current_and_number_contiguously(session_factory) -> None:
    ledger = VersionLedger()
    async with session_factory() as db:
        async with db.begin():
            case_study = _case_study()
            db.add(case_study)
            await db.flush()
            await ledger.record(db, case_study, previous_content=None, created_by=None)

            for title in ("B", "C", "D"):
                previous = snapshot_of(case_study)
                case_study.title = title
                case_study.updated_at = next_timestamp(case_study.updated_at)
                await db.flush()
                await ledger.record(db, case_study, previous_content=previous, created_by=None)

        versions = await _versions(db, case_study.id)

    assert [item.version_number for item in versions] == [1, 2, 3, 4]
    assert [item.is_current for item in versions] == [False, False, False, True]
    assert [item.content["title"] for item in versions] == ["A", "B", "C", "D"]


@pytest.mark.asyncio
async def test_unchanged_content_appends_nothing(session_factory) -> None:
    ledger = VersionLedger()
    async with session_factory() as db:
        async with db.begin():
            case_study = _case_study()
            db.add(case_study)
            await db.flush()
            await ledger.record(db, case_study, previous_content=None, created_by=None)

            previous = snapshot_of(case_study)
            case_study.featured = True
            case_study.views_count = 10
            await db.flush()
            skipped = await ledger.record(db, case_study, previous_content=previous, created_by=None)

        versions = await _versions(db, case_study.id)
        stats = await ledger.stats(db, case_study.id)

    assert skipped is None
    assert len(versions) == 1
    assert stats.total_versions == 1
    assert stats.current_version_number == 1


def test_diff_content_reports_fields_and_sections() -> None:
    old = {
        "title": "A",
        "description": "same",
        "sections": {"hero": {"title": "H"}, "problem": {"description": "p"}},
    }
    new = {
        "title": "B",
        "description": "same",
        "sections": {"hero": {"title": "H2"}, "gallery": {"images": []}},
    }

    diff = diff_content(old, new)

    assert diff["fields"] == {"title": {"from": "A", "to": "B"}}
    assert diff["sections"]["added"] == ["gallery"]
    assert diff["sections"]["removed"] == ["problem"]
    assert diff["sections"]["changed"] == {"hero": {"title": {"from": "H", "to": "H2"}}}
    assert diff["identical"] is False
    assert diff_content(old, old)["identical"] is True
