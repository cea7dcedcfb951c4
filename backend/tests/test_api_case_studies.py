from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps.services import get_case_study_service
from app.core.config import get_settings
from app.core.database import Base
from app.main import app
from app.services.case_study_service import CaseStudyService


async def _create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _headers(user_id: uuid.UUID, role: str | None = None) -> dict[str, str]:
    settings = get_settings()
    claims = {"sub": str(user_id), "aud": settings.jwt_audience, "role": "authenticated"}
    if role:
        claims["app_metadata"] = {"role": role}
    token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(make_engine, settings):
    engine = make_engine()
    service = CaseStudyService(
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
        settings,
    )
    app.dependency_overrides[get_case_study_service] = lambda: service
    with TestClient(app) as test_client:
        test_client.portal.call(_create_schema, engine)
        yield test_client
        test_client.portal.call(engine.dispose)
    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers():
    return _headers(uuid.uuid4())


def _create(client, headers, **payload):
    response = client.post("/api/v1/case-studies", json={"title": "A", **payload}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ok"


def test_create_returns_envelope_with_version(client, owner_headers) -> None:
    response = client.post(
        "/api/v1/case-studies",
        json={"title": "A", "sections": {"hero": {"title": "H"}}},
        headers=owner_headers,
    )

    body = response.json()
    assert response.status_code == 201
    assert body["ok"] is True
    assert body["data"]["current_version_number"] == 1
    assert body["data"]["sections"]["hero"]["title"] == "H"
    assert body["meta"]["request_id"]
    assert response.headers["x-request-id"] == body["meta"]["request_id"]


def test_create_requires_token(client) -> None:
    response = client.post("/api/v1/case-studies", json={"title": "A"})
    assert response.status_code == 401
    assert response.json()["ok"] is False


def test_invalid_token_is_rejected(client) -> None:
    response = client.get("/api/v1/case-studies", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_missing_title_is_a_validation_error(client, owner_headers) -> None:
    response = client.post("/api/v1/case-studies", json={"description": "no title"}, headers=owner_headers)

    error = response.json()["error"]
    assert response.status_code == 400
    assert error["code"] == "validation_error"
    assert error["details"]["field"] == "title"
    assert error["details"]["retryable"] is False


def test_draft_is_forbidden_to_anonymous_readers(client, owner_headers) -> None:
    record = _create(client, owner_headers)

    response = client.get(f"/api/v1/case-studies/{record['id']}")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "authorization_error"
    assert response.json()["data"] is None


def test_stale_update_is_a_conflict(client, owner_headers) -> None:
    record = _create(client, owner_headers)
    first = client.put(
        f"/api/v1/case-studies/{record['id']}",
        json={"title": "B", "expected_updated_at": record["updated_at"]},
        headers=owner_headers,
    )
    second = client.put(
        f"/api/v1/case-studies/{record['id']}",
        json={"title": "C", "expected_updated_at": record["updated_at"]},
        headers=owner_headers,
    )

    assert first.status_code == 200
    assert first.json()["data"]["current_version_number"] == 2
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "conflict"


def test_publish_then_anonymous_list_and_search(client, owner_headers) -> None:
    record = _create(client, owner_headers, title="Design system")
    client.post(f"/api/v1/case-studies/{record['id']}/publish", headers=owner_headers)

    listing = client.get("/api/v1/case-studies").json()["data"]
    search = client.get("/api/v1/search", params={"q": "design"}).json()

    assert [item["id"] for item in listing["items"]] == [record["id"]]
    assert [hit["content_id"] for hit in search["data"]] == [record["id"]]
    assert search["meta"]["count"] == 1


def test_delete_needs_confirm_and_is_idempotent(client, owner_headers) -> None:
    record = _create(client, owner_headers)
    url = f"/api/v1/case-studies/{record['id']}"

    unconfirmed = client.delete(url, headers=owner_headers)
    first = client.delete(url, params={"confirm": "true"}, headers=owner_headers)
    second = client.delete(url, params={"confirm": "true"}, headers=owner_headers)

    assert unconfirmed.status_code == 400
    assert unconfirmed.json()["error"]["details"]["field"] == "confirm"
    assert first.json()["data"]["deleted"] is True
    assert second.status_code == 200
    assert second.json()["data"]["deleted"] is False


def test_version_history_routes(client, owner_headers) -> None:
    record = _create(client, owner_headers, title="v1")
    base = f"/api/v1/case-studies/{record['id']}"
    client.put(base, json={"title": "v2"}, headers=owner_headers)

    versions = client.get(f"{base}/versions", headers=owner_headers).json()["data"]
    compare = client.get(f"{base}/versions/compare", params={"from": 1, "to": 2}, headers=owner_headers)
    stats = client.get(f"{base}/versions/stats", headers=owner_headers).json()["data"]
    comment = client.post(
        f"/api/v1/case-studies/versions/{versions[0]['id']}/comments",
        json={"comment": "approved"},
        headers=owner_headers,
    )
    revert = client.post(f"{base}/versions/1/revert", json={"reason": "rollback"}, headers=owner_headers)
    single = client.get(f"{base}/versions/2", headers=owner_headers).json()["data"]

    assert [item["version_number"] for item in versions] == [2, 1]
    assert compare.json()["data"]["fields"]["title"] == {"from": "v1", "to": "v2"}
    assert stats["total_versions"] == 2
    assert comment.status_code == 201
    assert revert.json()["data"]["title"] == "v1"
    assert revert.json()["data"]["current_version_number"] == 3
    assert [item["comment"] for item in single["comments"]] == ["approved"]


def test_admin_role_claim_grants_access(client, owner_headers) -> None:
    record = _create(client, owner_headers)
    admin_headers = _headers(uuid.uuid4(), role="admin")

    response = client.get(f"/api/v1/case-studies/{record['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["title"] == "A"
