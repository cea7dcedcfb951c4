import uuid

from jose import jwt

from app.core.config import get_settings
from app.core.security import ROLE_ADMIN, ROLE_USER, actor_from_claims, decode_access_token


def _token(claims: dict) -> str:
    settings = get_settings()
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def test_decode_access_token_verifies_signature_and_audience() -> None:
    user_id = str(uuid.uuid4())
    claims = decode_access_token(_token({"sub": user_id, "aud": "authenticated"}))
    assert claims is not None
    assert claims["sub"] == user_id

    assert decode_access_token(_token({"sub": user_id, "aud": "someone-else"})) is None
    assert decode_access_token("not-a-token") is None


def test_actor_role_comes_from_app_metadata() -> None:
    user_id = uuid.uuid4()
    actor = actor_from_claims({"sub": str(user_id), "role": "authenticated", "app_metadata": {"role": "admin"}})
    assert actor.user_id == user_id
    assert actor.role == ROLE_ADMIN
    assert actor.is_admin


def test_postgres_role_claim_maps_to_plain_user() -> None:
    actor = actor_from_claims({"sub": str(uuid.uuid4()), "role": "authenticated"})
    assert actor.role == ROLE_USER
    assert not actor.is_admin


def test_unusable_subject_yields_no_actor() -> None:
    assert actor_from_claims({"sub": "not-a-uuid"}) is None
