"""
Portfolio CMS - Security Module
===============================
Verification of access tokens issued by the identity provider (Supabase Auth).
Tokens are trusted once the signature checks out; no credentials are handled here.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from jose import JWTError, jwt

from app.core.config import get_settings


ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"
ADMIN_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPER_ADMIN})


@dataclass(frozen=True, slots=True)
class Actor:
    """Caller identity as asserted by the identity provider."""

    user_id: uuid.UUID | None
    role: str = ROLE_USER

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


ANONYMOUS = Actor(user_id=None, role="anon")


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError:
        return None


def actor_from_claims(claims: dict) -> Actor | None:
    """Build an Actor from verified claims; None when the subject is unusable."""
    try:
        user_id = uuid.UUID(str(claims.get("sub") or ""))
    except ValueError:
        return None
    app_metadata = claims.get("app_metadata") or {}
    role = str(app_metadata.get("role") or claims.get("user_role") or ROLE_USER).strip().lower()
    # Supabase puts the Postgres role ("authenticated") in the plain role claim.
    if role in {"authenticated", ""}:
        role = ROLE_USER
    return Actor(user_id=user_id, role=role)
