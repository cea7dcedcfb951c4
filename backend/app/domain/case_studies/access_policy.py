"""
Row-level access rules for case studies and everything derived from them.

Precedence:
  1. the owner may read and write their own rows, whatever the status;
  2. admins may read and write any row;
  3. everyone else may read published rows;
  4. anything else is denied.

`is_allowed` is the only place the rules are written down. `visibility_clause`
is the same rule for reads rendered as SQL, so list and search queries filter
exactly the rows `is_allowed` would let through.
"""

from __future__ import annotations

import uuid
from enum import StrEnum
from typing import Any

from sqlalchemy import or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.core.errors import AuthorizationError
from app.core.security import Actor


PUBLISHED = "published"


class Action(StrEnum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


def _status_value(status: Any) -> str | None:
    if status is None:
        return None
    return str(getattr(status, "value", status))


def is_owner(actor: Actor, owner_id: uuid.UUID | None) -> bool:
    return actor.user_id is not None and owner_id is not None and actor.user_id == owner_id


def is_allowed(actor: Actor, *, owner_id: uuid.UUID | None, status: Any, action: Action) -> bool:
    if is_owner(actor, owner_id):
        return True
    if actor.is_admin:
        return True
    if action == Action.READ and _status_value(status) == PUBLISHED:
        return True
    return False


def ensure_allowed(
    actor: Actor,
    *,
    owner_id: uuid.UUID | None,
    status: Any,
    action: Action,
    resource_id: Any = None,
) -> None:
    if not is_allowed(actor, owner_id=owner_id, status=status, action=action):
        raise AuthorizationError(action.value, resource_id)


def can_create(actor: Actor) -> bool:
    """Creation has no row yet; any authenticated editor becomes the owner."""
    return actor.is_authenticated


def visibility_clause(actor: Actor, owner_col: Any, status_col: Any) -> ColumnElement[bool]:
    if actor.is_admin:
        return true()
    clauses = [status_col == PUBLISHED]
    if actor.user_id is not None:
        clauses.append(owner_col == actor.user_id)
    return or_(*clauses)
