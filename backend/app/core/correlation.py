"""Request/correlation id context shared by logging, envelopes and audit rows."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

import structlog


request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def new_request_id() -> str:
    return f"req-{uuid4().hex[:20]}"


def new_correlation_id() -> str:
    return f"corr-{uuid4().hex[:20]}"


def get_request_id() -> str:
    return request_id_ctx.get("")


def get_correlation_id() -> str:
    return correlation_id_ctx.get("")


@contextmanager
def request_context(request_id: str | None = None, correlation_id: str | None = None) -> Iterator[tuple[str, str]]:
    """Bind ids for the duration of one request and clear them afterwards."""
    rid = request_id or new_request_id()
    cid = correlation_id or new_correlation_id()
    rid_token = request_id_ctx.set(rid)
    cid_token = correlation_id_ctx.set(cid)
    structlog.contextvars.bind_contextvars(request_id=rid, correlation_id=cid)
    try:
        yield rid, cid
    finally:
        structlog.contextvars.unbind_contextvars("request_id", "correlation_id")
        request_id_ctx.reset(rid_token)
        correlation_id_ctx.reset(cid_token)
