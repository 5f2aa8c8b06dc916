"""Per-request identifiers used to correlate log lines.

Business code never reads these; tenant and user ids are passed explicitly.
"""
from __future__ import annotations

from contextvars import ContextVar

_REQUEST_ID: ContextVar[str | None] = ContextVar("request_id", default=None)
_TENANT_ID: ContextVar[str | None] = ContextVar("tenant_id", default=None)
_USER_ID: ContextVar[str | None] = ContextVar("user_id", default=None)


def bind_log_context(
    *, request_id: str | None = None, tenant_id: object = None, user_id: object = None
) -> None:
    if request_id is not None:
        _REQUEST_ID.set(request_id)
    if tenant_id is not None:
        _TENANT_ID.set(str(tenant_id))
    if user_id is not None:
        _USER_ID.set(str(user_id))


def current_log_context() -> dict[str, str | None]:
    return {
        "request_id": _REQUEST_ID.get(),
        "tenant_id": _TENANT_ID.get(),
        "user_id": _USER_ID.get(),
    }


def clear_log_context() -> None:
    for var in (_REQUEST_ID, _TENANT_ID, _USER_ID):
        var.set(None)
