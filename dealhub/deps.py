from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from dealhub.core.config import DEFAULT_TENANT_SUBDOMAIN
from dealhub.core.database import get_db
from dealhub.core.errors import AccessDeniedError, AuthenticationRequiredError, TenantResolutionError
from dealhub.core.request_context import bind_log_context
from dealhub.models.tenant import Tenant
from dealhub.models.user import UserRole
from dealhub.services.tenant_resolver import TenantResolver

logger = logging.getLogger(__name__)

USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"
USER_TENANT_HEADER = "x-user-tenant-id"

__all__ = [
    "Identity",
    "get_current_identity",
    "get_current_tenant",
    "get_db",
    "get_optional_identity",
    "require_role",
]


@dataclass(frozen=True)
class Identity:
    """Caller as asserted by the upstream auth layer."""

    user_id: int
    role: str = UserRole.USER
    tenant_id: Optional[int] = None


def _parse_int(raw: str | None) -> Optional[int]:
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


def _log_access_denied(*, reason: str, identity: Identity, tenant_id: int | None, request: Request) -> None:
    endpoint = f"{request.method} {request.url.path}"
    logger.warning(
        "Access denied (%s): user_id=%s user_role=%s user_tenant=%s tenant_id=%s endpoint=%s",
        reason,
        identity.user_id,
        identity.role,
        identity.tenant_id,
        tenant_id,
        endpoint,
    )


def get_current_tenant(request: Request, db: Session = Depends(get_db)) -> Tenant:
    """Tenant owning the request's host, or 404."""
    hints = TenantResolver.extract_hints(request.headers)
    tenant = TenantResolver.resolve(db, hints, default_subdomain=DEFAULT_TENANT_SUBDOMAIN)
    if tenant is None:
        raise TenantResolutionError()

    request.state.tenant_id = tenant.id
    bind_log_context(tenant_id=tenant.id)
    return tenant


def get_optional_identity(
    request: Request,
    tenant: Tenant = Depends(get_current_tenant),
) -> Optional[Identity]:
    user_id = _parse_int(request.headers.get(USER_ID_HEADER))
    if user_id is None:
        return None

    role = (request.headers.get(USER_ROLE_HEADER) or UserRole.USER).strip().upper()
    identity = Identity(
        user_id=user_id,
        role=role,
        tenant_id=_parse_int(request.headers.get(USER_TENANT_HEADER)),
    )
    if identity.tenant_id is not None and identity.tenant_id != tenant.id:
        _log_access_denied(reason="tenant_mismatch", identity=identity, tenant_id=tenant.id, request=request)
        raise AccessDeniedError("Tenant mismatch")

    request.state.user_id = identity.user_id
    bind_log_context(user_id=identity.user_id)
    return identity


def get_current_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise AuthenticationRequiredError()
    return identity


def require_role(roles: Iterable[str]):
    allowed = {role.strip().upper() for role in roles}

    def _dependency(
        request: Request,
        identity: Identity = Depends(get_current_identity),
    ) -> Identity:
        if identity.role not in allowed:
            _log_access_denied(
                reason="role_denied",
                identity=identity,
                tenant_id=identity.tenant_id,
                request=request,
            )
            raise AccessDeniedError("Forbidden")
        return identity

    return _dependency
