from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealhub.core.errors import ConflictError, InvalidInputError, NotFoundError
from dealhub.models.tenant import Tenant, TenantStatus
from dealhub.services.tenant_resolver import TenantResolver

logger = logging.getLogger(__name__)
TENANT_PREFIX = "[TENANT]"

DOMAIN_PATTERN = re.compile(r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$")

UPDATABLE_FIELDS = {
    "name",
    "brand_name",
    "subdomain",
    "custom_domain",
    "status",
    "logo",
    "favicon",
    "primary_color",
    "secondary_color",
    "accent_color",
    "tagline",
    "description",
    "meta_title",
    "meta_description",
    "timezone",
    "currency",
    "language",
    "owner_email",
    "owner_name",
    "max_users",
    "max_deals",
}


def normalize_subdomain(value: str | None) -> str:
    subdomain = (value or "").strip().lower()
    if not TenantResolver.is_valid_subdomain(subdomain):
        raise InvalidInputError(
            "Invalid subdomain format. Use only lowercase letters, numbers, and hyphens."
        )
    return subdomain


def normalize_custom_domain(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = TenantResolver.normalize_host(value)
    if not normalized:
        return None
    if not DOMAIN_PATTERN.match(normalized):
        raise InvalidInputError("Invalid custom domain")
    return normalized


def _normalize_fields(fields: dict[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidInputError(f"Unknown tenant fields: {', '.join(sorted(unknown))}")

    normalized = dict(fields)
    if "subdomain" in normalized:
        normalized["subdomain"] = normalize_subdomain(normalized["subdomain"])
    if "custom_domain" in normalized:
        normalized["custom_domain"] = normalize_custom_domain(normalized["custom_domain"])
    if "status" in normalized and normalized["status"] not in TenantStatus.ALL:
        raise InvalidInputError("Invalid tenant status")
    return normalized


def _commit_routing_change(db: Session, tenant: Tenant) -> None:
    # Uniqueness of subdomain/custom_domain is enforced by the store.
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info(
            "%s routing key conflict subdomain=%s domain=%s",
            TENANT_PREFIX,
            tenant.subdomain,
            tenant.custom_domain,
        )
        raise ConflictError("Subdomain or custom domain is already taken") from exc
    db.refresh(tenant)


def create_tenant(db: Session, *, name: str, subdomain: str, brand_name: str | None = None, **fields: Any) -> Tenant:
    if not (name or "").strip():
        raise InvalidInputError("Missing required fields")

    values = _normalize_fields({"subdomain": subdomain, **fields})
    tenant = Tenant(
        name=name.strip(),
        brand_name=(brand_name or name).strip(),
        status=values.pop("status", TenantStatus.ACTIVE),
        **values,
    )
    db.add(tenant)
    _commit_routing_change(db, tenant)
    logger.info("%s created id=%s subdomain=%s", TENANT_PREFIX, tenant.id, tenant.subdomain)
    return tenant


def get_tenant(db: Session, tenant_id: int) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    return tenant


def list_tenants(db: Session) -> list[Tenant]:
    return db.query(Tenant).order_by(Tenant.created_at.desc(), Tenant.id.desc()).all()


def update_tenant(db: Session, tenant_id: int, **fields: Any) -> Tenant:
    tenant = get_tenant(db, tenant_id)
    # custom_domain may be cleared explicitly; other fields ignore nulls.
    values = _normalize_fields(
        {key: value for key, value in fields.items() if value is not None or key == "custom_domain"}
    )
    for key, value in values.items():
        setattr(tenant, key, value)
    _commit_routing_change(db, tenant)
    logger.info("%s updated id=%s fields=%s", TENANT_PREFIX, tenant.id, sorted(values))
    return tenant


def delete_tenant(db: Session, tenant_id: int) -> None:
    """Remove a tenant and every row it owns."""
    tenant = get_tenant(db, tenant_id)
    subdomain = tenant.subdomain
    db.delete(tenant)
    db.commit()
    logger.warning("%s deleted id=%s subdomain=%s", TENANT_PREFIX, tenant_id, subdomain)
