from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dealhub.deps import Identity, get_current_tenant, get_db, require_role
from dealhub.models.tenant import Tenant
from dealhub.models.user import UserRole
from dealhub.services import tenants as tenant_service

router = APIRouter(prefix="/api/tenants", tags=["tenants"])

_require_admin = require_role([UserRole.ADMIN])


class TenantBrandingResponse(BaseModel):
    id: int
    name: str
    brand_name: str
    subdomain: str
    custom_domain: str | None = None
    logo: str | None = None
    favicon: str | None = None
    primary_color: str
    secondary_color: str
    accent_color: str
    tagline: str | None = None
    description: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    timezone: str
    currency: str
    language: str

    model_config = {"from_attributes": True}


class TenantResponse(TenantBrandingResponse):
    status: str
    owner_email: str | None = None
    owner_name: str | None = None
    max_users: int | None = None
    max_deals: int | None = None
    created_at: datetime | None = None


class TenantCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    subdomain: str = Field(..., min_length=1, max_length=63)
    brand_name: str | None = Field(default=None, max_length=120)
    custom_domain: str | None = Field(default=None, max_length=255)
    tagline: str | None = None
    primary_color: str | None = None
    owner_email: str | None = None
    owner_name: str | None = None


class TenantUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    brand_name: str | None = Field(default=None, max_length=120)
    subdomain: str | None = Field(default=None, max_length=63)
    custom_domain: str | None = Field(default=None, max_length=255)
    status: str | None = None
    logo: str | None = None
    favicon: str | None = None
    primary_color: str | None = None
    secondary_color: str | None = None
    accent_color: str | None = None
    tagline: str | None = None
    description: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    timezone: str | None = None
    currency: str | None = None
    language: str | None = None
    owner_email: str | None = None
    owner_name: str | None = None
    max_users: int | None = None
    max_deals: int | None = None


@router.get("/current", response_model=TenantBrandingResponse)
def get_current(tenant: Tenant = Depends(get_current_tenant)):
    return tenant


@router.get("", response_model=list[TenantResponse])
def list_tenants(
    _: Identity = Depends(_require_admin),
    db: Session = Depends(get_db),
):
    return tenant_service.list_tenants(db)


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(
    payload: TenantCreateRequest,
    _: Identity = Depends(_require_admin),
    db: Session = Depends(get_db),
):
    fields = payload.model_dump(exclude_none=True)
    return tenant_service.create_tenant(
        db,
        name=fields.pop("name"),
        subdomain=fields.pop("subdomain"),
        brand_name=fields.pop("brand_name", None),
        **fields,
    )


@router.get("/{tenant_id}", response_model=TenantResponse)
def get_tenant(
    tenant_id: int,
    _: Identity = Depends(_require_admin),
    db: Session = Depends(get_db),
):
    return tenant_service.get_tenant(db, tenant_id)


@router.patch("/{tenant_id}", response_model=TenantResponse)
def update_tenant(
    tenant_id: int,
    payload: TenantUpdateRequest,
    _: Identity = Depends(_require_admin),
    db: Session = Depends(get_db),
):
    return tenant_service.update_tenant(db, tenant_id, **payload.model_dump(exclude_unset=True))


@router.delete("/{tenant_id}")
def delete_tenant(
    tenant_id: int,
    _: Identity = Depends(_require_admin),
    db: Session = Depends(get_db),
):
    tenant_service.delete_tenant(db, tenant_id)
    return {"success": True}
