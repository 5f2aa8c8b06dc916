from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dealhub.deps import Identity, get_current_tenant, get_db, get_optional_identity
from dealhub.models.tenant import Tenant
from dealhub.services.shortener import create_share, get_share_analytics

router = APIRouter(prefix="/api/shares", tags=["shares"])


class ShareRequest(BaseModel):
    url: str = Field(..., min_length=1)
    deal_id: int | None = None
    platform: str | None = Field(default=None, max_length=32)
    utm_source: str | None = Field(default=None, max_length=120)
    utm_medium: str | None = Field(default=None, max_length=120)
    utm_campaign: str | None = Field(default=None, max_length=120)


class ShareResponse(BaseModel):
    short_code: str
    short_url: str
    original_url: str


class ShareStats(BaseModel):
    short_code: str
    platform: str
    clicks: int
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ShareAnalyticsResponse(BaseModel):
    deal_id: int
    total_shares: int
    total_clicks: int
    shares: list[ShareStats]


@router.post("", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
def create(
    payload: ShareRequest,
    tenant: Tenant = Depends(get_current_tenant),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    result = create_share(
        db,
        tenant.id,
        payload.url,
        user_id=identity.user_id if identity else None,
        deal_id=payload.deal_id,
        platform=payload.platform,
        utm_source=payload.utm_source,
        utm_medium=payload.utm_medium,
        utm_campaign=payload.utm_campaign,
    )
    return ShareResponse(
        short_code=result.short_code,
        short_url=result.short_url,
        original_url=result.original_url,
    )


@router.get("", response_model=ShareAnalyticsResponse)
def analytics(
    deal_id: int = Query(...),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
):
    shares = get_share_analytics(db, tenant.id, deal_id)
    return ShareAnalyticsResponse(
        deal_id=deal_id,
        total_shares=len(shares),
        total_clicks=sum(share.clicks for share in shares),
        shares=[ShareStats.model_validate(share) for share in shares],
    )
