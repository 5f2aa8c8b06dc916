from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dealhub.deps import Identity, get_current_tenant, get_db, require_role
from dealhub.models.tenant import Tenant
from dealhub.models.user import UserRole
from dealhub.services.deals import moderate_deal
from dealhub.services.engagement import get_engagement_summary, window_start

router = APIRouter(prefix="/api/admin", tags=["admin"])


class ModerationRequest(BaseModel):
    deal_id: int = Field(..., alias="dealId")
    status: str

    model_config = {"populate_by_name": True}


class ModeratedDealResponse(BaseModel):
    id: int
    title: str
    slug: str
    status: str
    approved_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class CounterTotals(BaseModel):
    views: int
    clicks: int
    conversions: int


class DailyBucket(CounterTotals):
    date: dt.date


class ReferralBucket(CounterTotals):
    referral_source: str


class AnalyticsOverview(BaseModel):
    total_deals: int
    pending_deals: int
    total_users: int
    total_views: int
    total_clicks: int
    total_conversions: int


class TopDeal(BaseModel):
    id: int
    title: str
    slug: str
    views: int
    clicks: int


class AnalyticsResponse(BaseModel):
    days: int
    overview: AnalyticsOverview
    daily: list[DailyBucket]
    referral_sources: list[ReferralBucket]
    top_deals: list[TopDeal]


@router.post("/deals/approve", response_model=ModeratedDealResponse)
def approve_deal(
    payload: ModerationRequest,
    tenant: Tenant = Depends(get_current_tenant),
    identity: Identity = Depends(require_role([UserRole.ADMIN, UserRole.MODERATOR])),
    db: Session = Depends(get_db),
):
    return moderate_deal(db, tenant.id, payload.deal_id, payload.status, identity.user_id)


@router.get("/analytics", response_model=AnalyticsResponse)
def analytics(
    days: int = Query(default=30, ge=0, le=365),
    tenant: Tenant = Depends(get_current_tenant),
    _: Identity = Depends(require_role([UserRole.ADMIN])),
    db: Session = Depends(get_db),
):
    summary = get_engagement_summary(db, tenant.id, window_start(days))
    return AnalyticsResponse(days=days, **summary)
