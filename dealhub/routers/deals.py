from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dealhub.deps import Identity, get_current_identity, get_current_tenant, get_db, get_optional_identity
from dealhub.models.tenant import Tenant
from dealhub.services.deals import get_deal_by_slug
from dealhub.services.engagement import record_engagement
from dealhub.services.voting import VoteOutcome, cast_vote, get_user_vote, get_vote_score

router = APIRouter(prefix="/api/deals", tags=["deals"])


class VoteRequest(BaseModel):
    # Passed through untouched; the voting service rejects anything but 1 and -1.
    value: Any = None


class VoteResponse(BaseModel):
    message: str
    outcome: str
    score: int


class ScoreResponse(BaseModel):
    deal_id: int
    score: int
    user_vote: int | None = None


class EngagementResponse(BaseModel):
    message: str
    redirect_url: str | None = None


_VOTE_MESSAGES = {
    VoteOutcome.RECORDED: "Vote recorded",
    VoteOutcome.REMOVED: "Vote removed",
}


@router.post("/{slug}/vote", response_model=VoteResponse)
def vote(
    slug: str,
    payload: VoteRequest,
    tenant: Tenant = Depends(get_current_tenant),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    deal = get_deal_by_slug(db, tenant.id, slug)
    outcome = cast_vote(db, tenant.id, identity.user_id, deal.id, payload.value)
    return VoteResponse(
        message=_VOTE_MESSAGES[outcome],
        outcome=outcome.value,
        score=get_vote_score(db, deal.id),
    )


@router.get("/{slug}/score", response_model=ScoreResponse)
def score(
    slug: str,
    tenant: Tenant = Depends(get_current_tenant),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    deal = get_deal_by_slug(db, tenant.id, slug)
    return ScoreResponse(
        deal_id=deal.id,
        score=get_vote_score(db, deal.id),
        user_vote=get_user_vote(db, identity.user_id, deal.id) if identity else None,
    )


@router.post("/{slug}/view", response_model=EngagementResponse)
def track_view(
    slug: str,
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
    x_referral_source: str | None = Header(default=None),
):
    deal = get_deal_by_slug(db, tenant.id, slug)
    record_engagement(db, tenant.id, deal.id, "view", x_referral_source)
    return EngagementResponse(message="View tracked")


@router.post("/{slug}/click", response_model=EngagementResponse)
def track_click(
    slug: str,
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
    x_referral_source: str | None = Header(default=None),
):
    deal = get_deal_by_slug(db, tenant.id, slug)
    affiliate_url = deal.affiliate_url
    record_engagement(db, tenant.id, deal.id, "click", x_referral_source)
    return EngagementResponse(message="Click tracked", redirect_url=affiliate_url)
