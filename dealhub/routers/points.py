from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dealhub.core.errors import NotFoundError
from dealhub.deps import Identity, get_current_identity, get_current_tenant, get_db
from dealhub.models.tenant import Tenant
from dealhub.services.points import get_leaderboard, get_point_history
from dealhub.services.users import get_user

router = APIRouter(prefix="/api", tags=["points"])


class PointHistoryEntry(BaseModel):
    id: int
    points: int
    reason: str
    description: str | None = None
    deal_id: int | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserPointsResponse(BaseModel):
    points: int
    history: list[PointHistoryEntry]


class LeaderboardEntry(BaseModel):
    rank: int
    id: int
    name: str
    points: int


@router.get("/user/points", response_model=UserPointsResponse)
def user_points(
    tenant: Tenant = Depends(get_current_tenant),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    user = get_user(db, tenant.id, identity.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserPointsResponse(
        points=user.points,
        history=[PointHistoryEntry.model_validate(entry) for entry in get_point_history(db, user.id)],
    )


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def leaderboard(
    limit: int | None = Query(default=None),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
):
    users = get_leaderboard(db, tenant.id, limit)
    return [
        LeaderboardEntry(rank=index, id=user.id, name=user.name, points=user.points)
        for index, user in enumerate(users, start=1)
    ]
