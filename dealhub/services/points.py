from __future__ import annotations

import enum
import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from dealhub.core.config import LEADERBOARD_DEFAULT_LIMIT, LEADERBOARD_MAX_LIMIT
from dealhub.core.errors import InvalidInputError, NotFoundError
from dealhub.models.point_history import PointHistory
from dealhub.models.user import User

logger = logging.getLogger(__name__)
POINTS_PREFIX = "[POINTS]"

POINT_VALUES = {
    "DEAL_SUBMISSION": 10,
    "VOTE": 1,
    "SHARE": 5,
    "CONVERSION": 20,
    "COMMENT": 2,
    "DAILY_LOGIN": 1,
}


class DeductResult(str, enum.Enum):
    OK = "ok"
    INSUFFICIENT = "insufficient"


def _validate_amount(points: int) -> int:
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise InvalidInputError("Points must be a positive integer")
    return points


def record_award(
    db: Session,
    user_id: int,
    points: int,
    reason: str,
    description: str | None = None,
    *,
    deal_id: int | None = None,
) -> PointHistory:
    """Apply an award inside the caller's transaction. Does not commit."""
    _validate_amount(points)
    result = db.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + points)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("User not found")

    entry = PointHistory(
        user_id=user_id,
        deal_id=deal_id,
        points=points,
        reason=reason,
        description=description,
    )
    db.add(entry)
    db.flush()
    return entry


def award_points(
    db: Session,
    user_id: int,
    points: int,
    reason: str,
    description: str | None = None,
    *,
    deal_id: int | None = None,
) -> PointHistory:
    try:
        entry = record_award(db, user_id, points, reason, description, deal_id=deal_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("%s awarded user_id=%s points=%s reason=%s", POINTS_PREFIX, user_id, points, reason)
    return entry


def deduct_points(
    db: Session,
    user_id: int,
    points: int,
    reason: str,
    description: str | None = None,
) -> DeductResult:
    _validate_amount(points)
    try:
        # Balance guard is part of the UPDATE.
        result = db.execute(
            update(User)
            .where(User.id == user_id, User.points >= points)
            .values(points=User.points - points)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            if db.get(User, user_id) is None:
                raise NotFoundError("User not found")
            logger.info(
                "%s deduction rejected user_id=%s points=%s reason=%s",
                POINTS_PREFIX,
                user_id,
                points,
                reason,
            )
            return DeductResult.INSUFFICIENT

        db.add(PointHistory(user_id=user_id, points=-points, reason=reason, description=description))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("%s deducted user_id=%s points=%s reason=%s", POINTS_PREFIX, user_id, points, reason)
    return DeductResult.OK


def get_user_points(db: Session, user_id: int) -> int:
    balance = db.query(User.points).filter(User.id == user_id).scalar()
    return int(balance or 0)


def get_point_history(db: Session, user_id: int, limit: int = 50) -> list[PointHistory]:
    return (
        db.query(PointHistory)
        .filter(PointHistory.user_id == user_id)
        .order_by(PointHistory.created_at.desc(), PointHistory.id.desc())
        .limit(limit)
        .all()
    )


def get_ledger_total(db: Session, user_id: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(PointHistory.points), 0))
        .filter(PointHistory.user_id == user_id)
        .scalar()
    )
    return int(total or 0)


def verify_ledger_consistency(db: Session, user_id: int) -> bool:
    return get_user_points(db, user_id) == get_ledger_total(db, user_id)


def clamp_leaderboard_limit(limit: int | None) -> int:
    if limit is None:
        return LEADERBOARD_DEFAULT_LIMIT
    return max(1, min(int(limit), LEADERBOARD_MAX_LIMIT))


def get_leaderboard(db: Session, tenant_id: int, limit: int | None = None) -> list[User]:
    # Ties fall back to id order; callers must not rely on it.
    return (
        db.query(User)
        .filter(
            User.tenant_id == tenant_id,
            User.banned.is_(False),
            User.show_on_leaderboard.is_(True),
        )
        .order_by(User.points.desc(), User.id.asc())
        .limit(clamp_leaderboard_limit(limit))
        .all()
    )


def has_award_for_deal(db: Session, user_id: int, deal_id: int, reason: str) -> bool:
    return (
        db.query(PointHistory.id)
        .filter(
            PointHistory.user_id == user_id,
            PointHistory.deal_id == deal_id,
            PointHistory.reason == reason,
        )
        .first()
        is not None
    )
