from __future__ import annotations

import enum
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealhub.core.errors import InvalidInputError, NotFoundError
from dealhub.models.deal import Deal
from dealhub.models.user import User
from dealhub.models.vote import Vote
from dealhub.services.points import POINT_VALUES, has_award_for_deal, record_award

logger = logging.getLogger(__name__)
VOTING_PREFIX = "[VOTING]"

VALID_VOTE_VALUES = (1, -1)
VOTE_REASON = "vote"


class VoteOutcome(str, enum.Enum):
    RECORDED = "recorded"
    REMOVED = "removed"


def validate_vote_value(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value not in VALID_VOTE_VALUES:
        raise InvalidInputError("Invalid vote value")
    return value


def _get_existing_vote(db: Session, user_id: int, deal_id: int) -> Vote | None:
    return db.query(Vote).filter(Vote.user_id == user_id, Vote.deal_id == deal_id).first()


def _apply_to_existing(db: Session, vote: Vote, value: int) -> VoteOutcome:
    if vote.value == value:
        db.delete(vote)
        return VoteOutcome.REMOVED
    vote.value = value
    return VoteOutcome.RECORDED


def _load_scope(db: Session, tenant_id: int, user_id: int, deal_id: int) -> Deal:
    deal = db.query(Deal).filter(Deal.id == deal_id, Deal.tenant_id == tenant_id).first()
    if deal is None:
        raise NotFoundError("Deal not found")
    user_in_tenant = (
        db.query(User.id).filter(User.id == user_id, User.tenant_id == tenant_id).first()
    )
    if user_in_tenant is None:
        raise NotFoundError("User not found")
    return deal


def cast_vote(db: Session, tenant_id: int, user_id: int, deal_id: int, value) -> VoteOutcome:
    """Toggle or flip a user's vote on a deal.

    no vote -> vote with `value` (voter earns VOTE points, once per deal)
    same value again -> vote removed
    opposite value -> vote flipped in place
    """
    value = validate_vote_value(value)

    try:
        deal = _load_scope(db, tenant_id, user_id, deal_id)

        existing = _get_existing_vote(db, user_id, deal_id)
        if existing is not None:
            outcome = _apply_to_existing(db, existing, value)
        else:
            try:
                with db.begin_nested():
                    db.add(Vote(user_id=user_id, deal_id=deal_id, value=value))
            except IntegrityError:
                # A concurrent request created the pair first; decide from its row.
                logger.info(
                    "%s concurrent vote detected user_id=%s deal_id=%s", VOTING_PREFIX, user_id, deal_id
                )
                existing = _get_existing_vote(db, user_id, deal_id)
                if existing is None:
                    raise
                outcome = _apply_to_existing(db, existing, value)
            else:
                # Points are earned once per user and deal, not on every re-vote.
                if not has_award_for_deal(db, user_id, deal_id, VOTE_REASON):
                    record_award(
                        db,
                        user_id,
                        POINT_VALUES["VOTE"],
                        VOTE_REASON,
                        f"Voted on deal: {deal.title}",
                        deal_id=deal_id,
                    )
                outcome = VoteOutcome.RECORDED

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "%s user_id=%s deal_id=%s value=%s outcome=%s",
        VOTING_PREFIX,
        user_id,
        deal_id,
        value,
        outcome.value,
    )
    return outcome


def get_vote_score(db: Session, deal_id: int) -> int:
    score = db.query(func.coalesce(func.sum(Vote.value), 0)).filter(Vote.deal_id == deal_id).scalar()
    return int(score or 0)


def get_user_vote(db: Session, user_id: int, deal_id: int) -> int | None:
    vote = _get_existing_vote(db, user_id, deal_id)
    return vote.value if vote is not None else None
