from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from dealhub.core.errors import InvalidInputError, NotFoundError
from dealhub.models.audit_log import AuditLog
from dealhub.models.deal import Deal, DealStatus
from dealhub.services.points import POINT_VALUES, has_award_for_deal, record_award

logger = logging.getLogger(__name__)
DEALS_PREFIX = "[DEALS]"

MODERATION_STATUSES = {DealStatus.APPROVED, DealStatus.REJECTED}
APPROVAL_REASON = "deal_approved"


def get_deal_by_slug(db: Session, tenant_id: int, slug: str) -> Deal:
    deal = (
        db.query(Deal)
        .filter(Deal.tenant_id == tenant_id, Deal.slug == (slug or "").strip())
        .first()
    )
    if deal is None:
        raise NotFoundError("Deal not found")
    return deal


def get_deal(db: Session, tenant_id: int, deal_id: int) -> Deal:
    deal = db.query(Deal).filter(Deal.id == deal_id, Deal.tenant_id == tenant_id).first()
    if deal is None:
        raise NotFoundError("Deal not found")
    return deal


def moderate_deal(
    db: Session,
    tenant_id: int,
    deal_id: int,
    status: str,
    performed_by: int | None = None,
) -> Deal:
    """Approve or reject a deal and leave an audit trail.

    The author earns DEAL_SUBMISSION points the first time the deal is
    approved; approving again, or re-approving after a rejection, pays nothing.
    """
    status = (status or "").strip().upper()
    if status not in MODERATION_STATUSES:
        raise InvalidInputError("Invalid status")

    try:
        deal = get_deal(db, tenant_id, deal_id)
        previous_status = deal.status

        # Only the request that actually moves the deal into `status` may pay.
        result = db.execute(
            update(Deal)
            .where(Deal.id == deal.id, Deal.status != status)
            .values(
                status=status,
                approved_at=datetime.now(timezone.utc) if status == DealStatus.APPROVED else None,
            )
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1

        awarded = False
        if transitioned and status == DealStatus.APPROVED and not has_award_for_deal(
            db, deal.user_id, deal.id, APPROVAL_REASON
        ):
            record_award(
                db,
                deal.user_id,
                POINT_VALUES["DEAL_SUBMISSION"],
                APPROVAL_REASON,
                f"Deal approved: {deal.title}",
                deal_id=deal.id,
            )
            awarded = True

        db.add(
            AuditLog(
                tenant_id=tenant_id,
                action=status.lower(),
                entity="deal",
                entity_id=deal.id,
                changes=json.dumps({"status": {"from": previous_status, "to": status}}),
                performed_by=performed_by,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(deal)
    logger.info(
        "%s moderated deal_id=%s status=%s performed_by=%s awarded=%s",
        DEALS_PREFIX,
        deal.id,
        status,
        performed_by,
        awarded,
    )
    return deal
