from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealhub.core.errors import InvalidInputError, NotFoundError
from dealhub.models.deal import Deal, DealStatus
from dealhub.models.deal_analytics import DealAnalytics
from dealhub.models.user import User

logger = logging.getLogger(__name__)
ENGAGEMENT_PREFIX = "[ENGAGEMENT]"

# kind -> counter column on both deals and deal_analytics
ENGAGEMENT_KINDS = {
    "view": "views",
    "click": "clicks",
    "conversion": "conversions",
}
DEFAULT_REFERRAL_SOURCE = "direct"
MAX_REFERRAL_SOURCE_LENGTH = 64

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def truncate_to_day(moment: datetime | date | None = None) -> date:
    """Bucket key for `moment`: its calendar day in UTC."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment.date()
    return moment


def normalize_referral_source(value: str | None) -> str:
    source = (value or "").strip().lower()
    if not source:
        return DEFAULT_REFERRAL_SOURCE
    return source[:MAX_REFERRAL_SOURCE_LENGTH]


def _upsert_bucket(db: Session, deal_id: int, day: date, referral_source: str, column: str) -> None:
    dialect_name = db.get_bind().dialect.name
    insert_factory = _UPSERT_DIALECTS.get(dialect_name)

    if insert_factory is not None:
        counters = {name: 0 for name in ENGAGEMENT_KINDS.values()}
        counters[column] = 1
        stmt = insert_factory(DealAnalytics).values(
            deal_id=deal_id,
            date=day,
            referral_source=referral_source,
            **counters,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["deal_id", "date", "referral_source"],
            set_={column: getattr(DealAnalytics, column) + 1},
        )
        db.execute(stmt)
        return

    _update_or_insert_bucket(db, deal_id, day, referral_source, column)


def _update_or_insert_bucket(db: Session, deal_id: int, day: date, referral_source: str, column: str) -> None:
    def _increment() -> int:
        result = db.execute(
            update(DealAnalytics)
            .where(
                DealAnalytics.deal_id == deal_id,
                DealAnalytics.date == day,
                DealAnalytics.referral_source == referral_source,
            )
            .values({column: getattr(DealAnalytics, column) + 1})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    if _increment():
        return
    try:
        with db.begin_nested():
            db.add(DealAnalytics(deal_id=deal_id, date=day, referral_source=referral_source, **{column: 1}))
    except IntegrityError:
        # Lost the race to create the bucket; it exists now.
        if not _increment():
            raise


def record_engagement(
    db: Session,
    tenant_id: int,
    deal_id: int,
    kind: str,
    referral_source: str | None = None,
    occurred_at: datetime | date | None = None,
) -> None:
    """Count one view/click/conversion on the deal and in its daily bucket."""
    column = ENGAGEMENT_KINDS.get((kind or "").lower())
    if column is None:
        raise InvalidInputError("Invalid engagement kind")

    day = truncate_to_day(occurred_at)
    source = normalize_referral_source(referral_source)

    try:
        result = db.execute(
            update(Deal)
            .where(Deal.id == deal_id, Deal.tenant_id == tenant_id)
            .values({column: getattr(Deal, column) + 1})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Deal not found")

        _upsert_bucket(db, deal_id, day, source, column)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.debug(
        "%s deal_id=%s kind=%s source=%s day=%s", ENGAGEMENT_PREFIX, deal_id, kind, source, day.isoformat()
    )


def _as_int(value: Any) -> int:
    return int(value or 0)


def get_engagement_summary(
    db: Session,
    tenant_id: int,
    start_date: datetime | date,
    now: datetime | date | None = None,
    *,
    top_limit: int = 10,
) -> dict[str, Any]:
    """Sum buckets of the tenant's deals over the inclusive window [start_date, now]."""
    start_day = truncate_to_day(start_date)
    end_day = truncate_to_day(now)
    if start_day > end_day:
        raise InvalidInputError("start_date must not be after now")

    deals_query = db.query(Deal).filter(Deal.tenant_id == tenant_id)
    totals = (
        db.query(
            func.count(Deal.id),
            func.coalesce(func.sum(Deal.views), 0),
            func.coalesce(func.sum(Deal.clicks), 0),
            func.coalesce(func.sum(Deal.conversions), 0),
        )
        .filter(Deal.tenant_id == tenant_id)
        .one()
    )
    pending_deals = deals_query.filter(Deal.status == DealStatus.PENDING).count()
    total_users = db.query(func.count(User.id)).filter(User.tenant_id == tenant_id).scalar()

    window = (
        db.query(DealAnalytics)
        .join(Deal, Deal.id == DealAnalytics.deal_id)
        .filter(
            Deal.tenant_id == tenant_id,
            DealAnalytics.date >= start_day,
            DealAnalytics.date <= end_day,
        )
    )
    daily_rows = (
        window.with_entities(
            DealAnalytics.date,
            func.sum(DealAnalytics.views),
            func.sum(DealAnalytics.clicks),
            func.sum(DealAnalytics.conversions),
        )
        .group_by(DealAnalytics.date)
        .order_by(DealAnalytics.date.asc())
        .all()
    )
    source_rows = (
        window.with_entities(
            DealAnalytics.referral_source,
            func.sum(DealAnalytics.views),
            func.sum(DealAnalytics.clicks),
            func.sum(DealAnalytics.conversions),
        )
        .group_by(DealAnalytics.referral_source)
        .order_by(DealAnalytics.referral_source.asc())
        .all()
    )
    top_deals = (
        deals_query.filter(Deal.status == DealStatus.APPROVED)
        .order_by(Deal.clicks.desc(), Deal.id.asc())
        .limit(top_limit)
        .all()
    )

    return {
        "overview": {
            "total_deals": _as_int(totals[0]),
            "pending_deals": _as_int(pending_deals),
            "total_users": _as_int(total_users),
            "total_views": _as_int(totals[1]),
            "total_clicks": _as_int(totals[2]),
            "total_conversions": _as_int(totals[3]),
        },
        "daily": [
            {"date": day, "views": _as_int(views), "clicks": _as_int(clicks), "conversions": _as_int(conv)}
            for day, views, clicks, conv in daily_rows
        ],
        "referral_sources": [
            {"referral_source": source, "views": _as_int(views), "clicks": _as_int(clicks), "conversions": _as_int(conv)}
            for source, views, clicks, conv in source_rows
        ],
        "top_deals": [
            {"id": deal.id, "title": deal.title, "slug": deal.slug, "views": deal.views, "clicks": deal.clicks}
            for deal in top_deals
        ],
    }


def window_start(days: int, now: datetime | None = None) -> datetime:
    if days < 0:
        raise InvalidInputError("days must not be negative")
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)
