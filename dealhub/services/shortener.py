from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealhub.core.config import SHORT_CODE_LENGTH, SITE_URL
from dealhub.core.errors import InvalidInputError, NotFoundError
from dealhub.models.deal import Deal
from dealhub.models.share import Share
from dealhub.services.points import POINT_VALUES, record_award
from dealhub.utils.urls import build_utm_url, is_valid_absolute_url

logger = logging.getLogger(__name__)
SHORTENER_PREFIX = "[SHORTENER]"

SHORT_CODE_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class Attribution:
    user_id: Optional[int] = None
    deal_id: Optional[int] = None
    platform: str = "direct"
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


@dataclass(frozen=True)
class ShareResult:
    short_code: str
    short_url: str
    original_url: str


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(length))


def build_short_url(short_code: str, site_url: str = SITE_URL) -> str:
    return f"{site_url.rstrip('/')}/s/{short_code}"


def _code_taken(db: Session, short_code: str, tenant_id: int) -> bool:
    return (
        db.query(Share.id)
        .filter(Share.short_code == short_code, Share.tenant_id == tenant_id)
        .first()
        is not None
    )


def create_short_link(
    db: Session,
    original_url: str,
    tenant_id: int,
    attribution: Attribution | None = None,
    *,
    code_generator=generate_short_code,
) -> str:
    """Insert a share row under a fresh code and return the code. Does not commit.

    The (short_code, tenant_id) constraint decides collisions: a violation
    inside the savepoint means the code is taken, so another one is drawn.
    """
    if not is_valid_absolute_url(original_url):
        raise InvalidInputError("Invalid URL")

    attribution = attribution or Attribution()
    attempts = 0
    while True:
        attempts += 1
        short_code = code_generator()
        try:
            with db.begin_nested():
                db.add(
                    Share(
                        tenant_id=tenant_id,
                        short_code=short_code,
                        original_url=original_url,
                        user_id=attribution.user_id,
                        deal_id=attribution.deal_id,
                        platform=attribution.platform or "direct",
                        utm_source=attribution.utm_source,
                        utm_medium=attribution.utm_medium,
                        utm_campaign=attribution.utm_campaign,
                    )
                )
        except IntegrityError:
            if not _code_taken(db, short_code, tenant_id):
                raise
            logger.info(
                "%s short code collision tenant_id=%s attempt=%s", SHORTENER_PREFIX, tenant_id, attempts
            )
            continue
        return short_code


def create_share(
    db: Session,
    tenant_id: int,
    url: str,
    *,
    user_id: int | None = None,
    deal_id: int | None = None,
    platform: str | None = None,
    utm_source: str | None = None,
    utm_medium: str | None = None,
    utm_campaign: str | None = None,
    site_url: str = SITE_URL,
) -> ShareResult:
    """Create a UTM-tagged short link; a signed-in user sharing a deal earns SHARE points."""
    if not is_valid_absolute_url(url):
        raise InvalidInputError("Invalid URL")

    platform = (platform or "direct").strip().lower() or "direct"
    attribution = Attribution(
        user_id=user_id,
        deal_id=deal_id,
        platform=platform,
        utm_source=utm_source or platform,
        utm_medium=utm_medium or "social",
        utm_campaign=utm_campaign or "deal_share",
    )
    tagged_url = build_utm_url(
        url,
        source=attribution.utm_source,
        medium=attribution.utm_medium,
        campaign=attribution.utm_campaign,
    )

    try:
        if deal_id is not None:
            deal_in_tenant = (
                db.query(Deal.id).filter(Deal.id == deal_id, Deal.tenant_id == tenant_id).first()
            )
            if deal_in_tenant is None:
                raise NotFoundError("Deal not found")

        short_code = create_short_link(db, tagged_url, tenant_id, attribution)
        if user_id is not None and deal_id is not None:
            record_award(
                db,
                user_id,
                POINT_VALUES["SHARE"],
                "share",
                f"Shared a deal on {platform}",
                deal_id=deal_id,
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "%s created tenant_id=%s deal_id=%s platform=%s",
        SHORTENER_PREFIX,
        tenant_id,
        deal_id,
        platform,
        extra={"short_code": short_code},
    )
    return ShareResult(
        short_code=short_code,
        short_url=build_short_url(short_code, site_url),
        original_url=tagged_url,
    )


def resolve_short_link(db: Session, short_code: str, tenant_id: int) -> str | None:
    """Return the destination for `short_code` and count the click, or None."""
    if not short_code or len(short_code) > 32:
        return None

    try:
        # The increment doubles as the existence check.
        result = db.execute(
            update(Share)
            .where(Share.short_code == short_code, Share.tenant_id == tenant_id)
            .values(clicks=Share.clicks + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            return None

        original_url = (
            db.query(Share.original_url)
            .filter(Share.short_code == short_code, Share.tenant_id == tenant_id)
            .scalar()
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return original_url


def get_share_analytics(db: Session, tenant_id: int, deal_id: int) -> list[Share]:
    return (
        db.query(Share)
        .filter(Share.tenant_id == tenant_id, Share.deal_id == deal_id)
        .order_by(Share.clicks.desc(), Share.id.asc())
        .all()
    )
