from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dealhub.core.config import DEFAULT_TENANT_SUBDOMAIN
from dealhub.core.request_context import bind_log_context
from dealhub.deps import get_db
from dealhub.services.shortener import resolve_short_link
from dealhub.services.tenant_resolver import TenantResolver

router = APIRouter(tags=["redirect"])
logger = logging.getLogger(__name__)

FALLBACK_LOCATION = "/"


@router.get("/s/{code}")
def follow_short_link(code: str, request: Request, db: Session = Depends(get_db)):
    """Redirect to the link's destination; every failure lands on the home page."""
    try:
        hints = TenantResolver.extract_hints(request.headers)
        tenant = TenantResolver.resolve(db, hints, default_subdomain=DEFAULT_TENANT_SUBDOMAIN)
        if tenant is None:
            return RedirectResponse(FALLBACK_LOCATION, status_code=307)
        bind_log_context(tenant_id=tenant.id)

        original_url = resolve_short_link(db, code, tenant.id)
    except SQLAlchemyError:
        logger.exception("Error resolving short URL", extra={"short_code": code})
        return RedirectResponse(FALLBACK_LOCATION, status_code=307)

    if not original_url:
        return RedirectResponse(FALLBACK_LOCATION, status_code=307)
    return RedirectResponse(original_url, status_code=307)
