"""Shared seed data and builders for the backend test-suite."""
from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dealhub.core.database import Base, create_db_engine
from dealhub.models.deal import Deal, DealStatus
from dealhub.models.tenant import Tenant, TenantStatus
from dealhub.models.user import User, UserRole
import dealhub.models  # noqa: F401

ACME_TENANT = {
    "id": 1,
    "name": "Acme Deals",
    "brand_name": "Acme",
    "subdomain": "acme",
    "custom_domain": "deals.acme.org",
    "status": TenantStatus.ACTIVE,
}

GLOBEX_TENANT = {
    "id": 2,
    "name": "Globex Deals",
    "brand_name": "Globex",
    "subdomain": "globex",
    "custom_domain": None,
    "status": TenantStatus.ACTIVE,
}

ACME_HOST = "acme.example.com"
GLOBEX_HOST = "globex.example.com"


def build_session_factory(url: str = "sqlite+pysqlite:///:memory:", **engine_kwargs) -> sessionmaker:
    if url.endswith(":memory:"):
        engine_kwargs.setdefault("poolclass", StaticPool)
    engine = create_db_engine(url, **engine_kwargs)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_tenant(db: Session, **overrides) -> Tenant:
    values = {**ACME_TENANT, **overrides}
    tenant = Tenant(**values)
    db.add(tenant)
    db.commit()
    return tenant


def add_user(db: Session, tenant_id: int, email: str, *, role: str = UserRole.USER, **overrides) -> User:
    user = User(
        tenant_id=tenant_id,
        email=email,
        name=overrides.pop("name", email.split("@")[0].title()),
        role=role,
        **overrides,
    )
    db.add(user)
    db.commit()
    return user


def add_deal(db: Session, tenant_id: int, user_id: int, slug: str, **overrides) -> Deal:
    deal = Deal(
        tenant_id=tenant_id,
        user_id=user_id,
        title=overrides.pop("title", slug.replace("-", " ").title()),
        slug=slug,
        affiliate_url=overrides.pop("affiliate_url", f"https://shop.example.com/{slug}"),
        status=overrides.pop("status", DealStatus.APPROVED),
        **overrides,
    )
    db.add(deal)
    db.commit()
    return deal


def seed_two_tenants(db: Session) -> dict:
    """Acme and Globex, one user and one deal each."""
    acme = add_tenant(db, **ACME_TENANT)
    globex = add_tenant(db, **GLOBEX_TENANT)
    alice = add_user(db, acme.id, "alice@example.com")
    bob = add_user(db, globex.id, "bob@example.com")
    return {
        "acme": acme,
        "globex": globex,
        "alice": alice,
        "bob": bob,
        "acme_deal": add_deal(db, acme.id, alice.id, "blender-50-off"),
        "globex_deal": add_deal(db, globex.id, bob.id, "blender-50-off"),
    }
