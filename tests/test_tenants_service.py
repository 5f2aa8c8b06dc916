import pytest

from dealhub.core.errors import ConflictError, InvalidInputError, NotFoundError
from dealhub.models.deal import Deal
from dealhub.models.user import User
from dealhub.services import tenants as tenant_service
from tests.fixtures_data import add_deal, add_user, build_session_factory


@pytest.fixture()
def db():
    session = build_session_factory()()
    try:
        yield session
    finally:
        session.close()


def test_create_tenant_normalizes_routing_keys(db):
    tenant = tenant_service.create_tenant(
        db, name="Acme", subdomain=" ACME ", custom_domain="Deals.Acme.org"
    )
    assert tenant.subdomain == "acme"
    assert tenant.custom_domain == "deals.acme.org"
    assert tenant.brand_name == "Acme"
    assert tenant.status == "ACTIVE"


@pytest.mark.parametrize("subdomain", ["www", "admin", "-bad", "bad-", "has space", ""])
def test_create_tenant_rejects_invalid_subdomain(db, subdomain):
    with pytest.raises(InvalidInputError):
        tenant_service.create_tenant(db, name="Bad", subdomain=subdomain)


def test_duplicate_subdomain_conflicts(db):
    tenant_service.create_tenant(db, name="Acme", subdomain="acme")
    with pytest.raises(ConflictError):
        tenant_service.create_tenant(db, name="Acme Two", subdomain="acme")


def test_update_to_taken_custom_domain_conflicts(db):
    tenant_service.create_tenant(db, name="Acme", subdomain="acme", custom_domain="acme.org")
    globex = tenant_service.create_tenant(db, name="Globex", subdomain="globex")
    with pytest.raises(ConflictError):
        tenant_service.update_tenant(db, globex.id, custom_domain="acme.org")


def test_update_clears_custom_domain_and_ignores_nulls(db):
    tenant = tenant_service.create_tenant(db, name="Acme", subdomain="acme", custom_domain="acme.org")
    updated = tenant_service.update_tenant(db, tenant.id, custom_domain=None, name=None, tagline="Best deals")
    assert updated.custom_domain is None
    assert updated.name == "Acme"
    assert updated.tagline == "Best deals"


def test_update_rejects_unknown_fields_and_status(db):
    tenant = tenant_service.create_tenant(db, name="Acme", subdomain="acme")
    with pytest.raises(InvalidInputError):
        tenant_service.update_tenant(db, tenant.id, password="x")
    with pytest.raises(InvalidInputError):
        tenant_service.update_tenant(db, tenant.id, status="DELETED")


def test_delete_tenant_removes_owned_rows(db):
    tenant = tenant_service.create_tenant(db, name="Acme", subdomain="acme")
    user = add_user(db, tenant.id, "alice@example.com")
    add_deal(db, tenant.id, user.id, "some-deal")
    tenant_id = tenant.id

    tenant_service.delete_tenant(db, tenant_id)

    assert db.query(User).filter(User.tenant_id == tenant_id).count() == 0
    assert db.query(Deal).filter(Deal.tenant_id == tenant_id).count() == 0
    with pytest.raises(NotFoundError):
        tenant_service.get_tenant(db, tenant_id)
