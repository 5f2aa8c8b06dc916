import pytest

from dealhub.models.tenant import TenantStatus
from dealhub.services.tenant_resolver import TenantHints, TenantResolver
from tests.fixtures_data import ACME_TENANT, GLOBEX_TENANT, add_tenant, build_session_factory


@pytest.fixture()
def db():
    session = build_session_factory()()
    add_tenant(session, **ACME_TENANT)
    add_tenant(session, **GLOBEX_TENANT)
    try:
        yield session
    finally:
        session.close()


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("acme.example.com", "acme"),
        ("ACME.Example.com:8443", "acme"),
        ("www.example.com", None),
        ("example.com", None),
        ("localhost:3000", None),
        ("", None),
    ],
)
def test_extract_subdomain_infers_from_host_shape(host, expected):
    assert TenantResolver.extract_subdomain(host) == expected


def test_extract_subdomain_with_base_domain():
    assert TenantResolver.extract_subdomain("acme.deals.io", "deals.io") == "acme"
    assert TenantResolver.extract_subdomain("acme.other.io", "deals.io") is None
    assert TenantResolver.extract_subdomain("deals.io", "*.deals.io") is None


@pytest.mark.parametrize("value", ["acme", "a", "acme-deals", "a1", "x" * 63])
def test_valid_subdomains(value):
    assert TenantResolver.is_valid_subdomain(value)


@pytest.mark.parametrize("value", ["", "-acme", "acme-", "Acme", "ac_me", "ac.me", "x" * 64, "www", "api", "admin"])
def test_invalid_subdomains(value):
    assert not TenantResolver.is_valid_subdomain(value)


def test_resolves_tenant_by_subdomain(db):
    tenant = TenantResolver.resolve_from_host(db, "acme.example.com", default_subdomain=None)
    assert tenant is not None
    assert tenant.subdomain == "acme"


def test_www_falls_back_to_configured_default(db):
    tenant = TenantResolver.resolve_from_host(db, "www.example.com", default_subdomain="globex")
    assert tenant is not None
    assert tenant.subdomain == "globex"


def test_www_without_default_resolves_nothing(db):
    assert TenantResolver.resolve_from_host(db, "www.example.com", default_subdomain=None) is None


def test_unknown_subdomain_never_uses_default(db):
    assert TenantResolver.resolve_from_host(db, "nobody.example.com", default_subdomain="acme") is None


def test_reserved_subdomain_is_not_looked_up(db):
    add_tenant(db, id=3, name="Api", brand_name="Api", subdomain="api", custom_domain=None)
    assert TenantResolver.resolve_from_host(db, "api.example.com", default_subdomain=None) is None


def test_resolves_custom_domain(db):
    tenant = TenantResolver.resolve_from_host(db, "deals.acme.org", default_subdomain=None)
    assert tenant is not None
    assert tenant.subdomain == "acme"


def test_custom_domain_with_base_domain_configured(db):
    tenant = TenantResolver.resolve_from_host(
        db, "deals.acme.org", base_domain="example.com", default_subdomain=None
    )
    assert tenant is not None
    assert tenant.subdomain == "acme"


def test_inactive_tenant_is_not_resolved(db):
    add_tenant(db, id=3, name="Old", brand_name="Old", subdomain="old", custom_domain=None, status=TenantStatus.SUSPENDED)
    assert TenantResolver.resolve_from_host(db, "old.example.com", default_subdomain=None) is None


def test_upstream_hint_headers_take_precedence():
    hints = TenantResolver.extract_hints({"x-tenant-subdomain": "Globex", "host": "acme.example.com"})
    assert hints == TenantHints(subdomain="globex")


def test_forwarded_host_is_preferred_over_host():
    hints = TenantResolver.extract_hints(
        {"x-forwarded-host": "globex.example.com", "host": "internal:8000"}, base_domain="example.com"
    )
    assert hints == TenantHints(subdomain="globex")


def test_resolve_from_hints(db):
    tenant = TenantResolver.resolve(db, TenantHints(subdomain="globex"), default_subdomain=None)
    assert tenant is not None
    assert tenant.id == GLOBEX_TENANT["id"]
