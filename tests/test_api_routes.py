from fastapi import FastAPI
from fastapi.testclient import TestClient

from dealhub.core.database import get_db
from dealhub.core.error_handlers import register_exception_handlers
from dealhub.middleware.observability import ObservabilityMiddleware
from dealhub.routers.admin import router as admin_router
from dealhub.routers.auth import router as auth_router
from dealhub.routers.deals import router as deals_router
from dealhub.routers.points import router as points_router
from dealhub.routers.redirect import router as redirect_router
from dealhub.routers.shares import router as shares_router
from dealhub.routers.tenants import router as tenants_router
from tests.fixtures_data import ACME_HOST, GLOBEX_HOST, add_deal, add_user, build_session_factory, seed_two_tenants


def _build_client():
    session_factory = build_session_factory()
    db = session_factory()
    seeded = seed_two_tenants(db)
    ids = {
        "acme": seeded["acme"].id,
        "globex": seeded["globex"].id,
        "alice": seeded["alice"].id,
        "bob": seeded["bob"].id,
        "acme_deal": seeded["acme_deal"].id,
        "admin": add_user(db, seeded["acme"].id, "root@example.com", role="ADMIN").id,
        "pending_deal": add_deal(db, seeded["acme"].id, seeded["alice"].id, "new-tv", status="PENDING").id,
    }
    db.close()

    app = FastAPI()
    app.add_middleware(ObservabilityMiddleware)
    register_exception_handlers(app)
    for router in (
        tenants_router,
        auth_router,
        shares_router,
        redirect_router,
        deals_router,
        points_router,
        admin_router,
    ):
        app.include_router(router)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app), ids


def _as(user_id, role="USER", host=ACME_HOST, tenant_id=None):
    headers = {"host": host, "X-User-Id": str(user_id), "X-User-Role": role}
    if tenant_id is not None:
        headers["X-User-Tenant-Id"] = str(tenant_id)
    return headers


def test_current_tenant_by_host():
    client, _ = _build_client()

    response = client.get("/api/tenants/current", headers={"host": GLOBEX_HOST})
    assert response.status_code == 200
    assert response.json()["subdomain"] == "globex"
    assert response.headers["X-Request-ID"]

    response = client.get("/api/tenants/current", headers={"host": "nobody.example.com"})
    assert response.status_code == 404
    assert response.json() == {"detail": "No tenant found for this domain"}


def test_register_then_duplicate_conflicts():
    client, _ = _build_client()
    payload = {"name": "Carol", "email": "carol@example.com", "password": "s3cret-pass"}

    response = client.post("/api/auth/register", json=payload, headers={"host": ACME_HOST})
    assert response.status_code == 201
    assert response.json()["email"] == "carol@example.com"
    assert "password_hash" not in response.json()

    response = client.post("/api/auth/register", json=payload, headers={"host": ACME_HOST})
    assert response.status_code == 409

    response = client.post("/api/auth/register", json=payload, headers={"host": GLOBEX_HOST})
    assert response.status_code == 201


def test_vote_flow():
    client, ids = _build_client()
    url = "/api/deals/blender-50-off/vote"

    assert client.post(url, json={"value": 1}, headers={"host": ACME_HOST}).status_code == 401

    response = client.post(url, json={"value": 1}, headers=_as(ids["alice"]))
    assert response.status_code == 200
    assert response.json() == {"message": "Vote recorded", "outcome": "recorded", "score": 1}

    response = client.post(url, json={"value": 1}, headers=_as(ids["alice"]))
    assert response.json()["message"] == "Vote removed"

    assert client.post(url, json={"value": 3}, headers=_as(ids["alice"])).status_code == 400
    assert client.post("/api/deals/missing/vote", json={"value": 1}, headers=_as(ids["alice"])).status_code == 404

    response = client.get("/api/deals/blender-50-off/score", headers={"host": ACME_HOST})
    assert response.json()["score"] == 0


def test_vote_values_are_not_coerced():
    client, ids = _build_client()
    url = "/api/deals/blender-50-off/vote"

    for raw in ("1", "-1", True, 1.0, -1.0, None):
        response = client.post(url, json={"value": raw}, headers=_as(ids["alice"]))
        assert response.status_code == 400, raw
        assert response.json() == {"detail": "Invalid vote value"}
    assert client.post(url, json={}, headers=_as(ids["alice"])).status_code == 400

    response = client.get("/api/deals/blender-50-off/score", headers=_as(ids["alice"]))
    assert response.json()["score"] == 0
    assert response.json()["user_vote"] is None


def test_identity_from_another_tenant_is_rejected():
    client, ids = _build_client()
    response = client.post(
        "/api/deals/blender-50-off/vote",
        json={"value": 1},
        headers=_as(ids["bob"], tenant_id=ids["globex"]),
    )
    assert response.status_code == 403


def test_share_and_redirect():
    client, ids = _build_client()
    response = client.post(
        "/api/shares",
        json={"url": "https://shop.example.com/blender", "deal_id": ids["acme_deal"], "platform": "facebook"},
        headers=_as(ids["alice"]),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["short_url"].endswith(f"/s/{body['short_code']}")

    redirect = client.get(f"/s/{body['short_code']}", headers={"host": ACME_HOST}, follow_redirects=False)
    assert redirect.status_code == 307
    assert redirect.headers["location"] == body["original_url"]

    foreign = client.get(f"/s/{body['short_code']}", headers={"host": GLOBEX_HOST}, follow_redirects=False)
    assert foreign.headers["location"] == "/"

    unknown_host = client.get(f"/s/{body['short_code']}", headers={"host": "nobody.example.com"}, follow_redirects=False)
    assert unknown_host.headers["location"] == "/"

    stats = client.get(f"/api/shares?deal_id={ids['acme_deal']}", headers={"host": ACME_HOST}).json()
    assert stats["total_shares"] == 1
    assert stats["total_clicks"] == 1

    points = client.get("/api/user/points", headers=_as(ids["alice"])).json()
    assert points["points"] == 5
    assert points["history"][0]["reason"] == "share"


def test_share_rejects_invalid_url():
    client, ids = _build_client()
    response = client.post("/api/shares", json={"url": "javascript:alert(1)"}, headers=_as(ids["alice"]))
    assert response.status_code == 400


def test_click_and_view_tracking():
    client, _ = _build_client()
    response = client.post("/api/deals/blender-50-off/click", headers={"host": ACME_HOST})
    assert response.status_code == 200
    assert response.json()["redirect_url"] == "https://shop.example.com/blender-50-off"

    response = client.post(
        "/api/deals/blender-50-off/view", headers={"host": ACME_HOST, "X-Referral-Source": "newsletter"}
    )
    assert response.status_code == 200


def test_leaderboard():
    client, ids = _build_client()
    client.post("/api/deals/blender-50-off/vote", json={"value": 1}, headers=_as(ids["alice"]))

    board = client.get("/api/leaderboard?limit=500", headers={"host": ACME_HOST}).json()
    assert board[0] == {"rank": 1, "id": ids["alice"], "name": "Alice", "points": 1}
    assert all(entry["id"] != ids["bob"] for entry in board)


def test_moderation_requires_role():
    client, ids = _build_client()
    payload = {"dealId": ids["pending_deal"], "status": "APPROVED"}

    assert client.post("/api/admin/deals/approve", json=payload, headers=_as(ids["alice"])).status_code == 403

    response = client.post("/api/admin/deals/approve", json=payload, headers=_as(ids["admin"], "MODERATOR"))
    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"

    response = client.post(
        "/api/admin/deals/approve",
        json={"deal_id": ids["pending_deal"], "status": "PENDING"},
        headers=_as(ids["admin"], "ADMIN"),
    )
    assert response.status_code == 400


def test_analytics_for_admins():
    client, ids = _build_client()
    client.post("/api/deals/blender-50-off/click", headers={"host": ACME_HOST})

    assert client.get("/api/admin/analytics", headers=_as(ids["admin"], "MODERATOR")).status_code == 403

    response = client.get("/api/admin/analytics?days=7", headers=_as(ids["admin"], "ADMIN"))
    assert response.status_code == 200
    body = response.json()
    assert body["days"] == 7
    assert body["overview"]["total_clicks"] == 1
    assert body["daily"][0]["clicks"] == 1


def test_tenant_admin_endpoints():
    client, ids = _build_client()
    admin = _as(ids["admin"], "ADMIN")

    assert client.get("/api/tenants", headers=_as(ids["alice"])).status_code == 403
    assert len(client.get("/api/tenants", headers=admin).json()) == 2

    response = client.post("/api/tenants", json={"name": "Initech", "subdomain": "initech"}, headers=admin)
    assert response.status_code == 201
    tenant_id = response.json()["id"]

    assert client.post("/api/tenants", json={"name": "Dup", "subdomain": "initech"}, headers=admin).status_code == 409
    assert client.post("/api/tenants", json={"name": "Bad", "subdomain": "www"}, headers=admin).status_code == 400

    response = client.patch(f"/api/tenants/{tenant_id}", json={"custom_domain": "deals.initech.com"}, headers=admin)
    assert response.json()["custom_domain"] == "deals.initech.com"

    assert client.delete(f"/api/tenants/{tenant_id}", headers=admin).json() == {"success": True}
    assert client.get(f"/api/tenants/{tenant_id}", headers=admin).status_code == 404
