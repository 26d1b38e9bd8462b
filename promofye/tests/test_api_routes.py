"""End-to-end route tests through the FastAPI app."""

from promofye.conftest import FAKE_RESULT_B64, PNG_B64
from promofye.features.usage.service import log_usage


def test_signup_login_me(client):
    resp = client.post("/api/auth/signup", json={"email": "new@example.com", "password": "secret123", "full_name": "New"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "new@example.com"
    assert "password_hash" not in body["user"]

    login = client.post("/api/auth/login", json={"email": "new@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["full_name"] == "New"
    assert me.json()["subscription"]["plan"]["id"] == "free"


def test_login_failure_is_401(client, user):
    resp = client.post("/api/auth/login", json={"email": "user@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_routes_require_token(client):
    for method, path in [("get", "/api/auth/me"), ("get", "/api/history"), ("get", "/api/usage")]:
        resp = getattr(client, method)(path)
        assert resp.status_code == 401


def test_bad_token_is_401(client):
    resp = client.get("/api/usage", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_generate_thumbnail_route(client, auth_headers, fake_image_client):
    resp = client.post(
        "/api/generate/thumbnail",
        headers=auth_headers,
        json={
            "prompt": "Huge reveal",
            "images": [{"base64_data": f"data:image/png;base64,{PNG_B64}"}],
            "preset": "Instagram Post",
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["image_base64"] == FAKE_RESULT_B64
    assert body["mime_type"] == "image/png"
    assert body["data_url"] == f"data:image/png;base64,{FAKE_RESULT_B64}"
    assert body["history_item"]["title"] == "Thumbnail #1"
    assert "Instagram Post platform" in fake_image_client.calls[0]["text"]


def test_generate_rejects_non_image_mime(client, auth_headers, fake_image_client):
    resp = client.post(
        "/api/generate/reimagine",
        headers=auth_headers,
        json={"prompt": "x", "image": {"base64_data": PNG_B64, "mime_type": "application/pdf"}},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"
    assert fake_image_client.calls == []


def test_generate_scene_validation_message(client, auth_headers, fake_image_client):
    resp = client.post("/api/generate/scene", headers=auth_headers, json={"prompt": ""})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please describe the scene you want to generate."


def test_limit_reached_is_402(client, auth_headers, user, fake_image_client):
    for _ in range(10):
        log_usage(user.id, "thumbnail")

    resp = client.post("/api/generate/scene", headers=auth_headers, json={"prompt": "more"})
    assert resp.status_code == 402
    error = resp.json()["error"]
    assert error["code"] == "usage_limit_exceeded"
    assert error["limit"] == 10
    assert error["remaining"] == 0


def test_presets(client):
    resp = client.get("/api/generate/presets")
    assert resp.status_code == 200
    names = [p["name"] for p in resp.json()["presets"]]
    assert names[0] == "YouTube"
    assert "X / Twitter" in names
    assert resp.json()["default"] == "YouTube"


def test_history_routes(client, auth_headers, fake_image_client):
    client.post("/api/generate/reimagine", headers=auth_headers, json={"prompt": "castle"})

    listing = client.get("/api/history", headers=auth_headers, params={"type": "reimagine"})
    assert listing.status_code == 200
    items = listing.json()["items"]
    assert len(items) == 1

    item_id = items[0]["id"]
    assert client.get(f"/api/history/{item_id}", headers=auth_headers).json()["title"] == "Reimagined #1"
    assert client.delete(f"/api/history/{item_id}", headers=auth_headers).json() == {"ok": True}
    assert client.get(f"/api/history/{item_id}", headers=auth_headers).status_code == 404


def test_settings_routes(client, auth_headers):
    resp = client.patch("/api/settings/profile", headers=auth_headers, json={"full_name": "Updated"})
    assert resp.status_code == 200
    assert resp.json()["user"]["full_name"] == "Updated"

    bad = client.post(
        "/api/settings/password",
        headers=auth_headers,
        json={"current_password": "secret123", "new_password": "abcdef", "confirm_password": "abcdeg"},
    )
    assert bad.status_code == 400
    assert bad.json()["detail"] == "New passwords do not match"

    ok = client.post(
        "/api/settings/password",
        headers=auth_headers,
        json={"current_password": "secret123", "new_password": "abcdef", "confirm_password": "abcdef"},
    )
    assert ok.status_code == 200


def test_subscription_routes(client, auth_headers, user):
    log_usage(user.id, "scene")

    plans = client.get("/api/subscription/plans").json()["plans"]
    assert [p["id"] for p in plans] == ["free", "pro", "business"]

    current = client.get("/api/subscription", headers=auth_headers).json()
    assert current["subscription"]["plan_id"] == "free"
    assert current["usage"]["used"] == 1
    assert current["usage"]["remaining"] == 9

    badge = client.get("/api/usage", headers=auth_headers).json()
    assert badge["limit"] == 10
    assert badge["is_low"] is False


def test_checkout_for_unpriced_plan_is_400(client, auth_headers):
    resp = client.post("/api/subscription/checkout", headers=auth_headers, json={"plan_id": "pro"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Plan pro is not available for purchase"


def test_admin_routes_forbidden_for_users(client, auth_headers):
    for path in ["/api/admin/users", "/api/admin/api-keys", "/api/admin/subscriptions"]:
        resp = client.get(path, headers=auth_headers)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"


def test_admin_user_management(client, admin_headers, user):
    users = client.get("/api/admin/users", headers=admin_headers).json()["users"]
    assert {u["email"] for u in users} == {"user@example.com", "admin@example.com"}

    toggled = client.post(f"/api/admin/users/{user.id}/toggle-admin", headers=admin_headers)
    assert toggled.status_code == 200
    assert toggled.json()["user"]["is_admin"] is True

    subs = client.get("/api/admin/subscriptions", headers=admin_headers).json()["subscriptions"]
    assert {s["user_email"] for s in subs} == {"user@example.com", "admin@example.com"}


def test_admin_cannot_demote_self(client, admin_headers, admin_user):
    resp = client.post(f"/api/admin/users/{admin_user.id}/toggle-admin", headers=admin_headers)
    assert resp.status_code == 400


def test_admin_api_keys(client, admin_headers):
    created = client.post(
        "/api/admin/api-keys",
        headers=admin_headers,
        json={"name": "Main", "provider": "google_gemini", "api_key": "AIzaSyA-0123456789abcdefghij"},
    )
    assert created.status_code == 201
    key = created.json()["api_key"]
    assert "api_key" not in key
    assert key["masked_key"].startswith("AIza")

    listing = client.get("/api/admin/api-keys", headers=admin_headers).json()["api_keys"]
    assert [k["id"] for k in listing] == [key["id"]]

    toggled = client.post(f"/api/admin/api-keys/{key['id']}/toggle", headers=admin_headers)
    assert toggled.json()["api_key"]["is_active"] is False

    missing = client.post("/api/admin/api-keys", headers=admin_headers, json={"name": "", "api_key": ""})
    assert missing.status_code == 400


def test_admin_usage_badge_is_unlimited(client, admin_headers):
    badge = client.get("/api/usage", headers=admin_headers).json()
    assert badge["unlimited"] is True
    assert badge["limit"] == 999999


def test_usage_logs_route(client, auth_headers, fake_image_client):
    client.post("/api/generate/scene", headers=auth_headers, json={"prompt": "desert road"})

    logs = client.get("/api/usage/logs", headers=auth_headers).json()["logs"]
    assert [log["action_type"] for log in logs] == ["scene"]
    assert logs[0]["metadata"] == {"prompt": "desert road"}
