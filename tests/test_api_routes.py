"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Exercises the HTTP surface with the TestClient against in-memory SQLite:

- Auth guards (401 / 403 / login redirect)
- Vouch, reference-list and product endpoints, including error mapping
- Page view models
- Login / logout plumbing
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, patch

import pytest

from vouchboard.api.deps import TOKEN_COOKIE
from vouchboard.errors import StorageError
from vouchboard.services.upload_service import UPLOAD_DIR


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _post_vouch(client, token, **body):
    payload = {"vendor": "Shop", "note": "5"}
    payload.update(body)
    return client.post("/api/vouch", json=payload, headers=_auth(token))


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Auth guards
# ===========================================================================
class TestAuthGuards:
    ADMIN_POST_ENDPOINTS = [
        "/api/config/vendor/add",
        "/api/config/vendor/remove",
        "/api/config/item/add",
        "/api/config/item/remove",
        "/api/config/payment/add",
        "/api/config/payment/remove",
    ]

    @pytest.mark.parametrize("endpoint", ADMIN_POST_ENDPOINTS)
    def test_admin_post_rejects_no_token(self, client, endpoint):
        resp = client.post(endpoint, json={"name": "x"})
        assert resp.status_code == 401
        assert resp.json() == {"ok": False, "message": "Login required."}

    @pytest.mark.parametrize("endpoint", ADMIN_POST_ENDPOINTS)
    def test_admin_post_rejects_member(self, client, member_token, endpoint):
        resp = client.post(endpoint, json={"name": "x"}, headers=_auth(member_token))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Access denied (admin required)."

    def test_member_cannot_delete_vouch(self, client, member_token):
        resp = client.delete("/api/vouch/1", headers=_auth(member_token))
        assert resp.status_code == 403

    def test_member_cannot_create_product(self, client, member_token):
        resp = client.post("/api/product", data={"name": "A"}, headers=_auth(member_token))
        assert resp.status_code == 403

    def test_vouch_requires_login(self, client, relay):
        resp = client.post("/api/vouch", json={"vendor": "Shop", "note": "5"})
        assert resp.status_code == 401
        relay.publish.assert_not_called()

    def test_invalid_token_is_anonymous(self, client):
        resp = client.get("/auth/me", headers=_auth("not-a-token"))
        assert resp.status_code == 401

    @pytest.mark.parametrize("page", ["/vouches", "/leaderboard", "/products", "/config"])
    def test_pages_redirect_to_login(self, client, page):
        resp = client.get(page, follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/auth/discord"

    def test_cookie_authenticates(self, client, member_token):
        client.cookies.set(TOKEN_COOKIE, member_token)
        resp = client.get("/auth/me")
        assert resp.status_code == 200
        assert resp.json()["id"] == "12345"
        assert resp.json()["is_admin"] is False


# ===========================================================================
# Vouches
# ===========================================================================
class TestVouchEndpoints:
    def test_create_vouch(self, client, member_token, relay):
        resp = _post_vouch(client, member_token, item="Nitro", qty="2")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "message": "Vouch created.", "id": 1, "nextId": 2}

        relay.publish.assert_called_once()
        event = relay.publish.call_args.args[0]
        assert event.vouch.author_id == "12345"
        assert event.vouch.author_tag == "Member"
        assert event.vouch.qty == 2

    def test_french_vendor_field_accepted(self, client, member_token):
        resp = client.post(
            "/api/vouch", json={"vendeur": "Boutique", "note": 4}, headers=_auth(member_token)
        )
        assert resp.status_code == 200
        page = client.get("/vouches", headers=_auth(member_token)).json()
        assert page["vouches"][0]["vendorLabel"] == "Boutique"

    def test_non_numeric_note_rejected(self, client, member_token, relay):
        resp = _post_vouch(client, member_token, note="great")
        assert resp.status_code == 400
        assert resp.json() == {"ok": False, "message": "Note must be a number."}
        relay.publish.assert_not_called()
        page = client.get("/vouches", headers=_auth(member_token)).json()
        assert page["vouches"] == []

    def test_missing_fields_rejected(self, client, member_token):
        resp = client.post("/api/vouch", json={}, headers=_auth(member_token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Missing required fields."

    def test_delete_vouch_renumbers(self, client, member_token, admin_token, relay):
        with patch("vouchboard.services.vouch_service.now_ms", side_effect=[1000, 2000, 3000]):
            for vendor in ("A", "B", "C"):
                _post_vouch(client, member_token, vendor=vendor)

        resp = client.delete("/api/vouch/2", headers=_auth(admin_token))

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "message": "Vouch deleted.", "nextId": 3}
        assert relay.publish.call_count == 4
        listed = client.get("/vouches", headers=_auth(member_token)).json()["vouches"]
        assert [(v["id"], v["vendorLabel"]) for v in listed] == [(2, "C"), (1, "A")]

    def test_delete_missing_vouch(self, client, member_token, admin_token):
        _post_vouch(client, member_token)
        resp = client.delete("/api/vouch/99", headers=_auth(admin_token))
        assert resp.status_code == 404
        assert resp.json() == {"ok": False, "message": "Vouch not found."}

    def test_delete_non_numeric_id(self, client, admin_token):
        resp = client.delete("/api/vouch/abc", headers=_auth(admin_token))
        assert resp.status_code == 400
        assert resp.json()["ok"] is False

    def test_storage_error_is_generic_500(self, client, member_token, relay):
        with patch(
            "vouchboard.services.vouch_service.create_vouch",
            side_effect=StorageError("Failed to save guild record"),
        ):
            resp = _post_vouch(client, member_token)
        assert resp.status_code == 500
        assert resp.json() == {"ok": False, "message": "Server error"}
        relay.publish.assert_not_called()


# ===========================================================================
# Reference lists
# ===========================================================================
class TestConfigEndpoints:
    def test_add_and_remove_vendor(self, client, admin_token):
        resp = client.post(
            "/api/config/vendor/add", json={"label": "Alice", "id": 111}, headers=_auth(admin_token)
        )
        assert resp.json() == {"ok": True}

        page = client.get("/config", headers=_auth(admin_token)).json()
        assert page["guildId"] == "1000"
        assert page["vendors"] == [{"id": "111", "label": "Alice"}]

        resp = client.post("/api/config/vendor/remove", json={"key": "111"}, headers=_auth(admin_token))
        assert resp.json() == {"ok": True, "message": "Vendor removed."}

    def test_blank_vendor_label(self, client, admin_token):
        resp = client.post("/api/config/vendor/add", json={"label": "  "}, headers=_auth(admin_token))
        assert resp.status_code == 400

    def test_remove_unknown_item(self, client, admin_token):
        client.post("/api/config/item/add", json={"name": "Nitro"}, headers=_auth(admin_token))
        resp = client.post("/api/config/item/remove", json={"name": "Boost"}, headers=_auth(admin_token))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Item not found."

    def test_duplicate_payment_is_ok(self, client, admin_token):
        for _ in range(2):
            resp = client.post(
                "/api/config/payment/add", json={"name": "PayPal"}, headers=_auth(admin_token)
            )
            assert resp.status_code == 200
        page = client.get("/config", headers=_auth(admin_token)).json()
        assert page["payments"] == ["PayPal"]

    def test_remove_vendor_blank_key(self, client, admin_token):
        resp = client.post("/api/config/vendor/remove", json={}, headers=_auth(admin_token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Vendor key is missing."


# ===========================================================================
# Products
# ===========================================================================
class TestProductEndpoints:
    def test_create_with_image_url(self, client, admin_token, member_token):
        resp = client.post(
            "/api/product",
            data={"name": "Boost", "price": "4.99", "image": "https://cdn.example/boost.png"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "id": 1}

        products = client.get("/products", headers=_auth(member_token)).json()["products"]
        assert products[0]["price"] == 4.99
        assert products[0]["image"] == "https://cdn.example/boost.png"

    def test_create_with_upload_is_served(self, client, admin_token, member_token):
        resp = client.post(
            "/api/product",
            data={"name": "Boost"},
            files={"file": ("boost.PNG", b"\x89PNG fake", "image/png")},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200

        image = client.get("/products", headers=_auth(member_token)).json()["products"][0]["image"]
        assert image.startswith("/uploads/")
        assert image.endswith(".png")
        served = client.get(image)
        assert served.status_code == 200
        assert served.content == b"\x89PNG fake"

    def test_upload_wrong_type_is_500(self, client, admin_token, caplog):
        with caplog.at_level(logging.WARNING, logger="vouchboard.services.upload_service"):
            resp = client.post(
                "/api/product",
                data={"name": "Boost"},
                files={"file": ("notes.txt", b"hello", "text/plain")},
                headers=_auth(admin_token),
            )
        assert resp.status_code == 500
        assert resp.json()["ok"] is False
        assert "Rejected upload 'notes.txt'" in caplog.text

    def test_blank_name_discards_upload(self, client, admin_token):
        UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        before = set(UPLOAD_DIR.iterdir())
        resp = client.post(
            "/api/product",
            data={"name": " "},
            files={"file": ("boost.png", b"png", "image/png")},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Name is required."
        assert set(UPLOAD_DIR.iterdir()) == before

    def test_cleanup_failure_keeps_original_error(self, client, admin_token):
        with patch(
            "vouchboard.api.routes.products.delete_upload", side_effect=PermissionError("locked")
        ):
            resp = client.post(
                "/api/product",
                data={"name": " "},
                files={"file": ("boost.png", b"png", "image/png")},
                headers=_auth(admin_token),
            )
        assert resp.status_code == 400
        assert resp.json() == {"ok": False, "message": "Name is required."}

    def test_update_is_partial(self, client, admin_token, member_token):
        client.post(
            "/api/product",
            data={"name": "Boost", "price": "5", "description": "monthly"},
            headers=_auth(admin_token),
        )
        resp = client.put("/api/product/1", json={"price": "8"}, headers=_auth(admin_token))
        assert resp.json() == {"ok": True}

        product = client.get("/products", headers=_auth(member_token)).json()["products"][0]
        assert product["price"] == 8.0
        assert product["name"] == "Boost"
        assert product["description"] == "monthly"

    def test_update_missing(self, client, admin_token):
        client.post("/api/product", data={"name": "Boost"}, headers=_auth(admin_token))
        resp = client.put("/api/product/7", json={"name": "X"}, headers=_auth(admin_token))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Product not found."

    def test_delete(self, client, admin_token, member_token):
        client.post("/api/product", data={"name": "Boost"}, headers=_auth(admin_token))
        resp = client.delete("/api/product/1", headers=_auth(admin_token))
        assert resp.json() == {"ok": True}
        assert client.get("/products", headers=_auth(member_token)).json()["products"] == []

    def test_delete_invalid_id(self, client, admin_token):
        resp = client.delete("/api/product/abc", headers=_auth(admin_token))
        assert resp.status_code == 400


# ===========================================================================
# Pages
# ===========================================================================
class TestPages:
    def test_home_anonymous(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json() == {"title": "Test Community", "user": None}

    def test_home_signed_in(self, client, member_token):
        user = client.get("/", headers=_auth(member_token)).json()["user"]
        assert user["username"] == "Member"
        assert user["avatar_url"].startswith("https://cdn.discordapp.com/embed/avatars/")

    def test_leaderboard(self, client, member_token):
        for vendor in ("A", "B", "B"):
            _post_vouch(client, member_token, vendor=vendor)
        rows = client.get("/leaderboard", headers=_auth(member_token)).json()["rows"]
        assert rows == [
            {"rank": 1, "vendor": "B", "count": 2},
            {"rank": 2, "vendor": "A", "count": 1},
        ]

    def test_vouches_page_includes_form_lists(self, client, member_token, admin_token):
        client.post("/api/config/item/add", json={"name": "Nitro"}, headers=_auth(admin_token))
        page = client.get("/vouches", headers=_auth(member_token)).json()
        assert page["items"] == ["Nitro"]
        assert page["vendors"] == []
        assert page["payments"] == []

    def test_config_page_admin_only(self, client, member_token):
        resp = client.get("/config", headers=_auth(member_token))
        assert resp.status_code == 403


# ===========================================================================
# Login / logout
# ===========================================================================
class TestAuthFlow:
    @pytest.fixture
    def oauth_env(self, monkeypatch):
        monkeypatch.setenv("DISCORD_CLIENT_ID", "client-1")
        monkeypatch.setenv("DISCORD_CLIENT_SECRET", "shh")
        monkeypatch.setenv("DISCORD_CALLBACK_URL", "http://testserver/auth/discord/callback")

    def test_login_failed_page(self, client):
        resp = client.get("/login-failed")
        assert resp.status_code == 200
        assert resp.text == "Discord login failed."

    def test_logout_clears_cookie(self, client):
        resp = client.get("/logout", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"
        assert f"{TOKEN_COOKIE}=" in resp.headers["set-cookie"]

    def test_callback_without_code(self, client):
        resp = client.get("/auth/discord/callback", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login-failed"

    def test_callback_with_unknown_state(self, client, oauth_env):
        resp = client.get(
            "/auth/discord/callback", params={"code": "c", "state": "forged"}, follow_redirects=False
        )
        assert resp.headers["location"] == "/login-failed"

    def test_login_not_configured(self, client, monkeypatch):
        monkeypatch.delenv("DISCORD_CLIENT_ID", raising=False)
        resp = client.get("/auth/discord", follow_redirects=False)
        assert resp.status_code == 500

    def test_full_login_round_trip(self, client, oauth_env):
        resp = client.get("/auth/discord", follow_redirects=False)
        location = resp.headers["location"]
        assert location.startswith("https://discord.com/oauth2/authorize?")
        assert "scope=identify+guilds" in location
        state = location.split("state=", 1)[1].split("&", 1)[0]

        profile = {"id": "555", "username": "neo", "avatar": None}
        guilds = [{"id": "1000", "permissions": "8"}]
        with patch(
            "vouchboard.api.auth._fetch_discord_identity",
            new=AsyncMock(return_value=(profile, guilds)),
        ):
            resp = client.get(
                "/auth/discord/callback",
                params={"code": "abc", "state": state},
                follow_redirects=False,
            )
            assert resp.status_code == 302
            assert resp.headers["location"] == "/"
            token = resp.cookies[TOKEN_COOKIE]

            # States are single use
            replay = client.get(
                "/auth/discord/callback",
                params={"code": "abc", "state": state},
                follow_redirects=False,
            )
            assert replay.headers["location"] == "/login-failed"

        me = client.get("/auth/me", headers=_auth(token)).json()
        assert me["id"] == "555"
        assert me["is_admin"] is True

    def test_failed_exchange_redirects(self, client, oauth_env):
        resp = client.get("/auth/discord", follow_redirects=False)
        state = resp.headers["location"].split("state=", 1)[1].split("&", 1)[0]
        with patch("vouchboard.api.auth._fetch_discord_identity", new=AsyncMock(return_value=None)):
            resp = client.get(
                "/auth/discord/callback",
                params={"code": "abc", "state": state},
                follow_redirects=False,
            )
        assert resp.headers["location"] == "/login-failed"
