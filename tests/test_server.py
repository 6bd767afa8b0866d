import inspect
import threading
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from airi_market.auth import create_access_token
from airi_market.store import JsonCatalogRepository
import server
from server import AI_UNAVAILABLE_REPLY, create_app


@pytest.fixture
def repository(tmp_path):
    return JsonCatalogRepository(tmp_path / "database.json")


@pytest.fixture
def uploads_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def client(tmp_path, repository, uploads_dir):
    app = create_app(repository=repository, uploads_dir=uploads_dir, frontend_dir=tmp_path / "frontend")
    return TestClient(app)


def _signup(client, phone, role="buyer", **extra):
    payload = {"phone": phone, "password": "secret-pass", "name": f"User {phone}", "role": role}
    payload.update(extra)
    response = client.post("/api/signup", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_signup_defaults_and_me(client):
    seller = _signup(client, "0700", role="seller")
    assert seller["storeName"] == "My Store"
    assert seller["role"] == "seller"

    me = client.get("/api/me", headers=_auth(seller["token"])).json()
    assert me["town"] == "Nairobi"
    assert me["availability"] == {"status": "online", "backAt": None}

    buyer = _signup(client, "0701", town="Kiambu", storeName="Ignored")
    me = client.get("/api/me", headers=_auth(buyer["token"])).json()
    assert me["storeName"] is None
    assert me["availability"] is None
    assert me["town"] == "Kiambu"


def test_signup_validation(client):
    response = client.post("/api/signup", json={"phone": "0700", "password": "x"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields"

    _signup(client, "0700")
    response = client.post(
        "/api/signup", json={"phone": "0700", "password": "x", "name": "Dup", "role": "buyer"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Phone already registered"


def test_password_is_not_stored_in_plaintext(client, repository):
    _signup(client, "0700")
    stored = repository.path.read_text(encoding="utf-8")
    assert "secret-pass" not in stored
    assert "passwordHash" in stored


def test_login(client):
    _signup(client, "0700")
    bad = client.post("/api/login", json={"phone": "0700", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid credentials"

    good = client.post("/api/login", json={"phone": "0700", "password": "secret-pass"})
    assert good.status_code == 200
    assert client.get("/api/me", headers=_auth(good.json()["token"])).status_code == 200


def test_token_errors(client):
    assert client.get("/api/me").json()["detail"] == "Missing token"
    assert client.get("/api/me", headers=_auth("garbage")).json()["detail"] == "Invalid token"

    user = _signup(client, "0700")
    user_id = client.get("/api/me", headers=_auth(user["token"])).json()["id"]
    expired = create_access_token(user_id, expires_delta=timedelta(minutes=-1))
    response = client.get("/api/me", headers=_auth(expired))
    assert response.status_code == 401

    ghost = create_access_token("no-such-user")
    assert client.get("/api/me", headers=_auth(ghost)).json()["detail"] == "Invalid user"


def test_availability_update(client):
    seller = _signup(client, "0700", role="seller")
    response = client.post(
        "/api/seller/availability",
        json={"status": "offline", "backAt": "2030-01-01T09:30:00"},
        headers=_auth(seller["token"]),
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True, "availability": {"status": "offline", "backAt": "2030-01-01T09:30:00"}}

    response = client.post("/api/seller/availability", json={}, headers=_auth(seller["token"]))
    assert response.json()["availability"] == {"status": "online", "backAt": None}


def test_buyer_cannot_use_seller_routes(client):
    buyer = _signup(client, "0701")
    response = client.post("/api/seller/availability", json={"status": "busy"}, headers=_auth(buyer["token"]))
    assert response.status_code == 403
    assert response.json()["detail"] == "Not a seller"

    response = client.post(
        "/api/seller/product",
        data={"title": "Lamp", "price": "1000", "category": "home"},
        headers=_auth(buyer["token"]),
    )
    assert response.status_code == 403


def test_product_upload_with_images(client, uploads_dir):
    seller = _signup(client, "0700", role="seller", town="Nakuru")
    response = client.post(
        "/api/seller/product",
        data={"title": "Ring light", "price": "2500", "category": "electronics", "availableNow": "on"},
        files=[
            ("images", ("photo one.PNG", b"\x89PNG fake", "image/png")),
            ("images", ("back.jpg", b"\xff\xd8 fake", "image/jpeg")),
        ],
        headers=_auth(seller["token"]),
    )
    assert response.status_code == 200, response.text
    product = response.json()["product"]
    assert product["town"] == "Nakuru"
    assert product["price"] == 2500
    assert product["availableNow"] is True
    assert len(product["images"]) == 2
    first = product["images"][0]
    assert first.startswith(f"/uploads/sellers/{product['sellerId']}/photo_one_")
    assert first.endswith(".png")

    served = client.get(first)
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake"


def test_product_validation(client, uploads_dir):
    seller = _signup(client, "0700", role="seller")
    headers = _auth(seller["token"])

    missing = client.post("/api/seller/product", data={"title": "Lamp"}, headers=headers)
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Missing required fields"

    wrong_type = client.post(
        "/api/seller/product",
        data={"title": "Lamp", "price": "1000", "category": "home"},
        files=[("images", ("anim.gif", b"GIF89a", "image/gif"))],
        headers=headers,
    )
    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"] == "Only images allowed (.png/.jpg/.jpeg/.webp)"

    too_many = client.post(
        "/api/seller/product",
        data={"title": "Lamp", "price": "1000", "category": "home"},
        files=[("images", (f"p{i}.png", b"x", "image/png")) for i in range(3)],
        headers=headers,
    )
    assert too_many.status_code == 400
    assert too_many.json()["detail"] == "At most 2 images allowed"
    assert not (uploads_dir / "sellers").exists()

    for bad_price in ("nan", "inf", "-inf", "abc"):
        response = client.post(
            "/api/seller/product",
            data={"title": "Lamp", "price": bad_price, "category": "home", "availableNow": "on"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Price must be a number"

    hotlist = client.get("/api/hotlist")
    assert hotlist.status_code == 200
    assert hotlist.json()["items"] == []


def test_oversized_image_rejected_before_write(client, uploads_dir, monkeypatch):
    monkeypatch.setattr("airi_market.uploads.MAX_IMAGE_BYTES", 8)
    seller = _signup(client, "0700", role="seller")
    response = client.post(
        "/api/seller/product",
        data={"title": "Lamp", "price": "1000", "category": "home"},
        files=[("images", ("big.png", b"0123456789", "image/png"))],
        headers=_auth(seller["token"]),
    )
    assert response.status_code == 400
    assert "larger than" in response.json()["detail"]
    assert not (uploads_dir / "sellers").exists()
    assert client.get("/api/hotlist").json()["items"] == []


def test_product_route_runs_in_threadpool(client):
    route = next(r for r in client.app.routes if getattr(r, "path", None) == "/api/seller/product")
    assert not inspect.iscoroutinefunction(route.endpoint)


def test_signup_hashes_password_outside_lock(client, repository, monkeypatch):
    repository.lock = threading.Lock()
    seen = []

    def fake_hash(password):
        seen.append(repository.lock.locked())
        return "hashed-" + password

    monkeypatch.setattr(server, "get_password_hash", fake_hash)
    client.post("/api/signup", json={"phone": "0700", "password": "pw", "name": "A", "role": "buyer"})
    assert seen == [False]
    assert repository.load().find_user_by_phone("0700").password_hash == "hashed-pw"


def test_newest_product_first_and_hotlist_filters(client):
    seller = _signup(client, "0700", role="seller")
    headers = _auth(seller["token"])
    for title, town, available in [
        ("Sofa", "Mombasa", "true"),
        ("Bed", "Nairobi", "false"),
        ("Lamp", "Nairobi", "on"),
    ]:
        client.post(
            "/api/seller/product",
            data={"title": title, "price": "1000", "category": "home", "town": town, "availableNow": available},
            headers=headers,
        )

    items = client.get("/api/hotlist").json()["items"]
    assert [p["title"] for p in items] == ["Lamp", "Sofa"]

    items = client.get("/api/hotlist", params={"town": "mombasa"}).json()["items"]
    assert [p["title"] for p in items] == ["Sofa"]


def test_ai_reply_uses_profile_and_catalog(client):
    seller = _signup(client, "0700", role="seller", town="Nakuru")
    client.post(
        "/api/seller/product",
        data={"title": "Phone X", "price": "15000", "category": "electronics", "availableNow": "on"},
        headers=_auth(seller["token"]),
    )
    seller_id = client.get("/api/me", headers=_auth(seller["token"])).json()["id"]
    client.post(
        "/api/seller/availability",
        json={"status": "offline", "backAt": "soon-ish"},
        headers=_auth(seller["token"]),
    )

    buyer = _signup(client, "0701", town="Nakuru")
    response = client.post(
        "/api/ai",
        json={"question": "Looking for a TV around 20000", "mode": "pro", "sellerId": seller_id},
        headers=_auth(buyer["token"]),
    )
    assert response.status_code == 200
    assert response.json()["reply"] == (
        "Here is a structured insight: You are looking for a **solid** in **Nakuru**."
        " A fair price window is **KES 14000 – 26000**."
        " This seller is currently offline. Expected back at later."
        " Here are similar items nearby: Phone X (KES 15000)."
    )


def test_ai_rejects_unknown_role(client):
    buyer = _signup(client, "0701")
    response = client.post("/api/ai", json={"question": "hi", "role": "admin"}, headers=_auth(buyer["token"]))
    assert response.status_code == 422


def test_ai_accepts_numeric_question(client):
    buyer = _signup(client, "0701")
    response = client.post("/api/ai", json={"question": 5000, "mode": None}, headers=_auth(buyer["token"]))
    assert response.status_code == 200
    assert "**KES 3500 – 6500**" in response.json()["reply"]
    assert response.json()["reply"].startswith("Hey 😊 ")


def test_ai_requires_token(client):
    assert client.post("/api/ai", json={"question": "hi"}).status_code == 401


def test_ai_failure_returns_generic_reply(tmp_path, repository):
    class BrokenAssistant:
        def reply(self, request):
            raise RuntimeError("boom")

    app = create_app(repository=repository, uploads_dir=tmp_path / "uploads", assistant=BrokenAssistant())
    client = TestClient(app)
    buyer = _signup(client, "0701")
    response = client.post("/api/ai", json={"question": "hi"}, headers=_auth(buyer["token"]))
    assert response.status_code == 500
    assert response.json() == {"reply": AI_UNAVAILABLE_REPLY}


def test_frontend_pages(tmp_path, repository):
    frontend = tmp_path / "frontend"
    frontend.mkdir()
    (frontend / "hotlist.html").write_text("<h1>Hotlist</h1>", encoding="utf-8")
    client = TestClient(create_app(repository=repository, uploads_dir=tmp_path / "uploads", frontend_dir=frontend))

    assert "Hotlist" in client.get("/hotlist").text
    assert client.get("/buyer").status_code == 404
