import uuid

import pytest

from src.cache import link_key
from src.database import build_engine, build_session_maker
from src.dependencies import get_click_recorder
from src.main import app
from src.shortener.clicks import ClickRecorder

from tests.test_enrichment import IPHONE


async def shorten(client, **payload):
    payload.setdefault("longUrl", "https://example.com/landing?ref=1")
    return await client.post("/api/shorten", json=payload)


async def test_shorten_then_redirect(client):
    response = await shorten(client)

    assert response.status_code == 201
    body = response.json()
    assert body["longUrl"] == "https://example.com/landing?ref=1"
    assert len(body["shortCode"]) == 8
    assert body["shortUrl"].endswith("/" + body["shortCode"])
    assert body["clickCount"] == 0
    assert body["isActive"] is True

    redirect = await client.get(f"/{body['shortCode']}")
    assert redirect.status_code == 302
    assert redirect.headers["location"] == "https://example.com/landing?ref=1"


async def test_shorten_with_alias_and_topic(client):
    response = await shorten(client, customAlias="promo", topic="sales")

    assert response.status_code == 201
    assert response.json()["customAlias"] == "promo"
    assert response.json()["shortUrl"].endswith("/promo")

    redirect = await client.get("/promo")
    assert redirect.status_code == 302


async def test_invalid_url_is_rejected(client):
    response = await shorten(client, longUrl="not a url")

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


async def test_duplicate_alias_is_conflict(client):
    assert (await shorten(client, customAlias="promo")).status_code == 201

    response = await shorten(client, longUrl="https://example.org", customAlias="promo")

    assert response.status_code == 409
    assert response.json() == {"error": "Conflict", "message": "Custom alias already exists"}


async def test_past_expiry_is_rejected(client):
    response = await shorten(client, expiresAt="2000-01-01T00:00:00Z")

    assert response.status_code == 400


async def test_unknown_alias_is_not_found(client):
    response = await client.get("/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "Short URL not found"}


async def test_favicon_is_not_an_alias(client):
    response = await client.get("/favicon.ico")

    assert response.status_code == 204


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "OK"


async def test_visits_are_counted(client):
    alias = (await shorten(client, customAlias="counted")).json()["customAlias"]

    for _ in range(3):
        await client.get(f"/{alias}", headers={"user-agent": IPHONE})

    analytics = await client.get(f"/api/analytics/{alias}")
    assert analytics.status_code == 200
    body = analytics.json()
    # same client address every time, so one unique visitor
    assert body["totalClicks"] == 3
    assert body["uniqueUsers"] == 1
    assert len(body["clicksByDate"]) == 7
    assert sum(day["clicks"] for day in body["clicksByDate"]) == 3
    assert body["deviceType"] == [{"deviceName": "mobile", "uniqueClicks": 3, "uniqueUsers": 1}]


async def test_redirect_populates_link_cache(client, cache_backend):
    code = (await shorten(client)).json()["shortCode"]
    await cache_backend.clear(key=link_key(code))

    await client.get(f"/{code}")

    assert await cache_backend.get(link_key(code)) == b"https://example.com/landing?ref=1"


async def test_analytics_for_foreign_alias_is_not_found(client, make_link):
    await make_link(user_id=uuid.uuid4(), custom_alias="theirs")

    response = await client.get("/api/analytics/theirs")

    assert response.status_code == 404


async def test_topic_and_overall_analytics(client):
    await shorten(client, customAlias="sale-a", topic="sales")
    await shorten(client, longUrl="https://example.org", topic="support")
    await client.get("/sale-a")

    topic = (await client.get("/api/analytics/topic/sales")).json()
    assert topic["totalClicks"] == 1
    assert [url["shortUrl"].rsplit("/", 1)[-1] for url in topic["urls"]] == ["sale-a"]

    overall = (await client.get("/api/analytics/urls/overall")).json()
    assert overall["totalUrls"] == 2
    assert overall["totalClicks"] == 1
    assert len(overall["clicksByDate"]) == 7


async def test_empty_topic_analytics(client):
    response = await client.get("/api/analytics/topic/nothing")

    assert response.status_code == 200
    assert response.json()["totalClicks"] == 0
    assert response.json()["urls"] == []


async def test_list_links(client):
    await shorten(client, topic="sales")
    await shorten(client, topic="support")

    response = await client.get("/api/urls", params={"topic": "sales"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["urls"][0]["topic"] == "sales"

    capped = await client.get("/api/urls", params={"limit": 500})
    assert capped.json()["limit"] == 100
    assert capped.json()["total"] == 2


async def test_delete_link(client):
    created = (await shorten(client, customAlias="gone")).json()

    response = await client.delete(f"/api/urls/{created['id']}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "URL deleted successfully"}
    assert (await client.get("/gone")).status_code == 404
    assert (await client.delete(f"/api/urls/{created['id']}")).status_code == 404


async def test_deactivate_link(client):
    created = (await shorten(client, customAlias="paused")).json()

    response = await client.post(f"/api/urls/{created['id']}/deactivate")

    assert response.status_code == 200
    assert response.json()["isActive"] is False
    assert (await client.get("/paused")).status_code == 404


async def test_topic_longer_than_limit_is_rejected(client):
    response = await client.get("/api/analytics/topic/" + "t" * 51)

    assert response.status_code == 400


@pytest.fixture
async def unreachable_session_maker(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'shortener.db'}")
    yield build_session_maker(engine)
    await engine.dispose()


async def test_store_outage_is_service_unavailable(client, unreachable_session_maker):
    app.state.session_maker = unreachable_session_maker

    response = await client.get("/whatever")

    assert response.status_code == 503
    assert response.json() == {"error": "Service Unavailable", "message": "Link store is unavailable"}


async def test_click_store_failure_keeps_the_redirect(client, unreachable_session_maker, fetch_link, caplog):
    created = (await shorten(client, customAlias="sturdy")).json()
    app.dependency_overrides[get_click_recorder] = lambda: ClickRecorder(unreachable_session_maker)

    response = await client.get("/sturdy")

    assert response.status_code == 302
    assert response.headers["location"] == "https://example.com/landing?ref=1"
    assert "Failed to record click" in caplog.text
    assert (await fetch_link(uuid.UUID(created["id"]))).click_count == 0
