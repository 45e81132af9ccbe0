"""Token cache and Tekmetric client against a mocked Tekmetric."""

import asyncio
import base64
import json

import httpx
import pytest

from app.services.tm_client import (
    TekmetricAPIError,
    TekmetricAuthError,
    TekmetricClient,
    TekmetricConfigError,
)
from app.services.token_cache import TokenCache

BASE_URL = "https://sandbox.tekmetric.com"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def tekmetric_handler(calls, token_status=200):
    def handler(request):
        calls.append(request)
        if request.url.path == "/api/v1/oauth/token":
            if token_status != 200:
                return httpx.Response(token_status, text="invalid_client")
            return httpx.Response(200, json={"access_token": f"tok-{len(calls)}", "token_type": "bearer"})
        if request.url.path == "/api/v1/repair-orders/555":
            return httpx.Response(200, json={"id": 555, "shopId": 77})
        if request.url.path == "/api/v1/appointments" and request.method == "POST":
            return httpx.Response(200, json={"type": "SUCCESS", "data": 98765})
        return httpx.Response(404, text="Not Found")
    return handler


def make_client(calls, clock=None, **kwargs):
    return TekmetricClient(
        client_id="client",
        client_secret="secret",
        base_url=BASE_URL + "/",
        token_cache=TokenCache(ttl_seconds=3300, clock=clock or FakeClock()),
        transport=httpx.MockTransport(tekmetric_handler(calls, **kwargs))
    )


def token_requests(calls):
    return [c for c in calls if c.url.path == "/api/v1/oauth/token"]


def test_token_cache_expiry():
    clock = FakeClock()
    cache = TokenCache(ttl_seconds=60, clock=clock)
    assert cache.get() is None
    assert cache.expires_in == 0.0

    cache.set("abc")
    assert cache.get() == "abc"
    assert cache.expires_in == 60

    clock.now += 59
    assert cache.get() == "abc"
    clock.now += 1
    assert cache.get() is None

    cache.set("def", ttl_seconds=5)
    assert cache.expires_in == 5
    cache.clear()
    assert cache.get() is None


def test_token_exchange_uses_basic_auth_and_is_cached():
    calls = []
    tm = make_client(calls)

    async def scenario():
        first = await tm.get("/api/v1/repair-orders/555")
        second = await tm.get("/api/v1/repair-orders/555")
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second == {"id": 555, "shopId": 77}
    tokens = token_requests(calls)
    assert len(tokens) == 1
    expected = base64.b64encode(b"client:secret").decode()
    assert tokens[0].headers["Authorization"] == f"Basic {expected}"
    assert tokens[0].content == b"grant_type=client_credentials"
    assert tokens[0].url == httpx.URL(BASE_URL + "/api/v1/oauth/token")

    api_calls = [c for c in calls if c.url.path == "/api/v1/repair-orders/555"]
    assert all(c.headers["Authorization"] == "Bearer tok-1" for c in api_calls)


def test_expired_token_is_exchanged_again():
    calls = []
    clock = FakeClock()
    tm = make_client(calls, clock=clock)

    async def scenario():
        await tm.get("/api/v1/repair-orders/555")
        clock.now += 3300
        await tm.get("/api/v1/repair-orders/555")

    asyncio.run(scenario())
    assert len(token_requests(calls)) == 2
    assert calls[-1].headers["Authorization"] == "Bearer tok-3"


def test_force_refresh_bypasses_cache():
    calls = []
    tm = make_client(calls)

    async def scenario():
        first = await tm.get_access_token()
        cached = await tm.get_access_token()
        forced = await tm.get_access_token(force_refresh=True)
        return first, cached, forced

    first, cached, forced = asyncio.run(scenario())
    assert first == cached
    assert forced != first
    assert tm.token_cache.get() == forced


def test_concurrent_requests_share_one_exchange():
    calls = []
    tm = make_client(calls)

    async def scenario():
        await asyncio.gather(*(tm.get_access_token() for _ in range(5)))

    asyncio.run(scenario())
    assert len(token_requests(calls)) == 1


def test_post_sends_json_body():
    calls = []
    tm = make_client(calls)

    result = asyncio.run(tm.post("/api/v1/appointments", {"shopId": 77, "title": "6 Month"}))

    assert result == {"type": "SUCCESS", "data": 98765}
    sent = calls[-1]
    assert sent.method == "POST"
    assert sent.headers["Content-Type"] == "application/json"
    assert json.loads(sent.content) == {"shopId": 77, "title": "6 Month"}


def test_upstream_error_carries_status():
    calls = []
    tm = make_client(calls)

    with pytest.raises(TekmetricAPIError) as exc_info:
        asyncio.run(tm.get("/api/v1/repair-orders/404"))

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Not Found"


def test_auth_failure():
    calls = []
    tm = make_client(calls, token_status=401)

    with pytest.raises(TekmetricAuthError):
        asyncio.run(tm.get("/api/v1/repair-orders/555"))
    assert tm.token_cache.get() is None


def test_missing_settings(monkeypatch):
    for name in ("TEKMETRIC_CLIENT_ID", "TEKMETRIC_CLIENT_SECRET", "TEKMETRIC_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TEKMETRIC_CLIENT_ID", "client")

    tm = TekmetricClient()

    assert tm.missing_settings() == ["TEKMETRIC_CLIENT_SECRET", "TEKMETRIC_BASE_URL"]
    assert not tm.is_configured()
    with pytest.raises(TekmetricConfigError):
        asyncio.run(tm.get_access_token())


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("TEKMETRIC_CLIENT_ID", "env-id")
    monkeypatch.setenv("TEKMETRIC_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("TEKMETRIC_BASE_URL", "https://shop.tekmetric.com/")
    monkeypatch.setenv("TEKMETRIC_TOKEN_TTL_SECONDS", "120")

    tm = TekmetricClient()

    assert tm.is_configured()
    assert tm.base_url == "https://shop.tekmetric.com"
    assert tm.token_cache.ttl_seconds == 120
