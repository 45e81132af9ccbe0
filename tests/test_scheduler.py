"""Background token refresh."""

import asyncio

import httpx

from app import scheduler
from app.services.tm_client import TekmetricClient
from app.services.token_cache import TokenCache


def make_client(status=200):
    def handler(request):
        if status != 200:
            return httpx.Response(status, text="invalid_client")
        return httpx.Response(200, json={"access_token": "fresh"})

    return TekmetricClient(
        client_id="client",
        client_secret="secret",
        base_url="https://sandbox.tekmetric.com",
        token_cache=TokenCache(),
        transport=httpx.MockTransport(handler)
    )


def test_refresh_replaces_cached_token():
    tm = make_client()
    tm.token_cache.set("stale")

    assert asyncio.run(scheduler.scheduled_token_refresh(tm)) is True
    assert tm.token_cache.get() == "fresh"


def test_refresh_failure_is_logged_not_raised(caplog):
    tm = make_client(status=401)

    assert asyncio.run(scheduler.scheduled_token_refresh(tm)) is False
    assert "Token refresh failed" in caplog.text


def test_refresh_skipped_when_unconfigured(monkeypatch):
    for name in ("TEKMETRIC_CLIENT_ID", "TEKMETRIC_CLIENT_SECRET", "TEKMETRIC_BASE_URL"):
        monkeypatch.delenv(name, raising=False)

    assert asyncio.run(scheduler.scheduled_token_refresh(TekmetricClient())) is False


def test_start_scheduler_registers_refresh_job(monkeypatch):
    added = []
    monkeypatch.setattr(scheduler, "TOKEN_REFRESH_ENABLED", True)
    monkeypatch.setattr(scheduler.scheduler, "add_job", lambda func, trigger, **kwargs: added.append((func, kwargs)))
    monkeypatch.setattr(scheduler.scheduler, "start", lambda: None)

    tm = make_client()
    scheduler.start_scheduler(tm)

    func, kwargs = added[0]
    assert func is scheduler.scheduled_token_refresh
    assert kwargs["id"] == "token_refresh"
    assert kwargs["args"] == [tm]


def test_start_scheduler_disabled(monkeypatch):
    added = []
    monkeypatch.setattr(scheduler, "TOKEN_REFRESH_ENABLED", False)
    monkeypatch.setattr(scheduler.scheduler, "add_job", lambda *args, **kwargs: added.append(args))

    scheduler.start_scheduler(make_client())
    assert added == []
