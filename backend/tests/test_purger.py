import json

import httpx
import pytest

from keyshare.core.config import Settings
from keyshare.services.purger import CachePurger

URL = "https://files.example.com/ns/report.pdf"


def _settings(**cdn) -> Settings:
    return Settings(BASE_URL="https://files.example.com", UPLOAD_DIRECTORY="/tmp/unused", **cdn)


@pytest.fixture
def cdn_settings() -> Settings:
    return _settings(CF_ID="zone123", CF_EMAIL="ops@example.com", CF_KEY="cf-secret")


def _purger(settings, handler):
    requests = []

    def record(request: httpx.Request):
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return CachePurger(settings, client=client), requests


@pytest.mark.asyncio
async def test_purge_posts_url_to_zone(cdn_settings):
    purger, requests = _purger(cdn_settings, lambda r: httpx.Response(200, json={"success": True}))

    assert await purger.purge(URL) is True

    (request,) = requests
    assert request.method == "POST"
    assert str(request.url) == "https://api.cloudflare.com/client/v4/zones/zone123/purge_cache"
    assert request.headers["X-Auth-Email"] == "ops@example.com"
    assert request.headers["X-Auth-Key"] == "cf-secret"
    assert json.loads(request.content) == {"files": [URL]}


@pytest.mark.asyncio
async def test_rejected_purge_is_reported_not_raised(cdn_settings, caplog):
    purger, _ = _purger(cdn_settings, lambda r: httpx.Response(403, text="bad credentials"))

    assert await purger.purge(URL) is False
    assert "returned 403" in caplog.text


@pytest.mark.asyncio
async def test_transport_error_is_reported_not_raised(cdn_settings):
    def fail(request):
        raise httpx.ConnectError("connection refused", request=request)

    purger, _ = _purger(cdn_settings, fail)

    assert await purger.purge(URL) is False


@pytest.mark.asyncio
async def test_disabled_purger_makes_no_requests():
    purger, requests = _purger(_settings(), lambda r: httpx.Response(200))

    assert purger.enabled is False
    assert await purger.purge(URL) is False
    assert purger.schedule(URL) is None
    assert requests == []


@pytest.mark.asyncio
async def test_scheduled_purges_complete_on_close(cdn_settings):
    purger, requests = _purger(cdn_settings, lambda r: httpx.Response(200))

    task = purger.schedule(URL)
    assert task is not None
    await purger.aclose()

    assert task.done()
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_close_keeps_injected_client_open(cdn_settings):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    purger = CachePurger(cdn_settings, client=client)

    await purger.aclose()

    assert not client.is_closed
    await client.aclose()
