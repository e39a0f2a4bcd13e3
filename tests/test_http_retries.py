import asyncio

import httpx

from picksboard.core.http import _backoff_delay, _parse_retry_after, request_with_retries


async def _no_sleep(_delay):
    return None


def test_request_with_retries_retries_on_500():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(500, request=request)
        return httpx.Response(200, json={"matches": []}, request=request)

    async def _run():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="https://football.test") as client:
            resp = await request_with_retries(
                client, "GET", "/competitions/PL/matches", retries=1, backoff_base=0.0, backoff_max=0.0, _sleep=_no_sleep
            )
            assert resp.status_code == 200

    asyncio.run(_run())
    assert calls["count"] == 2


def test_request_with_retries_honours_retry_after_on_429():
    sleeps = []
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429, headers={"Retry-After": "3"}, request=request)
        return httpx.Response(200, request=request)

    async def _sleep(delay):
        sleeps.append(delay)

    async def _run():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="https://football.test") as client:
            await request_with_retries(client, "GET", "/x", retries=2, backoff_base=0.1, backoff_max=1.0, _sleep=_sleep)

    asyncio.run(_run())
    assert sleeps == [3.0]


def test_request_with_retries_returns_last_response_when_exhausted():
    def handler(request):
        return httpx.Response(503, request=request)

    async def _run():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="https://football.test") as client:
            return await request_with_retries(client, "GET", "/x", retries=2, _sleep=_no_sleep)

    assert asyncio.run(_run()).status_code == 503


def test_request_with_retries_does_not_retry_client_errors():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(403, request=request)

    async def _run():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="https://football.test") as client:
            return await request_with_retries(client, "GET", "/x", retries=3, _sleep=_no_sleep)

    assert asyncio.run(_run()).status_code == 403
    assert calls["count"] == 1


def test_backoff_helpers():
    assert _parse_retry_after(None) is None
    assert _parse_retry_after("garbage") is None
    assert _parse_retry_after("-5") == 0.0
    assert _backoff_delay(0, 0.5, 8.0, None) == 0.5
    assert _backoff_delay(5, 0.5, 8.0, None) == 8.0
    assert _backoff_delay(0, 0.5, 8.0, 2.0) == 2.0
