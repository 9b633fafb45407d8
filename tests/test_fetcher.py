import time

import httpx
import pytest
import respx

from crawler.errors import UpstreamFetchError
from crawler.ingest.fetcher import PoliteFetcher
from crawler.utils import retry
from crawler.utils.rate_limit import RateLimiter


@pytest.mark.asyncio
async def test_requests_are_spaced_by_rate():
    starts = []

    def record(request):
        starts.append(time.monotonic())
        return httpx.Response(200, text="ok")

    async with respx.mock(assert_all_called=True) as router:
        router.get(url__regex=r"https://example\.test/page/\d").mock(side_effect=record)
        async with httpx.AsyncClient() as session:
            fetcher = PoliteFetcher(session=session, rate=20)
            for n in range(4):
                await fetcher.fetch(f"https://example.test/page/{n}")

    gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
    assert len(gaps) == 3
    assert all(gap >= 0.05 - 0.005 for gap in gaps)


def test_rates_below_one_are_clamped():
    assert RateLimiter.min_interval(0.25) == 1.0
    assert RateLimiter.min_interval(4) == 0.25


@pytest.mark.asyncio
async def test_identification_headers():
    async with respx.mock(assert_all_called=True) as router:
        route = router.get("https://example.test/").mock(return_value=httpx.Response(200))
        async with httpx.AsyncClient() as session:
            fetcher = PoliteFetcher(session=session, rate=100, contact="crawl@example.test")
            await fetcher.fetch("https://example.test/")
    request = route.calls.last.request
    assert request.headers["User-Agent"] == "ProductCrawler/0.1 (+contact: crawl@example.test; https://example.test)"
    assert "application/xml" in request.headers["Accept"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 503])
async def test_transient_status_is_retried(status):
    async with respx.mock(assert_all_called=True) as router:
        route = router.get("https://example.test/flaky").mock(
            side_effect=[httpx.Response(status), httpx.Response(status), httpx.Response(200, text="finally")]
        )
        async with httpx.AsyncClient() as session:
            fetcher = PoliteFetcher(session=session, rate=100, backoff=0.01)
            response = await fetcher.fetch("https://example.test/flaky")
    assert response.text == "finally"
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_upstream_error():
    async with respx.mock(assert_all_called=True) as router:
        route = router.get("https://example.test/down").mock(return_value=httpx.Response(500))
        async with httpx.AsyncClient() as session:
            fetcher = PoliteFetcher(session=session, rate=100, backoff=0.01)
            with pytest.raises(UpstreamFetchError) as excinfo:
                await fetcher.fetch("https://example.test/down")
    assert excinfo.value.status_code == 500
    assert excinfo.value.url == "https://example.test/down"
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_client_errors_are_returned_without_retry():
    async with respx.mock(assert_all_called=True) as router:
        route = router.get("https://example.test/missing").mock(return_value=httpx.Response(404))
        async with httpx.AsyncClient() as session:
            fetcher = PoliteFetcher(session=session, rate=100, backoff=0.01)
            response = await fetcher.fetch("https://example.test/missing")
    assert response.status_code == 404
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_network_failure_becomes_upstream_error():
    async with respx.mock(assert_all_called=True) as router:
        route = router.get("https://example.test/").mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as session:
            fetcher = PoliteFetcher(session=session, rate=100, backoff=0.01)
            with pytest.raises(UpstreamFetchError):
                await fetcher.fetch("https://example.test/")
    assert route.call_count == 3


def test_backoff_schedule():
    assert retry.backoff_delays(3, 0.5, 2.0) == [0.5, 1.0]
    assert retry.backoff_delays(4, 0.5, 2.0) == [0.5, 1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_sleeps_between_attempts(monkeypatch):
    slept = []

    async def fake_sleep(delay):
        slept.append(delay)

    monkeypatch.setattr(retry, "_sleep", fake_sleep)
    calls = []

    @retry.retry_async(attempts=3, base_delay=0.5, exceptions=(ValueError,))
    async def always_fails():
        calls.append(1)
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await always_fails()
    assert len(calls) == 3
    assert slept == [0.5, 1.0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url",
    [
        "https://example.test:abc/products/bad",
        "https://[example.test/products/bad",
    ],
)
async def test_malformed_url_fails_without_request(url):
    async with respx.mock(assert_all_called=False) as router:
        route = router.route().mock(return_value=httpx.Response(200))
        async with httpx.AsyncClient() as session:
            fetcher = PoliteFetcher(session=session, rate=100, backoff=0.01)
            with pytest.raises(UpstreamFetchError) as excinfo:
                await fetcher.fetch(url)
    assert excinfo.value.url == url
    assert excinfo.value.status_code is None
    assert not route.called
