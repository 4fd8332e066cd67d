import asyncio

import httpx

from sitesearch.core.config import settings
from sitesearch.worker_tasks.fetcher import UNREACHABLE_CODE, PageFetcher

PAGE = '<html><body><a href="/a">a</a><a href="https://x.org/">x</a></body></html>'


def make_fetcher(handler, retries: int = 2) -> PageFetcher:
    return PageFetcher(
        timeout=1,
        retries=retries,
        retry_wait=0,
        delay=(0, 0),
        transport=httpx.MockTransport(handler),
    )


def test_fetch_html_page() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, html=PAGE)

    result = asyncio.run(make_fetcher(handler).fetch("https://www.example.com/"))

    assert result.code == 200
    assert result.content == PAGE
    assert result.links == ["/a", "https://x.org/"]
    assert requests[0].headers["user-agent"] == settings.USER_AGENT
    assert requests[0].headers["referer"] == settings.REFERER


def test_error_status_is_recorded_without_retry() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, html=PAGE)

    result = asyncio.run(make_fetcher(handler).fetch("https://www.example.com/broken/"))

    assert result.code == 500
    assert result.links == []
    assert len(calls) == 1


def test_transport_errors_are_retried_then_unreachable() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    result = asyncio.run(make_fetcher(handler, retries=2).fetch("https://www.example.com/"))

    assert result.code == UNREACHABLE_CODE
    assert result.content == ""
    assert len(calls) == 3


def test_transient_error_recovers() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, html=PAGE)

    result = asyncio.run(make_fetcher(handler).fetch("https://www.example.com/"))

    assert result.code == 200
    assert len(calls) == 2


def test_redirects_are_followed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old/":
            return httpx.Response(301, headers={"location": "https://www.example.com/new/"})
        return httpx.Response(200, html=PAGE)

    result = asyncio.run(make_fetcher(handler).fetch("https://www.example.com/old/"))

    assert result.code == 200
    assert result.links


def test_non_html_content_is_not_stored() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"})

    result = asyncio.run(make_fetcher(handler).fetch("https://www.example.com/file.pdf"))

    assert result.code == 200
    assert result.content == ""
    assert result.links == []
