"""Tests for the Pexels image search client (mocked transport, no network)."""

from __future__ import annotations

import asyncio

import httpx

from breakitdown.services.image_search import ImageSearchClient

_PEXELS_BODY = {
    "photos": [
        {
            "url": "https://www.pexels.com/photo/1",
            "photographer": "Ada",
            "src": {"large": "https://images.pexels.com/1-large.jpg", "medium": "https://images.pexels.com/1-medium.jpg"},
        }
    ]
}


def _client(handler) -> ImageSearchClient:
    return ImageSearchClient("test-key", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_search_returns_best_match():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_PEXELS_BODY)

    client = _client(handler)
    result = asyncio.run(client.search("copper wire"))
    assert result.image_url == "https://images.pexels.com/1-large.jpg"
    assert result.thumbnail_url == "https://images.pexels.com/1-medium.jpg"
    assert result.photographer == "Ada"
    assert seen[0].headers["Authorization"] == "test-key"
    assert seen[0].url.params["query"] == "copper wire"


def test_results_are_cached():
    count = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        count["n"] += 1
        return httpx.Response(200, json=_PEXELS_BODY)

    client = _client(handler)

    async def scenario():
        await client.search("Glass")
        await client.search("glass ")

    asyncio.run(scenario())
    assert count["n"] == 1


def test_no_photos():
    client = _client(lambda request: httpx.Response(200, json={"photos": []}))
    assert asyncio.run(client.search("nothing")) is None


def test_failures_degrade_to_none():
    assert asyncio.run(_client(lambda request: httpx.Response(500)).search("x")) is None
    assert asyncio.run(_client(lambda request: httpx.Response(200, content=b"<html>")).search("x")) is None

    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert asyncio.run(_client(boom).search("x")) is None


def test_disabled_without_key():
    client = ImageSearchClient("")
    assert not client.enabled
    assert asyncio.run(client.search("anything")) is None


def test_unexpected_body_shapes_degrade_to_none():
    for body in ([1, 2], {"photos": ["not-a-photo"]}, {"photos": [{"src": "flat-string"}]}, {"photos": None}):
        client = _client(lambda request, body=body: httpx.Response(200, json=body))
        assert asyncio.run(client.search("x")) is None
