"""Tests for the AEC GraphQL client using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from aeccheck.aec.client import AECGraphQLClient
from aeccheck.config import AECConfig
from aeccheck.errors import FilterSyntaxError, RemoteFetchError

FAST_CONFIG = AECConfig(graphql_url="https://aec.test/graphql", retry_backoff_seconds=0.0)


def page(results, cursor=None):
    return {
        "data": {
            "elementsByElementGroup": {
                "pagination": {"cursor": cursor, "pageSize": len(results)},
                "results": results,
            }
        }
    }


def make_client(handler, config=FAST_CONFIG):
    return AECGraphQLClient("token-123", config=config, transport=httpx.MockTransport(handler))


def test_requires_token():
    with pytest.raises(ValueError):
        AECGraphQLClient("")


@pytest.mark.asyncio
async def test_sends_bearer_token_and_variables():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=page([{"id": "el-1"}]))

    async with make_client(handler) as client:
        elements = await client.fetch_elements("model-1", "property.name.category==Walls")

    assert elements == [{"id": "el-1"}]
    assert seen["auth"] == "Bearer token-123"
    assert seen["body"]["variables"]["elementGroupId"] == "model-1"
    assert seen["body"]["variables"]["propertyFilter"] == "property.name.category==Walls"
    assert seen["body"]["variables"]["limit"] == 200


@pytest.mark.asyncio
async def test_follows_pagination_cursor():
    cursors = []

    def handler(request: httpx.Request) -> httpx.Response:
        cursor = json.loads(request.content)["variables"]["cursor"]
        cursors.append(cursor)
        if cursor is None:
            return httpx.Response(200, json=page([{"id": "a"}, {"id": "b"}], cursor="next"))
        return httpx.Response(200, json=page([{"id": "c"}]))

    async with make_client(handler) as client:
        elements = await client.fetch_elements("m", "f")

    assert [e["id"] for e in elements] == ["a", "b", "c"]
    assert cursors == [None, "next"]


@pytest.mark.asyncio
async def test_retries_transient_status():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json=page([]))

    async with make_client(handler) as client:
        assert await client.fetch_elements("m", "f") == []

    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_gives_up_after_retry_attempts():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(502, text="bad gateway")

    async with make_client(handler) as client:
        with pytest.raises(RemoteFetchError, match="502"):
            await client.fetch_elements("m", "f")

    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(401, text="unauthorized")

    async with make_client(handler) as client:
        with pytest.raises(RemoteFetchError, match="401"):
            await client.fetch_elements("m", "f")

    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_transport_error_becomes_remote_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(RemoteFetchError, match="request failed"):
            await client.fetch_elements("m", "f")


@pytest.mark.asyncio
async def test_graphql_syntax_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "Error with query syntax near 'and'"}]})

    async with make_client(handler) as client:
        with pytest.raises(FilterSyntaxError):
            await client.fetch_elements("m", "f")


@pytest.mark.asyncio
async def test_graphql_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "Element group not found"}]})

    async with make_client(handler) as client:
        with pytest.raises(RemoteFetchError, match="Element group not found") as exc_info:
            await client.fetch_elements("m", "f")

    assert not isinstance(exc_info.value, FilterSyntaxError)


@pytest.mark.asyncio
async def test_malformed_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    async with make_client(handler) as client:
        with pytest.raises(RemoteFetchError, match="malformed"):
            await client.fetch_elements("m", "f")


@pytest.mark.asyncio
async def test_missing_elements_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {}})

    async with make_client(handler) as client:
        with pytest.raises(RemoteFetchError, match="elementsByElementGroup"):
            await client.fetch_elements("m", "f")

