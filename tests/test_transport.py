"""
Tests for HttpxTransport: HTTP mocked with pytest-httpx, no network.

Test plan:
- Posts the JSON-RPC payload and returns the parsed body
- Timeout → LedgerTimeoutError, connection failure and HTTP status
  → TransportError
- Non-JSON or non-object body → MalformedResponse
- Injected AsyncClient is reused
"""

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from nexus_ledger.errors import LedgerTimeoutError, MalformedResponse, TransportError
from nexus_ledger.jsonrpc_client import JsonRpcClient
from nexus_ledger.transport import HttpxTransport, JsonRpcTransport

URL = "https://rippled.example.com/"
PAYLOAD = {"method": "fee", "params": [{}], "id": 1}


class TestHttpxTransport:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(HttpxTransport(), JsonRpcTransport)

    @pytest.mark.asyncio
    async def test_posts_payload(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, json={"result": {"status": "success"}})

        result = await HttpxTransport().post_json(URL, PAYLOAD)

        assert result == {"result": {"status": "success"}}
        request = httpx_mock.get_requests()[0]
        assert request.method == "POST"
        assert json.loads(request.content) == PAYLOAD

    @pytest.mark.asyncio
    async def test_timeout(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("read timed out"))

        with pytest.raises(LedgerTimeoutError):
            await HttpxTransport(timeout=0.5).post_json(URL, PAYLOAD)

    @pytest.mark.asyncio
    async def test_connection_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(TransportError, match="refused"):
            await HttpxTransport().post_json(URL, PAYLOAD)

    @pytest.mark.asyncio
    async def test_http_status(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, status_code=503)

        with pytest.raises(TransportError, match="503"):
            await HttpxTransport().post_json(URL, PAYLOAD)

    @pytest.mark.asyncio
    async def test_non_json_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, text="<html>busy</html>")

        with pytest.raises(MalformedResponse):
            await HttpxTransport().post_json(URL, PAYLOAD)

    @pytest.mark.asyncio
    async def test_non_object_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, json=[1, 2, 3])

        with pytest.raises(MalformedResponse):
            await HttpxTransport().post_json(URL, PAYLOAD)

    @pytest.mark.asyncio
    async def test_injected_client(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, json={"result": {}})
        httpx_mock.add_response(url=URL, json={"result": {}})

        async with httpx.AsyncClient() as client:
            transport = HttpxTransport(client=client)
            await transport.post_json(URL, PAYLOAD)
            await transport.post_json(URL, PAYLOAD)

        assert len(httpx_mock.get_requests()) == 2


class TestClientOverHttpx:
    @pytest.mark.asyncio
    async def test_request_ids_increase(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, json={"result": {"status": "success"}})
        httpx_mock.add_response(url=URL, json={"result": {"status": "success"}})

        client = JsonRpcClient(URL, HttpxTransport())
        await client.request("fee", {})
        await client.request("fee", {})

        ids = [json.loads(r.content)["id"] for r in httpx_mock.get_requests()]
        assert ids == [1, 2]
