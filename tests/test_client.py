import asyncio

import httpx
import pytest

from merkl_mcp.config import MerklConfig
from merkl_mcp.merkl_api.client import (
    MerklApiClient,
    MerklApiError,
    RequestTimeout,
    UpstreamError,
    UpstreamUnreachableError,
)
from merkl_mcp.metrics import default_metrics


class MockResponse:
    def __init__(self, status_code: int, json_body=None, reason_phrase: str = "", bad_json: bool = False):
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self._json = json_body
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._json


class MockAsyncClient:
    def __init__(self, responses, delay: float = 0.0):
        self.responses = responses
        self.delay = delay
        self.calls = []

    async def get(self, path, params=None, headers=None):
        self.calls.append({"path": path, "params": params, "headers": headers})
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            raise RuntimeError("No mock responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def aclose(self):
        return None


def _config(**overrides) -> MerklConfig:
    values = {"base_url": "https://api.example.test", "api_key": None, "timeout_ms": 1000}
    values.update(overrides)
    return MerklConfig(**values)


def _client(mock, **overrides) -> MerklApiClient:
    return MerklApiClient(_config(**overrides), async_client=mock)


@pytest.mark.asyncio
async def test_list_opportunities_builds_url_and_returns_json():
    mock = MockAsyncClient([MockResponse(200, [{"id": "1"}])])
    client = _client(mock)
    result = await client.list_opportunities({"items": 1, "test": False, "name": None})
    assert result == [{"id": "1"}]
    assert mock.calls[0]["path"] == "https://api.example.test/v4/opportunities/?items=1&test=false"


@pytest.mark.asyncio
async def test_headers_without_api_key():
    mock = MockAsyncClient([MockResponse(200, 3)])
    await _client(mock).count_opportunities({})
    assert mock.calls[0]["headers"] == {"content-type": "application/json"}
    assert mock.calls[0]["path"] == "https://api.example.test/v4/opportunities/count"


@pytest.mark.asyncio
async def test_headers_with_api_key():
    mock = MockAsyncClient([MockResponse(200, 3)])
    await _client(mock, api_key="secret").count_campaigns({})
    assert mock.calls[0]["headers"] == {
        "content-type": "application/json",
        "authorization": "Bearer secret",
    }


@pytest.mark.asyncio
async def test_single_entity_404_returns_none():
    mock = MockAsyncClient(
        [MockResponse(404, None), MockResponse(404, None), MockResponse(404, None)]
    )
    client = _client(mock)
    assert await client.get_opportunity("1", {}) is None
    assert await client.get_opportunity_campaigns("1", {}) is None
    assert await client.get_campaign("7", {}) is None
    assert len(mock.calls) == 3


@pytest.mark.asyncio
async def test_404_on_collection_endpoint_raises():
    mock = MockAsyncClient([MockResponse(404, None, reason_phrase="Not Found")])
    with pytest.raises(UpstreamError) as excinfo:
        await _client(mock).list_campaigns({})
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_server_error_raises_without_retry():
    mock = MockAsyncClient([MockResponse(500, None, reason_phrase="Internal Server Error")])
    with pytest.raises(UpstreamError) as excinfo:
        await _client(mock).list_opportunities({})
    assert str(excinfo.value) == "Merkl request failed: 500 Internal Server Error"
    assert len(mock.calls) == 1
    assert default_metrics.snapshot()["upstream"] == {"500": 1}


@pytest.mark.asyncio
async def test_slow_response_times_out():
    mock = MockAsyncClient([MockResponse(200, [])], delay=0.5)
    with pytest.raises(RequestTimeout) as excinfo:
        await _client(mock, timeout_ms=20).list_opportunities({})
    assert str(excinfo.value) == "Merkl request timed out after 20ms"
    assert len(mock.calls) == 1


@pytest.mark.asyncio
async def test_httpx_timeout_maps_to_request_timeout():
    mock = MockAsyncClient([httpx.ReadTimeout("read timed out")])
    with pytest.raises(RequestTimeout):
        await _client(mock).list_campaigns({})
    assert default_metrics.snapshot()["upstream"] == {"timeout": 1}


@pytest.mark.asyncio
async def test_connect_error_maps_to_unreachable():
    mock = MockAsyncClient([httpx.ConnectError("connection refused")])
    with pytest.raises(UpstreamUnreachableError):
        await _client(mock).bins_apr({})


@pytest.mark.asyncio
async def test_malformed_json_raises_api_error():
    mock = MockAsyncClient([MockResponse(200, bad_json=True)])
    with pytest.raises(MerklApiError):
        await _client(mock).bins_tvl({})


@pytest.mark.asyncio
async def test_path_segments_are_encoded():
    mock = MockAsyncClient([MockResponse(200, []), MockResponse(200, 1), MockResponse(200, 2)])
    client = _client(mock)
    await client.aggregate("a/b", {})
    await client.aggregate_max("apr", {"status": "LIVE"})
    await client.aggregate_min("tvl", {})
    paths = [call["path"] for call in mock.calls]
    assert paths == [
        "https://api.example.test/v4/opportunities/aggregate/a%2Fb",
        "https://api.example.test/v4/opportunities/aggregate/max/apr?status=LIVE",
        "https://api.example.test/v4/opportunities/aggregate/min/tvl",
    ]


@pytest.mark.asyncio
async def test_detail_paths():
    mock = MockAsyncClient([MockResponse(200, {}), MockResponse(200, {}), MockResponse(200, {})])
    client = _client(mock)
    await client.get_opportunity("1-ERC20-0xAB", {"test": False})
    await client.get_opportunity_campaigns("12", {})
    await client.get_campaign("99", {"point": True})
    paths = [call["path"] for call in mock.calls]
    assert paths == [
        "https://api.example.test/v4/opportunities/1-ERC20-0xAB?test=false",
        "https://api.example.test/v4/opportunities/12/campaigns",
        "https://api.example.test/v4/campaigns/99?point=true",
    ]


@pytest.mark.asyncio
async def test_empty_id_is_rejected_before_request():
    mock = MockAsyncClient([])
    with pytest.raises(ValueError):
        await _client(mock).get_campaign("", {})
    assert mock.calls == []


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open():
    mock = MockAsyncClient([])
    client = _client(mock)
    await client.aclose()
    assert client._client is mock
