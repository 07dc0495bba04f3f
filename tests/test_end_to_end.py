import time

import pytest

from merkl_mcp import mcp
from merkl_mcp.config import MerklConfig
from merkl_mcp.merkl_api import MerklApiClient


class MockResponse:
    def __init__(self, status_code: int, json_body):
        self.status_code = status_code
        self.reason_phrase = ""
        self._json = json_body

    def json(self):
        return self._json


class MockAsyncClient:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def get(self, path, params=None, headers=None):
        self.calls.append({"path": path, "params": params, "headers": headers})
        return self.responses.pop(0)

    async def aclose(self):
        return None


def _api(mock) -> MerklApiClient:
    return MerklApiClient(
        MerklConfig(base_url="https://api.example.test", api_key=None, timeout_ms=1000),
        async_client=mock,
    )


@pytest.mark.asyncio
async def test_campaign_search_injects_items_and_drops_invalid():
    mock = MockAsyncClient(
        [
            MockResponse(
                200,
                [
                    {"id": "1", "type": "INVALID", "chain": {"name": "Ethereum"}},
                    {"id": "2", "type": "POOL", "chain": {"name": "Ethereum"}, "params": {"targetToken": "0xt"}},
                ],
            )
        ]
    )
    result = await mcp.call_tool("campaigns-search", {}, client=_api(mock))
    assert mock.calls[0]["path"] == "https://api.example.test/v4/campaigns?items=100"
    rows = result["structuredContent"]["results"]
    assert [row["type"] for row in rows] == ["POOL"]
    assert rows[0]["link"] == "https://app.merkl.xyz/opportunities/ethereum/POOL/0xt"


@pytest.mark.asyncio
async def test_opportunity_search_keeps_only_future_campaigns():
    now = int(time.time())
    mock = MockAsyncClient(
        [
            MockResponse(
                200,
                [
                    {
                        "id": "77",
                        "type": "ERC20",
                        "identifier": "0xabc",
                        "chain": {"name": "Arbitrum"},
                        "campaigns": [
                            {"id": "past", "startTimestamp": now - 7200, "endTimestamp": now - 3600},
                            {"id": "future", "startTimestamp": now - 7200, "endTimestamp": now + 3600},
                        ],
                    }
                ],
            )
        ]
    )
    result = await mcp.call_tool("opportunities-search", {"chainId": "42161"}, client=_api(mock))
    assert mock.calls[0]["path"] == (
        "https://api.example.test/v4/opportunities/?chainId=42161&campaigns=true&items=100"
    )
    campaigns = result["structuredContent"]["results"][0]["campaigns"]
    assert [campaign["id"] for campaign in campaigns] == ["future"]


@pytest.mark.asyncio
async def test_missing_opportunity_is_null_not_error():
    mock = MockAsyncClient([MockResponse(404, None)])
    result = await mcp.call_tool("opportunities-get", {"id": "12345"}, client=_api(mock))
    assert result["structuredContent"] == {"opportunity": None}
    assert mock.calls[0]["path"] == (
        "https://api.example.test/v4/opportunities/12345"
        "?test=false&point=false&campaigns=false&excludeSubCampaigns=false"
    )


@pytest.mark.asyncio
async def test_server_error_is_single_failed_call():
    mock = MockAsyncClient([MockResponse(500, None)])
    result = await mcp.call_tool("campaigns-count", {}, client=_api(mock))
    assert result["isError"] is True
    assert result["content"][0]["text"] == "Merkl request failed: 500"
    assert len(mock.calls) == 1
