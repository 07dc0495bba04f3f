import os
import sys

import pytest

# Ensure repository root is on sys.path before importing project modules.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from merkl_mcp.metrics import default_metrics  # noqa: E402


@pytest.fixture(autouse=True)
def reset_metrics():
    default_metrics.reset()
    yield
    default_metrics.reset()


class RecordingClient:
    """Stands in for MerklApiClient; answers every call with ``response``."""

    def __init__(self, response=None):
        self.response = response
        self.calls = []

    async def _record(self, method, *args):
        self.calls.append((method,) + args)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    async def list_opportunities(self, query):
        return await self._record("list_opportunities", query)

    async def get_opportunity(self, opportunity_id, query):
        return await self._record("get_opportunity", opportunity_id, query)

    async def get_opportunity_campaigns(self, opportunity_id, query):
        return await self._record("get_opportunity_campaigns", opportunity_id, query)

    async def count_opportunities(self, query):
        return await self._record("count_opportunities", query)

    async def bins_apr(self, query):
        return await self._record("bins_apr", query)

    async def bins_tvl(self, query):
        return await self._record("bins_tvl", query)

    async def aggregate(self, field, query):
        return await self._record("aggregate", field, query)

    async def aggregate_max(self, field, query):
        return await self._record("aggregate_max", field, query)

    async def aggregate_min(self, field, query):
        return await self._record("aggregate_min", field, query)

    async def list_campaigns(self, query):
        return await self._record("list_campaigns", query)

    async def get_campaign(self, campaign_id, query):
        return await self._record("get_campaign", campaign_id, query)

    async def count_campaigns(self, query):
        return await self._record("count_campaigns", query)


@pytest.fixture
def recording_client():
    return RecordingClient
