"""Campaign tools (read-only)."""

from __future__ import annotations

from typing import Any, Dict

from merkl_mcp.config import MerklConfig, default_config
from merkl_mcp.merkl_api import default_client
from merkl_mcp.tools.shaping import as_count, as_list, chain_name, dashboard_link, timestamp_field
from merkl_mcp.tools.validators import require_campaign_id

# Upstream tags campaigns it could not classify with this type. Filtering by
# action=INVALID upstream adds such rows rather than excluding them.
INVALID_CAMPAIGN_TYPE = "INVALID"
DETAIL_FILTERS = ("test", "point", "tokenTypes", "excludeSubCampaigns")


def _target_token(raw: Dict[str, Any]) -> Any:
    params = raw.get("params")
    if not isinstance(params, dict):
        return None
    token = params.get("targetToken")
    if token is None:
        token = params.get("poolAddress")
    return token


def _normalize_campaign_row(raw: Dict[str, Any], *, config: MerklConfig) -> Dict[str, Any]:
    return {
        "id": raw.get("id"),
        "campaignId": raw.get("campaignId"),
        "type": raw.get("type"),
        "distributionType": raw.get("distributionType"),
        "subType": raw.get("subType"),
        "rewardTokenId": raw.get("rewardTokenId"),
        "amount": raw.get("amount"),
        "opportunityId": raw.get("opportunityId"),
        "startTime": timestamp_field(raw, "start"),
        "endTime": timestamp_field(raw, "end"),
        "dailyRewards": raw.get("dailyRewards"),
        "apr": raw.get("apr"),
        "createdAt": raw.get("createdAt"),
        "link": dashboard_link(
            chain_name(raw), raw.get("type"), _target_token(raw), base_url=config.dashboard_url
        ),
    }


def _normalize_campaign_detail(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": raw.get("id"),
        "campaignId": raw.get("campaignId"),
        "type": raw.get("type"),
        "distributionType": raw.get("distributionType"),
        "subType": raw.get("subType"),
        "rewardTokenId": raw.get("rewardTokenId"),
        "amount": raw.get("amount"),
        "opportunityId": raw.get("opportunityId"),
        "startTime": timestamp_field(raw, "start"),
        "endTime": timestamp_field(raw, "end"),
        "dailyRewards": raw.get("dailyRewards"),
        "apr": raw.get("apr"),
        "creatorAddress": raw.get("creatorAddress"),
        "chain": raw.get("chain"),
        "distributionChain": raw.get("distributionChain"),
        "createdAt": raw.get("createdAt"),
    }


async def search_campaigns(
    *,
    client=default_client,
    config: MerklConfig = default_config,
    **filters: Any,
) -> Dict[str, Any]:
    """
    Search campaigns.

    ``items`` defaults to the configured page size. Rows typed ``INVALID`` are
    always dropped from the result, whatever ``action`` filter was sent.
    """
    query = dict(filters)
    if "items" not in query:
        query["items"] = config.default_page_size

    raw = await client.list_campaigns(query)
    results = [
        _normalize_campaign_row(entry, config=config)
        for entry in as_list(raw)
        if entry.get("type") != INVALID_CAMPAIGN_TYPE
    ]
    return {"results": results}


async def get_campaign(*, id: Any, client=default_client, **filters: Any) -> Dict[str, Any]:
    """Fetch one campaign by its numeric id; ``campaign`` is null when it does not exist."""
    campaign_id = require_campaign_id(id)
    query = {name: filters.get(name) for name in DETAIL_FILTERS}
    raw = await client.get_campaign(campaign_id, query)
    if not isinstance(raw, dict):
        return {"campaign": None}
    return {"campaign": _normalize_campaign_detail(raw)}


async def count_campaigns(*, client=default_client, **filters: Any) -> Dict[str, int]:
    raw = await client.count_campaigns(filters)
    return {"count": as_count(raw)}
