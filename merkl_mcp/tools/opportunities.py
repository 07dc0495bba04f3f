"""Opportunity tools (read-only)."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

from merkl_mcp.config import MerklConfig, default_config
from merkl_mcp.merkl_api import default_client
from merkl_mcp.tools.shaping import (
    as_count,
    as_list,
    chain_name,
    dashboard_link,
    format_timestamp,
    timestamp_field,
    to_epoch_seconds,
)
from merkl_mcp.tools.validators import ValidationError, require_opportunity_id


# Applied by opportunities-get when the caller leaves them out.
DETAIL_DEFAULTS = {"test": False, "point": False, "campaigns": False, "excludeSubCampaigns": False}
DETAIL_FILTERS = ("test", "point", "tokenTypes", "campaigns", "excludeSubCampaigns")


def _normalize_search_campaign(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": raw.get("id"),
        "campaignId": raw.get("campaignId"),
        "type": raw.get("type"),
        "startTime": format_timestamp(raw.get("startTimestamp")),
        "endTime": format_timestamp(raw.get("endTimestamp")),
        "endTimestamp": raw.get("endTimestamp"),
        "apr": raw.get("apr"),
        "createdAt": raw.get("createdAt"),
    }


def _campaign_is_visible(raw: Dict[str, Any], *, now: float, exclude_ended: bool) -> bool:
    if not exclude_ended:
        return True
    end = to_epoch_seconds(raw.get("endTimestamp"))
    return end is not None and end >= now


def _normalize_search_opportunity(
    raw: Dict[str, Any], *, now: float, exclude_ended: bool, config: MerklConfig
) -> Dict[str, Any]:
    return {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "chainId": raw.get("chainId"),
        "type": raw.get("type"),
        "status": raw.get("status"),
        "apr": raw.get("apr"),
        "tvl": raw.get("tvl"),
        "link": dashboard_link(
            chain_name(raw), raw.get("type"), raw.get("identifier"), base_url=config.dashboard_url
        ),
        "campaigns": [
            _normalize_search_campaign(campaign)
            for campaign in as_list(raw.get("campaigns"))
            if _campaign_is_visible(campaign, now=now, exclude_ended=exclude_ended)
        ],
    }


def _normalize_detail_campaign(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": raw.get("id"),
        "campaignId": raw.get("campaignId"),
        "type": raw.get("type"),
        "name": raw.get("name"),
        "description": raw.get("description"),
        "startTime": timestamp_field(raw, "start"),
        "endTime": timestamp_field(raw, "end"),
        "apr": raw.get("apr"),
        "createdAt": raw.get("createdAt"),
    }


def _normalize_opportunity_detail(raw: Dict[str, Any]) -> Dict[str, Any]:
    detail = {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "description": raw.get("description"),
        "type": raw.get("type"),
        "identifier": raw.get("identifier"),
        "status": raw.get("status"),
        "action": raw.get("action"),
        "chainId": raw.get("chainId"),
        "apr": raw.get("apr"),
        "maxApr": raw.get("maxApr"),
        "dailyRewards": raw.get("dailyRewards"),
        "tvl": raw.get("tvl"),
        "depositUrl": raw.get("depositUrl"),
        "explorerAddress": raw.get("explorerAddress"),
        "tags": raw.get("tags"),
        "tokens": raw.get("tokens"),
        "lastCampaignCreatedAt": raw.get("lastCampaignCreatedAt"),
    }
    if isinstance(raw.get("campaigns"), list):
        detail["campaigns"] = [_normalize_detail_campaign(c) for c in as_list(raw["campaigns"])]
    return detail


def _normalize_bin(raw: Any, *, fallback_label: Any = None) -> Dict[str, Any]:
    if isinstance(raw, dict):
        label = raw.get("label")
        if label is None and ("min" in raw or "max" in raw):
            label = f"{raw.get('min', '')}-{raw.get('max', '')}"
        if label is None:
            label = fallback_label
        return {"label": "" if label is None else str(label), "count": as_count(raw.get("count"))}
    return {"label": "" if fallback_label is None else str(fallback_label), "count": as_count(raw)}


def _normalize_bins(raw: Any) -> List[Dict[str, Any]]:
    if isinstance(raw, dict):
        return [_normalize_bin(count, fallback_label=label) for label, count in raw.items()]
    if isinstance(raw, list):
        return [_normalize_bin(entry) for entry in raw]
    return []


def _normalize_buckets(raw: Any) -> List[Dict[str, Any]]:
    if isinstance(raw, dict):
        return [{"value": value, "count": as_count(count)} for value, count in raw.items()]
    buckets: List[Dict[str, Any]] = []
    for entry in as_list(raw):
        value = entry.get("value", entry.get("key"))
        buckets.append({"value": value, "count": as_count(entry.get("count"))})
    return buckets


def _extremum(raw: Any, key: str) -> Optional[float]:
    if isinstance(raw, dict):
        for candidate in ("value", key):
            if candidate in raw:
                return _extremum(raw[candidate], key)
        return None
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            return None
    return None


def _require_field(field: Any) -> str:
    if not isinstance(field, str) or not field.strip():
        raise ValidationError("field is required")
    return field


async def search_opportunities(
    *,
    excludeEndedCampaigns: Optional[bool] = None,
    client=default_client,
    config: MerklConfig = default_config,
    now: Optional[Callable[[], float]] = None,
    **filters: Any,
) -> Dict[str, Any]:
    """
    Search opportunities with their live campaigns.

    ``items`` defaults to the configured page size and ``campaigns`` to true.
    Campaigns that already ended are dropped unless ``excludeEndedCampaigns``
    is false.
    """
    query = dict(filters)
    if "campaigns" not in query:
        query["campaigns"] = True
    if "items" not in query:
        query["items"] = config.default_page_size
    exclude_ended = excludeEndedCampaigns is not False

    raw = await client.list_opportunities(query)
    now_ts = (now or time.time)()
    results = [
        _normalize_search_opportunity(entry, now=now_ts, exclude_ended=exclude_ended, config=config)
        for entry in as_list(raw)
    ]
    return {"results": results}


async def get_opportunity(*, id: Any, client=default_client, **filters: Any) -> Dict[str, Any]:
    """Fetch one opportunity by id; ``opportunity`` is null when it does not exist."""
    opportunity_id = require_opportunity_id(id)
    query = {name: filters.get(name, DETAIL_DEFAULTS.get(name)) for name in DETAIL_FILTERS}
    raw = await client.get_opportunity(opportunity_id, query)
    if not isinstance(raw, dict):
        return {"opportunity": None}
    return {"opportunity": _normalize_opportunity_detail(raw)}


async def get_opportunity_campaigns(*, id: Any, client=default_client, **filters: Any) -> Dict[str, Any]:
    """Fetch one opportunity together with its campaigns."""
    opportunity_id = require_opportunity_id(id)
    query = {name: filters.get(name) for name in DETAIL_FILTERS}
    raw = await client.get_opportunity_campaigns(opportunity_id, query)
    if not isinstance(raw, dict):
        return {"opportunity": None}
    return {"opportunity": _normalize_opportunity_detail(raw)}


async def count_opportunities(*, client=default_client, **filters: Any) -> Dict[str, int]:
    raw = await client.count_opportunities(filters)
    return {"count": as_count(raw)}


async def get_apr_bins(*, client=default_client, **filters: Any) -> Dict[str, Any]:
    return {"bins": _normalize_bins(await client.bins_apr(filters))}


async def get_tvl_bins(*, client=default_client, **filters: Any) -> Dict[str, Any]:
    return {"bins": _normalize_bins(await client.bins_tvl(filters))}


async def aggregate_opportunities(*, field: Any, client=default_client, **filters: Any) -> Dict[str, Any]:
    """Group matching opportunities by the distinct values of ``field``."""
    raw = await client.aggregate(_require_field(field), filters)
    return {"buckets": _normalize_buckets(raw)}


async def aggregate_opportunities_max(*, field: Any, client=default_client, **filters: Any) -> Dict[str, Any]:
    raw = await client.aggregate_max(_require_field(field), filters)
    return {"value": _extremum(raw, "max")}


async def aggregate_opportunities_min(*, field: Any, client=default_client, **filters: Any) -> Dict[str, Any]:
    raw = await client.aggregate_min(_require_field(field), filters)
    return {"value": _extremum(raw, "min")}
