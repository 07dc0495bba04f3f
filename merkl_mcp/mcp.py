"""
Tool registry and dispatcher shared by the stdio and HTTP surfaces.

Each tool binds a JSON input schema, a JSON output schema, and an
implementation. Arguments are validated against the input schema before the
implementation runs, so malformed input never reaches the network.
"""

from __future__ import annotations

import inspect
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from merkl_mcp.config import default_config
from merkl_mcp.merkl_api import MerklApiError, default_client
from merkl_mcp.metrics import default_metrics
from merkl_mcp.tools import (
    aggregate_opportunities,
    aggregate_opportunities_max,
    aggregate_opportunities_min,
    count_campaigns,
    count_opportunities,
    get_apr_bins,
    get_campaign,
    get_current_timestamp,
    get_opportunity,
    get_opportunity_campaigns,
    get_tvl_bins,
    search_campaigns,
    search_opportunities,
)
from merkl_mcp.tools.campaigns import DETAIL_FILTERS as CAMPAIGN_DETAIL_FILTERS
from merkl_mcp.tools.opportunities import DETAIL_FILTERS
from merkl_mcp.tools.validators import (
    CAMPAIGN_ID_REGEX,
    CHAIN_ID_LIST_REGEX,
    CHAIN_NAME_LIST_REGEX,
    OPPORTUNITY_ID_REGEX,
    STATUS_LIST_REGEX,
    ValidationError,
    validate_arguments,
)

logger = logging.getLogger(__name__)

TOKEN_TYPES = ["TOKEN", "PRETGE", "POINT"]
DISTRIBUTION_TYPES = ["FIX_REWARD", "MAX_REWARD", "DUTCH_AUCTION"]
OPPORTUNITY_SORTS = ["apr", "tvl", "rewards", "lastCampaignCreatedAt"]
CAMPAIGN_SORTS = OPPORTUNITY_SORTS + ["createdAt"]


def _string(description: str, **extra: Any) -> Dict[str, Any]:
    return {"type": "string", "description": description, **extra}


def _boolean(description: str, **extra: Any) -> Dict[str, Any]:
    return {"type": "boolean", "description": description, **extra}


def _number(description: str) -> Dict[str, Any]:
    return {"type": "number", "description": description}


def _enum_array(values: List[str], description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string", "enum": values}, "description": description}


FILTER_PROPERTIES: Dict[str, Dict[str, Any]] = {
    "page": {"type": "integer", "minimum": 0, "default": 0, "description": "0-indexed page number"},
    "items": {
        "type": "integer",
        "minimum": 1,
        "maximum": default_config.max_page_size,
        "default": default_config.default_page_size,
        "description": (
            f"Number of items returned by page (1-{default_config.max_page_size}). "
            f"Default: {default_config.default_page_size}"
        ),
    },
    "name": _string("Filter by name"),
    "search": _string("Search amongst multiple values (token, protocols, tags, campaigns)"),
    "campaignId": _string("Search the opportunity linked to a given campaignId"),
    "creatorSlug": _string("Filter by creator slug"),
    "chainId": _string(
        "A comma separated list of chain ids. Example: 1,42161",
        pattern=CHAIN_ID_LIST_REGEX.pattern,
        errorMessage="Invalid chainId list",
    ),
    "action": _string(
        "A comma separated list actions. Legal values: POOL,HOLD,DROP,LEND,BORROW,LONG,SHORT,SWAP,INVALID"
    ),
    "tokenTypes": _enum_array(
        TOKEN_TYPES,
        "Filter by token type. Use POINT to include point campaigns and PRETGE to include preTGE campaigns.",
    ),
    "point": _boolean("Include opportunities with point campaigns"),
    "type": _string("A comma separated list of Opportunity type"),
    "creatorAddress": _string("Filter by creator address"),
    "tags": _string("Filter by tag"),
    "test": _boolean("Include opportunities with test campaigns", default=False),
    "minimumTvl": _number("Minimum TVL threshold in USD"),
    "maximumTvl": _number("Maximum TVL threshold in USD"),
    "minimumApr": _number("Minimum APR threshold"),
    "maximumApr": _number("Maximum APR threshold"),
    "status": _string(
        "A comma separated list of status. Legal values: LIVE,PAST,SOON",
        pattern=STATUS_LIST_REGEX.pattern,
        errorMessage="Invalid status list",
    ),
    "identifier": _string("Filter by identifier (mainParameter)"),
    "campaigns": _boolean("Include campaign data. Will slow down the request", default=False),
    "tokens": _string("A comma separated list of token symbol. Use to filter by token"),
    "rewardTokenSymbol": _string(
        "Filter by opportunity with at least 1 campaign where the reward token has this symbol"
    ),
    "sort": {
        "type": "string",
        "enum": OPPORTUNITY_SORTS,
        "description": "Sort by apr, tvl, rewards or last campaign creation date",
    },
    "order": {
        "type": "string",
        "enum": ["asc", "desc"],
        "default": "desc",
        "description": "asc to sort ascending, desc to sort descending",
    },
    "distributionTypes": _enum_array(
        DISTRIBUTION_TYPES, "Filter by distribution type. Legal values: FIX_REWARD, MAX_REWARD, DUTCH_AUCTION"
    ),
    "mainProtocolId": _string("A comma separated list of protocol ids. See GET /v4/protocols"),
    "programSlugs": _string("A comma separated list of program ids or slugs. See GET /v4/programs"),
    "chainName": _string(
        "A comma separated list of chain names. Example: ethereum,arbitrum",
        pattern=CHAIN_NAME_LIST_REGEX.pattern,
        errorMessage="Invalid chainName list",
    ),
    "excludeSubCampaigns": _boolean("Exclude sub-campaigns from the results", default=False),
    "excludeEndedCampaigns": _boolean("Exclude ended campaigns from the results", default=True),
    "opportunityId": _string("Filter by opportunity ID"),
    "rewardTokenId": _string("Filter by reward token ID"),
    "computeChainId": _string("Filter by compute chain ID"),
    "distributionChainId": _string("Filter by distribution chain ID"),
    "startTimestamp": _number("Filter campaigns starting after this timestamp"),
    "endTimestamp": _number("Filter campaigns ending before this timestamp"),
}

CAMPAIGN_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "campaignId": _string("Search the campaign by campaignId"),
    "point": _boolean("Include point campaigns"),
    "type": _string("A comma separated list of Campaign type"),
    "test": _boolean("Include test campaigns", default=False),
    "rewardTokenSymbol": _string("Filter by campaign with reward token having this symbol"),
    "sort": {
        "type": "string",
        "enum": CAMPAIGN_SORTS,
        "description": "Sort by apr, tvl, rewards, last campaign creation date, or creation date",
    },
}

OPPORTUNITY_FILTERS = (
    "name", "search", "campaignId", "creatorSlug", "chainId", "action", "tokenTypes", "point",
    "type", "creatorAddress", "tags", "test", "minimumTvl", "maximumTvl", "minimumApr",
    "maximumApr", "status", "identifier", "campaigns", "tokens", "rewardTokenSymbol",
    "distributionTypes", "mainProtocolId", "programSlugs", "chainName", "excludeSubCampaigns",
)
OPPORTUNITY_SEARCH_FILTERS = (
    "page", "items", "name", "search", "campaignId", "creatorSlug", "chainId", "action",
    "tokenTypes", "point", "type", "creatorAddress", "test", "minimumTvl", "maximumTvl",
    "minimumApr", "maximumApr", "status", "identifier", "campaigns", "excludeEndedCampaigns",
    "tokens", "rewardTokenSymbol", "sort", "order", "distributionTypes", "mainProtocolId",
    "programSlugs", "chainName", "excludeSubCampaigns",
)
BINS_FILTERS = tuple(name for name in OPPORTUNITY_FILTERS if name != "campaigns")
CAMPAIGN_SEARCH_FILTERS = (
    "page", "items", "name", "search", "campaignId", "chainId", "action", "tokenTypes", "point",
    "type", "tags", "test", "minimumTvl", "maximumTvl", "minimumApr", "maximumApr", "status",
    "identifier", "tokens", "sort", "order", "distributionTypes", "chainName", "opportunityId",
    "startTimestamp", "endTimestamp",
)
CAMPAIGN_COUNT_FILTERS = BINS_FILTERS + (
    "opportunityId", "rewardTokenId", "computeChainId", "distributionChainId",
    "startTimestamp", "endTimestamp",
)


def _object_schema(properties: Dict[str, Any], required: Sequence[str] = ()) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(required),
        "additionalProperties": False,
    }


def _filters_schema(
    names: Sequence[str],
    *,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    extra: Optional[Dict[str, Any]] = None,
    required: Sequence[str] = (),
) -> Dict[str, Any]:
    properties: Dict[str, Any] = dict(extra or {})
    for name in names:
        properties[name] = dict((overrides or {}).get(name) or FILTER_PROPERTIES[name])
    return _object_schema(properties, required)


OPPORTUNITY_ID_PROPERTY = _string(
    "The id of the opportunity: <chainId>-<TYPE>-0x<identifier> or a numeric id",
    pattern=OPPORTUNITY_ID_REGEX.pattern,
    errorMessage="Invalid id format",
)
CAMPAIGN_ID_PROPERTY = _string(
    "The numeric id of the campaign", pattern=CAMPAIGN_ID_REGEX.pattern, errorMessage="Invalid campaign id format"
)


def _field_property(description: str) -> Dict[str, Any]:
    return _string(description, minLength=1)


# Output schemas
_NULLABLE_STRING = {"type": ["string", "null"]}
_NULLABLE_NUMBER = {"type": ["number", "null"]}

CAMPAIGN_SUMMARY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": ["string", "null"], "description": "Unique campaign id"},
        "campaignId": {
            "type": ["string", "null"],
            "description": "A hash of the campaign, unique per chain. Can be used to identify campaigns across chains",
        },
        "type": _NULLABLE_STRING,
        "startTime": {"type": ["string", "null"], "description": "Time when the campaign starts"},
        "endTime": {"type": ["string", "null"], "description": "Time when the campaign ends"},
        "apr": {"type": ["number", "null"], "description": "Annual Percentage Rate (APR) for the campaign"},
        "createdAt": {"type": ["string", "number", "null"], "description": "Campaign creation timestamp"},
    },
}

OPPORTUNITY_DETAIL_SCHEMA: Dict[str, Any] = {
    "type": ["object", "null"],
    "properties": {
        "id": _NULLABLE_STRING,
        "name": _NULLABLE_STRING,
        "description": _NULLABLE_STRING,
        "type": _NULLABLE_STRING,
        "identifier": {"type": ["string", "null"], "description": "Address or identifier of incentivized asset"},
        "status": _NULLABLE_STRING,
        "action": _NULLABLE_STRING,
        "chainId": _NULLABLE_NUMBER,
        "apr": _NULLABLE_NUMBER,
        "maxApr": _NULLABLE_NUMBER,
        "dailyRewards": _NULLABLE_NUMBER,
        "tvl": _NULLABLE_NUMBER,
        "depositUrl": _NULLABLE_STRING,
        "explorerAddress": _NULLABLE_STRING,
        "tags": {"type": ["array", "null"], "items": {"type": "string"}},
        "tokens": {"type": ["array", "null"]},
        "campaigns": {"type": "array", "items": CAMPAIGN_SUMMARY_SCHEMA},
        "lastCampaignCreatedAt": {"type": ["string", "number", "null"]},
    },
}

CAMPAIGN_ROW_PROPERTIES: Dict[str, Any] = {
    "id": {"type": ["string", "null"], "description": "Campaign id"},
    "campaignId": {"type": ["string", "null"], "description": "Campaign hash"},
    "type": {"type": ["string", "null"], "description": "Campaign type"},
    "distributionType": {"type": ["string", "null"], "description": "Distribution type"},
    "subType": {"type": ["number", "null"], "description": "Sub type"},
    "rewardTokenId": {"type": ["string", "null"], "description": "Reward token ID"},
    "amount": {"type": ["string", "number", "null"], "description": "Campaign amount"},
    "opportunityId": {"type": ["string", "null"], "description": "Related opportunity ID"},
    "startTime": {"type": ["string", "null"], "description": "Campaign start time"},
    "endTime": {"type": ["string", "null"], "description": "Campaign end time"},
    "dailyRewards": {"type": ["number", "null"], "description": "Daily rewards"},
    "apr": {"type": ["number", "null"], "description": "Annual Percentage Rate"},
    "createdAt": {"type": ["string", "number", "null"], "description": "Campaign creation timestamp"},
}

_BINS_OUTPUT = _object_schema(
    {
        "bins": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"label": {"type": "string"}, "count": {"type": "number"}},
                "required": ["label", "count"],
            },
        }
    },
    ["bins"],
)
_COUNT_OUTPUT = _object_schema({"count": {"type": "number"}}, ["count"])


def _extremum_output(kind: str) -> Dict[str, Any]:
    return _object_schema(
        {
            "value": {
                "type": ["number", "null"],
                "description": f"{kind} value for the requested field across matching opportunities",
            }
        },
        ["value"],
    )


@dataclass(slots=True)
class ToolDefinition:
    name: str
    title: str
    description: str
    input_schema: Dict[str, Any]
    output_schema: Dict[str, Any]
    callable: Callable[..., Any]
    uses_client: bool = True


class UnknownToolError(LookupError):
    """Raised when a tool name is not registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


_TOOLS = [
    ToolDefinition(
        name="get-current-timestamp",
        title="Get Current Timestamp",
        description="Retrieves the current timestamp.",
        input_schema=_object_schema({}),
        output_schema=_object_schema(
            {"timestamp": {"type": "number", "description": "Current timestamp in milliseconds since the Unix epoch"}},
            ["timestamp"],
        ),
        callable=get_current_timestamp,
        uses_client=False,
    ),
    ToolDefinition(
        name="opportunities-search",
        title="Retrieve Multiple Opportunities",
        description=(
            "Search for opportunities by providing specific criteria. Ended campaigns are "
            "excluded unless excludeEndedCampaigns is false."
        ),
        input_schema=_filters_schema(
            OPPORTUNITY_SEARCH_FILTERS,
            overrides={"campaigns": _boolean("Include campaign data. Will slow down the request", default=True)},
        ),
        output_schema=_object_schema(
            {
                "results": {
                    "type": "array",
                    "description": "List of opportunities",
                    "items": {
                        "type": "object",
                        "properties": {
                            "id": {"type": ["string", "null"], "description": "Opportunity id"},
                            "name": {"type": ["string", "null"], "description": "Opportunity name"},
                            "chainId": {"type": ["number", "null"], "description": "Chain id"},
                            "type": {"type": ["string", "null"], "description": "Opportunity type"},
                            "status": {"type": ["string", "null"], "description": "LIVE/PAST/SOON"},
                            "apr": _NULLABLE_NUMBER,
                            "tvl": _NULLABLE_NUMBER,
                            "link": {"type": "string", "description": "Link to the opportunity dashboard"},
                            "campaigns": {
                                "type": "array",
                                "items": CAMPAIGN_SUMMARY_SCHEMA,
                                "description": "List of campaigns associated with the opportunity",
                            },
                        },
                        "required": ["link"],
                    },
                }
            },
            ["results"],
        ),
        callable=search_opportunities,
    ),
    ToolDefinition(
        name="opportunities-get",
        title="Get Opportunity",
        description="GET /v4/opportunities/{id}",
        input_schema=_filters_schema(
            DETAIL_FILTERS,
            overrides={"test": _boolean("Include test campaigns", default=False), "point": _boolean("Include point campaigns", default=False)},
            extra={"id": OPPORTUNITY_ID_PROPERTY},
            required=["id"],
        ),
        output_schema=_object_schema(
            {"opportunity": {**OPPORTUNITY_DETAIL_SCHEMA, "description": "Opportunity object or null if not found"}},
            ["opportunity"],
        ),
        callable=get_opportunity,
    ),
    ToolDefinition(
        name="opportunities-campaigns",
        title="Opportunity Campaigns",
        description="GET /v4/opportunities/{id}/campaigns",
        input_schema=_filters_schema(
            DETAIL_FILTERS,
            overrides={"test": _boolean("Include test campaigns", default=False), "point": _boolean("Include point campaigns")},
            extra={"id": OPPORTUNITY_ID_PROPERTY},
            required=["id"],
        ),
        output_schema=_object_schema(
            {
                "opportunity": {
                    **OPPORTUNITY_DETAIL_SCHEMA,
                    "description": "Opportunity with related campaigns or null if not found",
                }
            },
            ["opportunity"],
        ),
        callable=get_opportunity_campaigns,
    ),
    ToolDefinition(
        name="opportunities-count",
        title="Count Opportunities",
        description="GET /v4/opportunities/count",
        input_schema=_filters_schema(OPPORTUNITY_FILTERS),
        output_schema=_COUNT_OUTPUT,
        callable=count_opportunities,
    ),
    ToolDefinition(
        name="opportunities-bins-apr",
        title="APR Bins",
        description="GET /v4/opportunities/bins/apr",
        input_schema=_filters_schema(BINS_FILTERS),
        output_schema=_BINS_OUTPUT,
        callable=get_apr_bins,
    ),
    ToolDefinition(
        name="opportunities-bins-tvl",
        title="TVL Bins",
        description="GET /v4/opportunities/bins/tvl",
        input_schema=_filters_schema(BINS_FILTERS),
        output_schema=_BINS_OUTPUT,
        callable=get_tvl_bins,
    ),
    ToolDefinition(
        name="opportunities-aggregate",
        title="Aggregate Field",
        description="GET /v4/opportunities/aggregate/{field}",
        input_schema=_filters_schema(
            OPPORTUNITY_FILTERS,
            extra={
                "field": _field_property(
                    "Field to aggregate on (e.g. chainId, status, type, action, tokens, tags, programSlugs, mainProtocolId)"
                )
            },
            required=["field"],
        ),
        output_schema=_object_schema(
            {
                "buckets": {
                    "type": "array",
                    "description": "Aggregation buckets for the requested field",
                    "items": {
                        "type": "object",
                        "properties": {
                            "value": {"type": ["string", "number", "boolean", "null"]},
                            "count": {"type": "number"},
                        },
                        "required": ["value", "count"],
                    },
                }
            },
            ["buckets"],
        ),
        callable=aggregate_opportunities,
    ),
    ToolDefinition(
        name="opportunities-aggregate-max",
        title="Aggregate Max",
        description="GET /v4/opportunities/aggregate/max/{field}",
        input_schema=_filters_schema(
            OPPORTUNITY_FILTERS,
            extra={"field": _field_property("Numeric field to compute max on (e.g. apr, tvl, dailyRewards)")},
            required=["field"],
        ),
        output_schema=_extremum_output("Maximum"),
        callable=aggregate_opportunities_max,
    ),
    ToolDefinition(
        name="opportunities-aggregate-min",
        title="Aggregate Min",
        description="GET /v4/opportunities/aggregate/min/{field}",
        input_schema=_filters_schema(
            OPPORTUNITY_FILTERS,
            extra={"field": _field_property("Numeric field to compute min on (e.g. apr, tvl, dailyRewards)")},
            required=["field"],
        ),
        output_schema=_extremum_output("Minimum"),
        callable=aggregate_opportunities_min,
    ),
    ToolDefinition(
        name="campaigns-search",
        title="Retrieve Multiple Campaigns",
        description=(
            "Search for campaigns by providing specific criteria. Campaigns of type INVALID "
            "are never returned."
        ),
        input_schema=_filters_schema(CAMPAIGN_SEARCH_FILTERS, overrides=CAMPAIGN_OVERRIDES),
        output_schema=_object_schema(
            {
                "results": {
                    "type": "array",
                    "description": "List of campaigns",
                    "items": {
                        "type": "object",
                        "properties": {
                            **CAMPAIGN_ROW_PROPERTIES,
                            "link": {"type": "string", "description": "Link to the opportunity dashboard"},
                        },
                        "required": ["link"],
                    },
                }
            },
            ["results"],
        ),
        callable=search_campaigns,
    ),
    ToolDefinition(
        name="campaigns-get",
        title="Get Campaign",
        description="GET /v4/campaigns/{id}",
        input_schema=_filters_schema(
            CAMPAIGN_DETAIL_FILTERS,
            overrides=CAMPAIGN_OVERRIDES,
            extra={"id": CAMPAIGN_ID_PROPERTY},
            required=["id"],
        ),
        output_schema=_object_schema(
            {
                "campaign": {
                    "type": ["object", "null"],
                    "description": "Campaign object or null if not found",
                    "properties": {
                        **CAMPAIGN_ROW_PROPERTIES,
                        "creatorAddress": _NULLABLE_STRING,
                    },
                }
            },
            ["campaign"],
        ),
        callable=get_campaign,
    ),
    ToolDefinition(
        name="campaigns-count",
        title="Count Campaigns",
        description="GET /v4/campaigns/count",
        input_schema=_filters_schema(CAMPAIGN_COUNT_FILTERS, overrides=CAMPAIGN_OVERRIDES),
        output_schema=_COUNT_OUTPUT,
        callable=count_campaigns,
    ),
]

TOOL_REGISTRY: Dict[str, ToolDefinition] = {tool.name: tool for tool in _TOOLS}


def list_tools() -> List[Dict[str, Any]]:
    """Return the tool catalog in MCP ``tools/list`` shape."""
    return [
        {
            "name": tool.name,
            "title": tool.title,
            "description": tool.description,
            "inputSchema": tool.input_schema,
            "outputSchema": tool.output_schema,
        }
        for tool in TOOL_REGISTRY.values()
    ]


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def render_text(result: Any) -> str:
    return json.dumps(result, indent=2)


async def invoke_tool(tool_name: str, params: Optional[Dict[str, Any]] = None, *, client=None) -> Any:
    """
    Validate arguments and run one tool.

    Errors are logged, counted, and re-raised unchanged for the transport to
    report as a failed tool call.
    """
    tool = TOOL_REGISTRY.get(tool_name)
    if tool is None:
        raise UnknownToolError(tool_name)
    params = dict(params or {})
    start = time.perf_counter()
    try:
        validate_arguments(tool.input_schema, params, tool=tool_name)
        kwargs = dict(params)
        if tool.uses_client:
            kwargs["client"] = client or default_client
        result = tool.callable(**kwargs)
        if inspect.isawaitable(result):
            result = await result
    except (ValidationError, MerklApiError) as exc:
        logger.warning(
            "tool=%s outcome=error error=%s",
            tool_name,
            exc,
            extra={"tool": tool_name, "error": str(exc)},
        )
        default_metrics.record_tool(tool_name, success=False, duration_ms=_elapsed_ms(start))
        raise
    except Exception:
        logger.exception("Unexpected error while calling tool %s", tool_name, extra={"tool": tool_name})
        default_metrics.record_tool(tool_name, success=False, duration_ms=_elapsed_ms(start))
        raise
    duration_ms = _elapsed_ms(start)
    logger.info("tool=%s outcome=success duration_ms=%.2f", tool_name, duration_ms, extra={"tool": tool_name})
    default_metrics.record_tool(tool_name, success=True, duration_ms=duration_ms)
    return result


def tool_result(result: Any) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": render_text(result)}], "structuredContent": result}


def error_result(message: str) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": message}], "isError": True}


async def call_tool(tool_name: str, params: Optional[Dict[str, Any]] = None, *, client=None) -> Dict[str, Any]:
    """Dispatch to a tool by name and shape the outcome as an MCP tool result."""
    try:
        result = await invoke_tool(tool_name, params, client=client)
    except Exception as exc:  # noqa: BLE001
        return error_result(str(exc) or exc.__class__.__name__)
    return tool_result(result)
