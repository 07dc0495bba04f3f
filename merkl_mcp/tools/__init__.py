"""LLM-facing tool implementations."""

from .clock import get_current_timestamp
from .opportunities import (
    aggregate_opportunities,
    aggregate_opportunities_max,
    aggregate_opportunities_min,
    count_opportunities,
    get_apr_bins,
    get_opportunity,
    get_opportunity_campaigns,
    get_tvl_bins,
    search_opportunities,
)
from .campaigns import count_campaigns, get_campaign, search_campaigns
from . import validators

__all__ = [
    "get_current_timestamp",
    "search_opportunities",
    "get_opportunity",
    "get_opportunity_campaigns",
    "count_opportunities",
    "get_apr_bins",
    "get_tvl_bins",
    "aggregate_opportunities",
    "aggregate_opportunities_max",
    "aggregate_opportunities_min",
    "search_campaigns",
    "get_campaign",
    "count_campaigns",
    "validators",
]
