"""Live smoke check against the public Merkl API."""

from __future__ import annotations

import asyncio
import json
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from merkl_mcp.merkl_api import default_client  # noqa: E402
from merkl_mcp.tools import count_opportunities, search_opportunities  # noqa: E402


async def main() -> None:
    try:
        raw = await default_client.list_opportunities({"items": 1})
        print("Opportunities sample:", json.dumps(raw)[:300] + "...")
        print("Search (items=1):", await search_opportunities(items=1))
        print("Live opportunities:", await count_opportunities(status="LIVE"))
    finally:
        await default_client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
