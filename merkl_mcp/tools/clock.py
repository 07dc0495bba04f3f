"""Clock tool."""

from __future__ import annotations

import time
from typing import Dict


def get_current_timestamp() -> Dict[str, int]:
    """Return the current time in milliseconds since the Unix epoch."""
    return {"timestamp": int(time.time() * 1000)}
