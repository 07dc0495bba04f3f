"""Helpers shared by the opportunity and campaign normalizers."""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from merkl_mcp.config import DASHBOARD_URL

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Words are split at separators, lower->upper transitions, acronym ends and
# letter/digit boundaries ("zkSync Era" -> zk, Sync, Era).
_WORD_REGEX = re.compile(
    r"[A-Z]?[a-z]+(?=[^A-Za-z]|[A-Z]|$)"
    r"|[A-Z]+(?=[^A-Za-z]|[A-Z][a-z]|$)"
    r"|[A-Z]?[a-z]+"
    r"|[A-Z]+"
    r"|\d*(?:1ST|2ND|3RD|(?![123])\dTH)(?=\b|[a-z_])"
    r"|\d*(?:1st|2nd|3rd|(?![123])\dth)(?=\b|[A-Z_])"
    r"|\d+"
)
_APOSTROPHES = re.compile("['’]")


def to_epoch_seconds(value: Any) -> Optional[float]:
    """Coerce an upstream epoch value (int, float or numeric string) to seconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def format_timestamp(value: Any) -> Optional[str]:
    """
    Render epoch seconds as an ISO-8601 UTC instant with millisecond precision.

    ``0`` renders as ``1970-01-01T00:00:00.000Z``. Values that are not numeric
    render as ``None``.
    """
    seconds = to_epoch_seconds(value)
    if seconds is None:
        return None
    try:
        instant = _EPOCH + timedelta(milliseconds=int(seconds * 1000))
    except (OverflowError, ValueError):
        return None
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"


def _deburr(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def chain_slug(name: Any) -> str:
    """Lower-case a chain display name word by word, joined by single spaces."""
    if not isinstance(name, str):
        return ""
    cleaned = _APOSTROPHES.sub("", _deburr(name))
    return " ".join(word.lower() for word in _WORD_REGEX.findall(cleaned))


def chain_name(raw: Dict[str, Any]) -> Any:
    chain = raw.get("chain")
    if isinstance(chain, dict):
        return chain.get("name")
    return None


def dashboard_link(chain: Any, kind: Any, token: Any, *, base_url: str = DASHBOARD_URL) -> str:
    return f"{base_url}/{chain_slug(chain)}/{kind}/{'' if token is None else token}"


def as_list(value: Any) -> List[Dict[str, Any]]:
    """Return the dict entries of an upstream list, ignoring anything else."""
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def as_count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return 0
    if isinstance(value, dict):
        return as_count(value.get("count"))
    return 0


def timestamp_field(raw: Dict[str, Any], name: str) -> Optional[str]:
    """Format ``<name>Timestamp``, falling back to a numeric ``<name>Time``."""
    value = raw.get(f"{name}Timestamp")
    if value is None:
        value = raw.get(f"{name}Time")
    return format_timestamp(value)
