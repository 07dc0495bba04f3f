"""
Configuration helpers for the Merkl MCP server.

This module centralizes base URL selection, API key loading, the request
timeout, and logging switches. No secrets are stored in the repository; the
API key is read from the environment or a local file if one is configured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Default connection settings
DEFAULT_BASE_URL = "https://api.merkl.xyz"
DEFAULT_TIMEOUT_MS = 20000

# API key handling
API_KEY_ENV_VAR = "MERKL_API_KEY"
API_KEY_FILE_ENV_VAR = "MERKL_API_KEY_FILE"

# Response shaping
DASHBOARD_URL = "https://app.merkl.xyz/opportunities"
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100

SERVER_NAME = "merkl-mcp"
SERVER_VERSION = "0.1.8"


def _load_base_url() -> str:
    raw = os.getenv("MERKL_BASE_URL") or DEFAULT_BASE_URL
    return raw.rstrip("/")


def _load_timeout_ms() -> int:
    raw_timeout = os.getenv("MERKL_TIMEOUT_MS")
    if raw_timeout:
        try:
            parsed = int(float(raw_timeout))
        except ValueError:
            return DEFAULT_TIMEOUT_MS
        if parsed > 0:
            return parsed
    return DEFAULT_TIMEOUT_MS


def _debug_enabled() -> bool:
    flag = os.getenv("MERKL_DEBUG", "").strip().lower()
    if flag in {"1", "true"}:
        return True
    return "merkl" in os.getenv("DEBUG", "").lower()


def _load_log_level() -> str:
    if _debug_enabled():
        return "DEBUG"
    return os.getenv("MERKL_MCP_LOG_LEVEL", "INFO")


def load_api_key() -> Optional[str]:
    """
    Load the Merkl API key from environment or a local file.

    Returns:
        The API key string if available, otherwise None. The key is never logged
        or returned to callers.
    """
    env_key = os.getenv(API_KEY_ENV_VAR)
    if env_key and env_key.strip():
        return env_key.strip()

    key_path = os.getenv(API_KEY_FILE_ENV_VAR)
    if key_path:
        path = Path(key_path)
        if path.is_file():
            return path.read_text(encoding="utf-8").strip() or None

    return None


@dataclass(slots=True)
class MerklConfig:
    """Runtime configuration for Merkl API access."""

    base_url: str = field(default_factory=_load_base_url)
    api_key: Optional[str] = field(default_factory=load_api_key)
    timeout_ms: int = field(default_factory=_load_timeout_ms)
    dashboard_url: str = DASHBOARD_URL
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    log_level: str = field(default_factory=_load_log_level)
    log_format: str = field(default_factory=lambda: os.getenv("MERKL_MCP_LOG_FORMAT", "json"))

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


default_config = MerklConfig()
