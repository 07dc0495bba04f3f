"""Shared validation helpers for Merkl MCP tools."""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Tuple

from jsonschema import Draft202012Validator

# Composite "<chainId>-<TYPE>-0x<hex>" ids or bare numeric ids.
OPPORTUNITY_ID_REGEX = re.compile(r"^(?:[0-9]*-[0-9A-Z]*-0x[0-9A-Za-z]+|[0-9]{1,20})$")
CAMPAIGN_ID_REGEX = re.compile(r"^[0-9]+$")
CHAIN_ID_LIST_REGEX = re.compile(r"^\d+(,\d+)*$")
STATUS_LIST_REGEX = re.compile(r"^(LIVE|PAST|SOON)(,(LIVE|PAST|SOON)){0,2}$")
CHAIN_NAME_LIST_REGEX = re.compile(r"^[a-zA-Z0-9]+(,[a-zA-Z0-9]+)*$")

_VALIDATORS: Dict[int, Tuple[Dict[str, Any], Draft202012Validator]] = {}


class ValidationError(ValueError):
    """Raised when tool arguments fail their declared constraints."""


def is_valid_opportunity_id(value: Optional[str]) -> bool:
    if not value or not isinstance(value, str):
        return False
    return bool(OPPORTUNITY_ID_REGEX.fullmatch(value))


def is_valid_campaign_id(value: Optional[str]) -> bool:
    if not value or not isinstance(value, str):
        return False
    return bool(CAMPAIGN_ID_REGEX.fullmatch(value))


def require_opportunity_id(value: Any) -> str:
    if not is_valid_opportunity_id(value):
        raise ValidationError("Invalid id format")
    return value


def require_campaign_id(value: Any) -> str:
    if not is_valid_campaign_id(value):
        raise ValidationError("Invalid campaign id format")
    return value


def _validator_for(schema: Dict[str, Any]) -> Draft202012Validator:
    cached = _VALIDATORS.get(id(schema))
    if cached is not None and cached[0] is schema:
        return cached[1]
    validator = Draft202012Validator(schema)
    _VALIDATORS[id(schema)] = (schema, validator)
    return validator


def _format_error_path(path: Any) -> str:
    parts = [str(part) for part in path]
    return ".".join(parts) if parts else "arguments"


def validate_arguments(schema: Dict[str, Any], arguments: Mapping[str, Any], *, tool: str = "") -> None:
    """
    Check tool arguments against a JSON input schema.

    Raises:
        ValidationError: describing the first failing field.
    """
    validator = _validator_for(schema)
    errors = sorted(validator.iter_errors(dict(arguments)), key=lambda err: list(err.absolute_path))
    if not errors:
        return
    first = errors[0]
    message = first.message
    # Pattern failures carry a readable errorMessage instead of the raw regex.
    if first.validator == "pattern" and isinstance(first.schema, dict):
        message = first.schema.get("errorMessage") or message
    prefix = f"Invalid arguments for {tool}: " if tool else "Invalid arguments: "
    raise ValidationError(f"{prefix}{_format_error_path(first.absolute_path)}: {message}")
