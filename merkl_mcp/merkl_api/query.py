"""Query-string encoding for Merkl API filters."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, List, Mapping, Tuple
from urllib.parse import quote_plus, urlencode


def _format_float(value: float) -> str:
    """Render a float like ECMAScript Number::toString (shortest round-trip digits)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    # value == 0.<digits> * 10**n
    n = k + exponent
    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits
    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"


def _stringify(value: Any) -> str:
    # Booleans first: bool is a subclass of int.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def _form_quote(value: str, safe: str = "", encoding=None, errors=None) -> str:
    # Form encoding leaves only alphanumerics and *-._ unescaped.
    return quote_plus(value, safe=safe, encoding=encoding, errors=errors).replace("~", "%7E")


def encode_query(filters: Mapping[str, Any] | None) -> str:
    """
    Serialize a filter mapping into a URL query string.

    Keys keep their insertion order. ``None``, ``""`` and empty lists are
    skipped so no key is ever sent with an empty value; ``0`` and ``False`` are
    real values and are kept. Lists are joined with commas.

    Returns:
        ``""`` when nothing was set, otherwise ``"?"`` followed by the
        form-urlencoded pairs.
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in (filters or {}).items():
        if value is None:
            continue
        if isinstance(value, str) and value == "":
            continue
        if isinstance(value, (list, tuple)):
            if len(value) == 0:
                continue
            pairs.append((key, ",".join(_stringify(item) for item in value)))
            continue
        pairs.append((key, _stringify(value)))
    if not pairs:
        return ""
    return "?" + urlencode(pairs, safe="*", quote_via=_form_quote)
