"""
Header sanitization for forwarded requests.

Unsafe entries are dropped one by one; a bad header never fails the
whole request.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from ..config import DEFAULT_BLOCKED_HEADERS


def _has_line_break(text: str) -> bool:
    return "\r" in text or "\n" in text


def sanitize_headers(
    raw: Any,
    blocked: Iterable[str] = DEFAULT_BLOCKED_HEADERS
) -> dict[str, str]:
    """
    Strip hop-by-hop and injection-prone headers.

    Args:
        raw: Caller-supplied header map; anything but a mapping yields {}
        blocked: Lower-case header names to drop

    Returns:
        Clean header dict in the caller's order, all values strings
    """
    if not isinstance(raw, Mapping):
        return {}

    blocked_names = {name.lower() for name in blocked}
    clean: dict[str, str] = {}
    for raw_key, raw_value in raw.items():
        key = str(raw_key if raw_key is not None else "").strip()
        if not key:
            continue
        if key.lower() in blocked_names or _has_line_break(key):
            continue
        if raw_value is None:
            continue
        if isinstance(raw_value, bool):
            value = "true" if raw_value else "false"
        else:
            value = str(raw_value)
        if _has_line_break(value):
            continue
        clean[key] = value
    return clean
