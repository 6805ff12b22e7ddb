"""
Pre-flight validation for the developer console.

URL checks share the relay's target resolver, so the console can never
accept a URL the relay would refuse (or the reverse).
"""

import json
from dataclasses import dataclass
from typing import Any, Literal

from ..config import RelaySettings
from .targets import RelativeTarget, TargetRejected, resolve_target


@dataclass(frozen=True)
class UrlCheck:
    """Outcome of validating a URL; ``error`` is set when ``ok`` is False."""
    ok: bool
    error: str | None = None
    normalized: str | None = None
    kind: Literal["relative", "absolute"] | None = None


@dataclass(frozen=True)
class JsonCheck:
    """Outcome of validating a JSON body. ``value`` is None for a blank body."""
    ok: bool
    value: Any = None
    error: str | None = None


@dataclass(frozen=True)
class JsonFormat:
    """Outcome of pretty-printing a JSON body."""
    ok: bool
    formatted: str | None = None
    error: str | None = None


def validate_url(candidate: str, settings: RelaySettings) -> UrlCheck:
    """
    Validate a URL against the egress policy.

    Args:
        candidate: URL typed by the user
        settings: Relay policy

    Returns:
        UrlCheck with the normalized URL and its kind, or the reason it
        was rejected

    Example:
        >>> validate_url("/api/mock/users", RelaySettings()).kind
        'relative'
    """
    try:
        target = resolve_target(candidate, settings)
    except TargetRejected as exc:
        return UrlCheck(ok=False, error=exc.reason)

    if isinstance(target, RelativeTarget):
        return UrlCheck(ok=True, normalized=target.path, kind="relative")
    return UrlCheck(ok=True, normalized=target.url, kind="absolute")


def _reject_constant(name: str):
    raise ValueError(f"Unexpected token {name}")


def validate_json(text: str | None) -> JsonCheck:
    """
    Validate a request body as JSON.

    A blank body is valid and means "no body". NaN and Infinity are not
    JSON and are rejected. Never raises.
    """
    raw = str(text or "")
    if not raw.strip():
        return JsonCheck(ok=True)
    try:
        return JsonCheck(ok=True, value=json.loads(raw, parse_constant=_reject_constant))
    except ValueError as exc:
        # JSONDecodeError, non-JSON constants, over-long integer literals
        return JsonCheck(ok=False, error=str(exc) or "Invalid JSON")
    except RecursionError:
        return JsonCheck(ok=False, error="JSON is nested too deeply")


def dump_json(value: Any) -> str:
    """Serialize with the console's stable 2-space layout."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def format_json(text: str | None) -> JsonFormat:
    """
    Pretty-print a JSON body with 2-space indentation.

    Formatting already formatted text returns it unchanged.

    Example:
        >>> format_json('{"a":1}').formatted
        '{\\n  "a": 1\\n}'
    """
    check = validate_json(text)
    if not check.ok:
        return JsonFormat(ok=False, error=check.error)
    if not str(text or "").strip():
        return JsonFormat(ok=True, formatted="")
    return JsonFormat(ok=True, formatted=dump_json(check.value))
