"""
Relay policy configuration.

The egress policy is an immutable value built once at process start and
handed to the routes through a FastAPI dependency, so tests can swap the
allowlist with ``app.dependency_overrides``.
"""

import os
from dataclasses import dataclass, field

from fastapi import Request


DEFAULT_ALLOWED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
DEFAULT_RELATIVE_PREFIXES = ("/api/mock/",)
DEFAULT_EXTERNAL_HOSTS = frozenset({"api.github.com", "dorar.net"})

# Hop-by-hop headers that must never be forwarded
DEFAULT_BLOCKED_HEADERS = frozenset({"host", "connection", "upgrade", "transfer-encoding"})

DEFAULT_MAX_BODY_BYTES = 100 * 1024
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_SAVED_LIMIT = 50


@dataclass(frozen=True)
class RelaySettings:
    """
    Egress policy for the relay.

    Attributes:
        allowed_methods: Verbs the relay will forward
        allowed_relative_prefixes: Same-origin path prefixes that may be targeted
        allowed_external_hosts: Lower-case hostnames reachable over https
        blocked_headers: Lower-case header names stripped before forwarding
        max_body_bytes: Cap on the UTF-8 size of a forwarded request body
        timeout_seconds: Deadline for the forwarded call
        history_limit: Number of history entries kept per user
        saved_limit: Number of saved requests listed per user
    """
    allowed_methods: tuple[str, ...] = DEFAULT_ALLOWED_METHODS
    allowed_relative_prefixes: tuple[str, ...] = DEFAULT_RELATIVE_PREFIXES
    allowed_external_hosts: frozenset[str] = field(default=DEFAULT_EXTERNAL_HOSTS)
    blocked_headers: frozenset[str] = field(default=DEFAULT_BLOCKED_HEADERS)
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    history_limit: int = DEFAULT_HISTORY_LIMIT
    saved_limit: int = DEFAULT_SAVED_LIMIT


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def load_settings() -> RelaySettings:
    """
    Build the relay settings from the environment.

    Recognised variables (all optional, comma-separated for lists):
        RELAY_ALLOWED_HOSTS, RELAY_ALLOWED_PREFIXES,
        RELAY_MAX_BODY_BYTES, RELAY_TIMEOUT_SECONDS

    Returns:
        RelaySettings with defaults for anything unset or unparseable
    """
    hosts = _env_list("RELAY_ALLOWED_HOSTS")
    prefixes = [p for p in _env_list("RELAY_ALLOWED_PREFIXES") if p.startswith("/")]

    return RelaySettings(
        allowed_external_hosts=(
            frozenset(h.lower() for h in hosts) if hosts else DEFAULT_EXTERNAL_HOSTS
        ),
        allowed_relative_prefixes=tuple(prefixes) if prefixes else DEFAULT_RELATIVE_PREFIXES,
        max_body_bytes=_env_number("RELAY_MAX_BODY_BYTES", DEFAULT_MAX_BODY_BYTES, int),
        timeout_seconds=_env_number("RELAY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, float),
    )


def get_settings(request: Request) -> RelaySettings:
    """Dependency returning the settings loaded at startup."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = load_settings()
        request.app.state.settings = settings
    return settings
