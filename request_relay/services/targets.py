"""
Target resolution for the proxy relay.

Classifies a requested URL as a same-origin relative path or an absolute
external URL and applies the egress policy. Anything that is neither is
rejected before any network I/O happens.
"""

import ipaddress
import re
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit

from ..config import RelaySettings

# Base used only to normalise relative paths; never contacted
_RELATIVE_BASE = "http://relay.internal"

_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")

_PRIVATE_V4_NETWORKS = tuple(
    ipaddress.ip_network(net)
    for net in (
        "0.0.0.0/8",
        "10.0.0.0/8",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "100.64.0.0/10",
    )
)

_PRIVATE_V6_NETWORKS = tuple(
    ipaddress.ip_network(net)
    for net in (
        "::/128",
        "::1/128",
        "fe80::/10",
        "fc00::/7",
    )
)


@dataclass(frozen=True)
class RelativeTarget:
    """Same-origin path (with query string) under an allowed prefix."""
    path: str


@dataclass(frozen=True)
class ExternalTarget:
    """Fully-qualified https URL on an allowlisted host."""
    url: str
    host: str


class TargetRejected(Exception):
    """
    Raised when a URL cannot be relayed.

    Attributes:
        reason: Human readable reason, for the client-side validator only
        forbidden: True for policy rejections, False for malformed input
    """

    def __init__(self, reason: str, forbidden: bool):
        self.reason = reason
        self.forbidden = forbidden
        super().__init__(reason)


def is_private_ip_literal(hostname: str) -> bool:
    """
    Check whether a hostname is a private, loopback, link-local,
    unique-local or CGNAT IP literal.

    IPv4-mapped IPv6 addresses are checked against the IPv4 ranges, and
    IPv6 zone ids and brackets are ignored. Names that are not IP
    literals return False.
    """
    host = (hostname or "").strip().strip("[]").split("%")[0]
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False

    if ip.version == 4:
        return any(ip in net for net in _PRIVATE_V4_NETWORKS)

    if ip.ipv4_mapped is not None:
        return is_private_ip_literal(str(ip.ipv4_mapped))
    return any(ip in net for net in _PRIVATE_V6_NETWORKS)


def _resolve_relative(raw: str, settings: RelaySettings) -> RelativeTarget:
    if not any(raw.startswith(prefix) for prefix in settings.allowed_relative_prefixes):
        raise TargetRejected(
            "Only paths under " + ", ".join(settings.allowed_relative_prefixes) + " are allowed",
            forbidden=True,
        )

    # Dot segments must not climb out of the allowed prefix
    try:
        joined = urlsplit(urljoin(_RELATIVE_BASE, raw))
    except ValueError:
        raise TargetRejected("Invalid URL", forbidden=False)
    if joined.netloc != urlsplit(_RELATIVE_BASE).netloc:
        raise TargetRejected("Invalid path", forbidden=True)
    if not any(joined.path.startswith(prefix) for prefix in settings.allowed_relative_prefixes):
        raise TargetRejected(
            "Only paths under " + ", ".join(settings.allowed_relative_prefixes) + " are allowed",
            forbidden=True,
        )

    path = joined.path + (f"?{joined.query}" if joined.query else "")
    return RelativeTarget(path=path)


def _resolve_external(raw: str, settings: RelaySettings) -> ExternalTarget:
    if not _SCHEME_PATTERN.match(raw):
        raise TargetRejected("Invalid URL", forbidden=False)

    try:
        parts = urlsplit(raw)
    except ValueError:
        raise TargetRejected("Invalid URL", forbidden=False)
    if parts.scheme.lower() != "https":
        raise TargetRejected("Only https:// URLs are allowed", forbidden=True)
    if not parts.netloc or not parts.hostname:
        raise TargetRejected("Invalid URL", forbidden=False)
    try:
        port = parts.port
    except ValueError:
        raise TargetRejected("Invalid URL", forbidden=False)

    if parts.username or parts.password or "@" in parts.netloc:
        raise TargetRejected("Credentials in URL are not allowed", forbidden=True)
    if port is not None and port != 443:
        raise TargetRejected("Only the default https port is allowed", forbidden=True)

    hostname = parts.hostname.lower()
    if hostname == "localhost":
        raise TargetRejected("Host not allowed", forbidden=True)
    if is_private_ip_literal(hostname):
        raise TargetRejected("Private network addresses are not allowed", forbidden=True)
    if hostname not in settings.allowed_external_hosts:
        raise TargetRejected("Host not allowed", forbidden=True)

    return ExternalTarget(url=parts.geturl(), host=hostname)


def resolve_target(raw_url: str, settings: RelaySettings) -> RelativeTarget | ExternalTarget:
    """
    Resolve a requested URL against the egress policy.

    Args:
        raw_url: URL as typed by the caller
        settings: Relay policy

    Returns:
        RelativeTarget or ExternalTarget

    Raises:
        TargetRejected: malformed (forbidden=False) or disallowed (forbidden=True)
    """
    raw = str(raw_url or "").strip()
    if not raw:
        raise TargetRejected("URL is required", forbidden=False)

    if raw.startswith("/"):
        return _resolve_relative(raw, settings)
    return _resolve_external(raw, settings)
