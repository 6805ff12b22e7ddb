"""
Proxy relay service.

Accepts a structured request description, applies the egress policy,
performs exactly one forwarded HTTP call with httpx and returns a
normalized response envelope. Relative ``/api/mock/`` targets are served
in-process by the application itself through an ASGI transport.
"""

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from ..config import RelaySettings
from ..exceptions import (
    BadRequestError,
    HostNotAllowedError,
    NetworkError,
    PayloadTooLargeError,
)
from ..schemas.proxy import ProxyRequestDescriptor, ProxyResponseEnvelope
from .headers import sanitize_headers
from .targets import ExternalTarget, RelativeTarget, TargetRejected, resolve_target

logger = logging.getLogger(__name__)


def get_upstream_transport() -> httpx.AsyncBaseTransport | None:
    """
    Dependency returning the transport used for external targets.

    None means httpx's default network transport; tests override this
    with an ``httpx.MockTransport``.
    """
    return None


def app_transport(app) -> httpx.AsyncBaseTransport:
    """Transport that dispatches relative targets to ``app`` in-process."""
    return httpx.ASGITransport(app=app, raise_app_exceptions=False)


def is_json_content_type(content_type: str | None) -> bool:
    """True for ``application/json`` and any ``+json`` media type."""
    ct = (content_type or "").lower()
    return "application/json" in ct or "+json" in ct


def encode_body(text: str) -> bytes:
    return text.encode("utf-8", errors="replace")


def parse_descriptor(payload: Any, settings: RelaySettings) -> ProxyRequestDescriptor:
    """
    Coerce a raw JSON payload into a request descriptor.

    Missing or mistyped fields are treated leniently: headers are
    sanitized, a non-string body is ignored. Only the method is a hard
    gate here.

    Raises:
        BadRequestError: Method is not one of the allowed verbs
    """
    data = payload if isinstance(payload, Mapping) else {}

    method = str(data.get("method") or "").strip().upper()
    if method not in settings.allowed_methods:
        raise BadRequestError(f"Invalid method. Allowed: {', '.join(settings.allowed_methods)}")

    body_text = data.get("bodyText")
    return ProxyRequestDescriptor(
        method=method,
        url=str(data.get("url") or ""),
        headers=sanitize_headers(data.get("headers"), settings.blocked_headers),
        body_text=body_text if isinstance(body_text, str) else None,
    )


def resolve_or_reject(url: str, settings: RelaySettings) -> RelativeTarget | ExternalTarget:
    """
    Resolve a target, mapping rejections onto the relay's error classes.

    Raises:
        BadRequestError: Malformed URL (400)
        HostNotAllowedError: Any policy rejection (403)
    """
    try:
        return resolve_target(url, settings)
    except TargetRejected as exc:
        logger.info("Rejected relay target (%s): %s", "policy" if exc.forbidden else "malformed", exc.reason)
        if exc.forbidden:
            raise HostNotAllowedError()
        raise BadRequestError("Invalid url")


def _collect_headers(response: httpx.Response) -> dict[str, str]:
    headers: dict[str, str] = {}
    for key, value in response.headers.multi_items():
        if key in headers:
            headers[key] = f"{headers[key]}, {value}"
        else:
            headers[key] = value
    return headers


async def forward(
    descriptor: ProxyRequestDescriptor,
    settings: RelaySettings,
    origin: str,
    local_transport: httpx.AsyncBaseTransport | None = None,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> ProxyResponseEnvelope:
    """
    Validate and forward one request.

    Args:
        descriptor: Method, URL, headers and optional body to forward
        settings: Relay policy
        origin: Scheme and host of this service, for relative targets
        local_transport: Transport serving relative targets
        upstream_transport: Transport for external targets (None = network)

    Returns:
        ProxyResponseEnvelope echoing the upstream response

    Raises:
        BadRequestError: Malformed URL
        HostNotAllowedError: Target fails the egress policy
        PayloadTooLargeError: Body exceeds ``settings.max_body_bytes``
        NetworkError: Transport failure, with the elapsed time
    """
    target = resolve_or_reject(descriptor.url, settings)
    headers = sanitize_headers(descriptor.headers, settings.blocked_headers)

    content: bytes | None = None
    if descriptor.method != "GET" and descriptor.body_text:
        content = encode_body(descriptor.body_text)
        if len(content) > settings.max_body_bytes:
            logger.info("Rejected relay body of %d bytes", len(content))
            raise PayloadTooLargeError()

    if isinstance(target, RelativeTarget):
        url = origin.rstrip("/") + target.path
        transport = local_transport
    else:
        url = target.url
        transport = upstream_transport

    start = time.perf_counter()
    try:
        # Fresh client per call: no redirects followed, no cookie or cache reuse
        async with httpx.AsyncClient(
            transport=transport,
            follow_redirects=False,
            timeout=settings.timeout_seconds,
            trust_env=False,
        ) as client:
            response = await client.request(
                method=descriptor.method,
                url=url,
                headers=headers,
                content=content,
            )
    except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as exc:
        elapsed = int((time.perf_counter() - start) * 1000)
        message = str(exc) or type(exc).__name__
        if isinstance(exc, httpx.TimeoutException):
            message = f"Request exceeded {settings.timeout_seconds:g} seconds timeout"
        logger.warning("Relay %s %s failed after %dms: %s", descriptor.method, url, elapsed, message)
        raise NetworkError(message, time_ms=elapsed)
    elapsed = int((time.perf_counter() - start) * 1000)

    logger.debug("Relay %s %s -> %d in %dms", descriptor.method, url, response.status_code, elapsed)
    return ProxyResponseEnvelope(
        status=response.status_code,
        status_text=response.reason_phrase or "",
        headers=_collect_headers(response),
        body_text=response.text,
        time_ms=max(0, elapsed),
        is_json=is_json_content_type(response.headers.get("content-type")),
    )


async def relay_request(
    payload: Any,
    settings: RelaySettings,
    origin: str,
    local_transport: httpx.AsyncBaseTransport | None = None,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> ProxyResponseEnvelope:
    """Parse a raw ``/api/proxy`` payload and forward it."""
    descriptor = parse_descriptor(payload, settings)
    return await forward(
        descriptor,
        settings,
        origin,
        local_transport=local_transport,
        upstream_transport=upstream_transport,
    )
