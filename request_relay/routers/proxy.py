"""
Proxy relay API route.

``POST /api/proxy`` forwards one allowlisted request and returns the
response envelope; every other verb on the route itself is refused.
"""

import httpx
from fastapi import APIRouter, Depends, Request

from ..config import RelaySettings, get_settings
from ..exceptions import MethodNotAllowedError
from ..schemas.proxy import ProxyErrorEnvelope, ProxyResponseEnvelope
from ..services.relay import app_transport, get_upstream_transport, relay_request


router = APIRouter(prefix="/api/proxy", tags=["proxy"])


@router.post(
    "",
    response_model=ProxyResponseEnvelope,
    responses={
        400: {"model": ProxyErrorEnvelope, "description": "Invalid method or url"},
        403: {"model": ProxyErrorEnvelope, "description": "Host not allowed"},
        413: {"model": ProxyErrorEnvelope, "description": "Body too large"},
        502: {"model": ProxyErrorEnvelope, "description": "Upstream network error"},
    }
)
async def proxy(
    request: Request,
    settings: RelaySettings = Depends(get_settings),
    upstream_transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
):
    """
    Forward a request described by ``{method, url, headers?, bodyText?}``.

    The body is read leniently: unparseable JSON behaves like an empty
    description and is rejected by the method gate.

    Returns:
        ProxyResponseEnvelope with status, headers, raw body text, timing
        and whether the body is JSON
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    return await relay_request(
        payload,
        settings,
        origin=str(request.base_url),
        local_transport=app_transport(request.app),
        upstream_transport=upstream_transport,
    )


@router.api_route("", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def proxy_method_not_allowed():
    """The relay route itself only accepts POST."""
    raise MethodNotAllowedError()
