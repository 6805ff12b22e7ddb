"""
Developer console API routes.

Runs the console's send flow on the server: pre-flight validation in the
request builder, one relayed call, the response view, and a best-effort
history entry for signed-in callers.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import RelaySettings, get_settings
from ..database import get_db
from ..exceptions import APIException, NetworkError
from ..identity import get_optional_uid
from ..schemas.console import (
    ConsoleSendRequest,
    ConsoleSendResponse,
    ExampleItem,
    JsonCheckResponse,
    JsonFormatResponse,
    JsonTextRequest,
    UrlCheckRequest,
    UrlCheckResponse,
)
from ..schemas.postman import ResponseSummary
from ..services.history_service import add_history
from ..services.relay import app_transport, forward, get_upstream_transport
from ..services.request_builder import EXAMPLES, RequestBuilder
from ..services.response_viewer import ResponseView, ViewError
from ..services.validation import format_json, validate_json, validate_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/console", tags=["console"])


@router.post("/validate-url", response_model=UrlCheckResponse)
def check_url(body: UrlCheckRequest, settings: RelaySettings = Depends(get_settings)):
    """Validate a URL against the egress policy."""
    check = validate_url(body.url, settings)
    return UrlCheckResponse(ok=check.ok, error=check.error, normalized=check.normalized, kind=check.kind)


@router.post("/validate-json", response_model=JsonCheckResponse)
def check_json(body: JsonTextRequest):
    """Validate a request body; blank text is valid."""
    check = validate_json(body.text)
    return JsonCheckResponse(ok=check.ok, error=check.error)


@router.post("/format-json", response_model=JsonFormatResponse)
def pretty_json(body: JsonTextRequest):
    """Pretty-print a request body with 2-space indentation."""
    result = format_json(body.text)
    return JsonFormatResponse(ok=result.ok, formatted=result.formatted, error=result.error)


@router.get("/examples", response_model=list[ExampleItem])
def list_examples():
    """Built-in example requests against the mock API."""
    return [ExampleItem(**example) for example in EXAMPLES]


@router.post("/send", response_model=ConsoleSendResponse)
async def send(
    body: ConsoleSendRequest,
    request: Request,
    settings: RelaySettings = Depends(get_settings),
    upstream_transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
    uid: str | None = Depends(get_optional_uid),
    db: Session = Depends(get_db),
):
    """
    Validate, relay and render one console request.

    Pre-flight failures are returned with ``sent=false`` and nothing is
    forwarded. Relay failures are rendered as the view's error state.
    History is appended for signed-in callers; a failed append is logged
    and reported through ``historySaved`` but never fails the send.
    """
    builder = RequestBuilder(settings, body.request)
    view = ResponseView(tab=body.current_tab)

    descriptor = builder.prepare_send()
    if descriptor is None:
        url_check = builder.url_check
        message = url_check.error if not url_check.ok else builder.json_error
        view.show(error=ViewError(message=message or "Request is not valid"))
        return ConsoleSendResponse(
            sent=False,
            ok=False,
            builder_tab=builder.tab,
            json_error=builder.json_error,
            url_error=url_check.error,
            view=view.to_payload(),
        )

    try:
        envelope = await forward(
            descriptor,
            settings,
            origin=str(request.base_url),
            local_transport=app_transport(request.app),
            upstream_transport=upstream_transport,
        )
    except APIException as exc:
        time_ms = exc.time_ms if isinstance(exc, NetworkError) else None
        view.show(error=ViewError(message=exc.detail, status=exc.status_code, time_ms=time_ms))
        summary = ResponseSummary(status=exc.status_code, ok=False, time_ms=time_ms or 0)
        ok = False
    else:
        view.show(response=envelope)
        summary = ResponseSummary(
            status=envelope.status,
            ok=200 <= envelope.status < 300,
            time_ms=envelope.time_ms,
        )
        ok = True

    history_saved = False
    if uid is not None:
        try:
            add_history(db, uid, builder.request, summary, settings.history_limit)
            history_saved = True
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("History not saved for %s: %s", uid, exc)

    return ConsoleSendResponse(
        sent=True,
        ok=ok,
        descriptor=descriptor,
        builder_tab=builder.tab,
        view=view.to_payload(),
        history_saved=history_saved,
    )
