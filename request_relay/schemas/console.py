"""
Pydantic schemas for the developer console routes.
"""

from typing import Any, Literal

from .postman import PostmanRequest
from .proxy import CamelModel, ProxyRequestDescriptor


class UrlCheckRequest(CamelModel):
    url: str = ""


class UrlCheckResponse(CamelModel):
    ok: bool
    error: str | None = None
    normalized: str | None = None
    kind: Literal["relative", "absolute"] | None = None


class JsonTextRequest(CamelModel):
    text: str = ""


class JsonCheckResponse(CamelModel):
    ok: bool
    error: str | None = None


class JsonFormatResponse(CamelModel):
    ok: bool
    formatted: str | None = None
    error: str | None = None


class ConsoleSendRequest(CamelModel):
    """A send from the console: the request plus the viewer's current tab."""
    request: PostmanRequest
    current_tab: Literal["body", "preview", "parsed", "headers"] = "body"


class ConsoleSendResponse(CamelModel):
    """
    Result of a console send.

    ``sent`` is False when pre-flight validation blocked the send; the
    builder state then says which tab to show and why.
    """
    sent: bool
    ok: bool
    descriptor: ProxyRequestDescriptor | None = None
    builder_tab: Literal["params", "headers", "auth", "body"]
    json_error: str | None = None
    url_error: str | None = None
    view: dict[str, Any]
    history_saved: bool = False


class ExampleItem(CamelModel):
    id: str
    name: str
    description: str
    request: PostmanRequest
