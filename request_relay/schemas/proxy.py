"""
Pydantic schemas for the proxy relay.

Defines the request descriptor the relay forwards and the envelopes it
returns. JSON field names are camelCase on the wire.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# HTTP methods the relay forwards
RelayMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProxyRequestDescriptor(CamelModel):
    """
    One forwarded call, as accepted by ``POST /api/proxy``.

    ``body_text`` is never forwarded for GET.
    """
    method: RelayMethod
    url: str
    headers: dict[str, str] = {}
    body_text: str | None = None


class ProxyResponseEnvelope(CamelModel):
    """
    Normalized result of a forwarded call.

    ``headers`` keeps the upstream wire order and ``body_text`` is the raw
    decoded body, never re-encoded.
    """
    ok: Literal[True] = True
    status: int
    status_text: str
    headers: dict[str, str]
    body_text: str
    time_ms: int = Field(ge=0)
    is_json: bool


class ProxyErrorEnvelope(CamelModel):
    """Failure envelope returned for every rejected or failed call."""
    ok: Literal[False] = False
    error: str
    error_code: str | None = None
    time_ms: int | None = None
