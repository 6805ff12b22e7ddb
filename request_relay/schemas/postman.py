"""
Pydantic schemas for the developer console's editable request.

A ``PostmanRequest`` is what the request builder edits and what history
and saved entries snapshot.
"""

from typing import Annotated, Literal, Union

from pydantic import Field

from .proxy import CamelModel, RelayMethod


class KeyValueRow(CamelModel):
    """A params/headers table row; disabled rows are kept but not sent."""
    key: str = ""
    value: str = ""
    enabled: bool = True


class NoAuth(CamelModel):
    type: Literal["none"] = "none"


class BearerAuth(CamelModel):
    type: Literal["bearer"] = "bearer"
    token: str = ""


class ApiKeyAuth(CamelModel):
    type: Literal["apikey"] = "apikey"
    key_name: str = "X-API-Key"
    key_value: str = ""
    location: Literal["header", "query"] = Field(default="header", alias="in")


PostmanAuth = Annotated[
    Union[NoAuth, BearerAuth, ApiKeyAuth],
    Field(discriminator="type"),
]

AuthType = Literal["none", "bearer", "apikey"]


def empty_rows() -> list[KeyValueRow]:
    return [KeyValueRow()]


class PostmanRequest(CamelModel):
    """
    Schema for a user-editable request.

    Attributes:
        method: One of the five relay verbs
        url: Relative ``/api/mock/...`` path or absolute https URL
        params: Ordered query parameter rows
        headers: Ordered header rows
        auth: Tagged auth variant (none, bearer, apikey)
        body_text: Free-text JSON body
    """
    method: RelayMethod = "GET"
    url: str = ""
    params: list[KeyValueRow] = Field(default_factory=empty_rows)
    headers: list[KeyValueRow] = Field(default_factory=empty_rows)
    auth: PostmanAuth = Field(default_factory=NoAuth)
    body_text: str = ""


class ResponseSummary(CamelModel):
    """What history keeps about a response."""
    status: int
    ok: bool
    time_ms: int = Field(ge=0)
