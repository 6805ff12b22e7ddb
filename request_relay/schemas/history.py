"""
Pydantic schemas for request history and saved requests.
"""

from datetime import datetime

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from .postman import PostmanRequest, ResponseSummary
from .proxy import CamelModel


class HistoryCreate(CamelModel):
    """Schema for appending a history entry."""
    request: PostmanRequest
    response_summary: ResponseSummary


class HistoryItem(CamelModel):
    """Schema for a history entry response."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    request: PostmanRequest
    response_summary: ResponseSummary
    created_at: datetime


class HistoryListResponse(CamelModel):
    """Schema for the capped history list."""
    items: list[HistoryItem]
    # All of the caller's stored entries, not just the listed page
    total: int


class SavedCreate(CamelModel):
    """Schema for saving a named request."""
    name: str = Field(min_length=1, max_length=255)
    request: PostmanRequest


class SavedItem(CamelModel):
    """Schema for a saved request response."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    name: str
    request: PostmanRequest
    created_at: datetime
    updated_at: datetime


class SavedListResponse(CamelModel):
    """Schema for the saved request list."""
    items: list[SavedItem]
    # All of the caller's stored entries, not just the listed page
    total: int
