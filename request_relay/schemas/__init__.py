"""
Pydantic schemas package.

Exports all schemas for API request/response validation.
"""

from .proxy import (
    RelayMethod,
    ProxyRequestDescriptor,
    ProxyResponseEnvelope,
    ProxyErrorEnvelope,
)

from .postman import (
    KeyValueRow,
    NoAuth,
    BearerAuth,
    ApiKeyAuth,
    PostmanAuth,
    PostmanRequest,
    ResponseSummary,
)

from .history import (
    HistoryCreate,
    HistoryItem,
    HistoryListResponse,
    SavedCreate,
    SavedItem,
    SavedListResponse,
)

__all__ = [
    # Relay schemas
    "RelayMethod",
    "ProxyRequestDescriptor",
    "ProxyResponseEnvelope",
    "ProxyErrorEnvelope",
    # Console request schemas
    "KeyValueRow",
    "NoAuth",
    "BearerAuth",
    "ApiKeyAuth",
    "PostmanAuth",
    "PostmanRequest",
    "ResponseSummary",
    # History schemas
    "HistoryCreate",
    "HistoryItem",
    "HistoryListResponse",
    "SavedCreate",
    "SavedItem",
    "SavedListResponse",
]
