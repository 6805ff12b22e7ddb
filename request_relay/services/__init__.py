# Services package

from .validation import validate_url, validate_json, format_json
from .headers import sanitize_headers
from .targets import resolve_target, is_private_ip_literal
from .relay import forward, relay_request
from .history_service import (
    add_history,
    clear_history,
    delete_saved,
    list_history,
    list_saved,
    save_request,
)

__all__ = [
    "validate_url",
    "validate_json",
    "format_json",
    "sanitize_headers",
    "resolve_target",
    "is_private_ip_literal",
    "forward",
    "relay_request",
    "add_history",
    "clear_history",
    "delete_saved",
    "list_history",
    "list_saved",
    "save_request",
]
