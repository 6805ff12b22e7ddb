"""
Caller identity.

Authentication happens in front of this service; the verified user id
arrives in the ``X-User-Id`` header. History and saved requests are
partitioned by it. The relay itself needs no identity.
"""

from fastapi import Header

from .exceptions import UnauthorizedError

MAX_UID_LENGTH = 128


def get_optional_uid(x_user_id: str | None = Header(default=None)) -> str | None:
    """Dependency returning the caller's user id, or None if anonymous."""
    uid = (x_user_id or "").strip()
    if not uid:
        return None
    if len(uid) > MAX_UID_LENGTH:
        raise UnauthorizedError("Invalid user id")
    return uid


def get_current_uid(x_user_id: str | None = Header(default=None)) -> str:
    """Dependency requiring a caller identity."""
    uid = get_optional_uid(x_user_id)
    if uid is None:
        raise UnauthorizedError()
    return uid
