"""
History and saved-request store.

History is a per-user bounded log: appending evicts that user's entries
beyond the cap, so what ``list_history`` shows is the whole history and
``clear_history`` leaves nothing behind. Saved requests are only created
and deleted explicitly.
"""

import logging

from sqlalchemy.orm import Session

from ..config import DEFAULT_HISTORY_LIMIT, DEFAULT_SAVED_LIMIT
from ..exceptions import ResourceNotFoundError
from ..models.history import HistoryEntry, SavedRequest
from ..schemas.postman import PostmanRequest, ResponseSummary

logger = logging.getLogger(__name__)


def _snapshot(request: PostmanRequest) -> dict:
    return request.model_dump(mode="json", by_alias=True)


def _history_query(db: Session, uid: str):
    return (
        db.query(HistoryEntry)
        .filter(HistoryEntry.uid == uid)
        .order_by(HistoryEntry.created_at.desc(), HistoryEntry.pk.desc())
    )


def list_history(db: Session, uid: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[HistoryEntry]:
    """
    Most recent history entries for a user, newest first.

    Args:
        db: Database session
        uid: Owning user id
        limit: Maximum number of entries returned

    Returns:
        Up to ``limit`` entries ordered by creation time (descending)
    """
    return _history_query(db, uid).limit(limit).all()


def add_history(
    db: Session,
    uid: str,
    request: PostmanRequest,
    summary: ResponseSummary,
    limit: int = DEFAULT_HISTORY_LIMIT
) -> HistoryEntry:
    """
    Append a history entry and evict the user's entries beyond ``limit``.

    No deduplication: sending the same request twice records it twice.
    """
    entry = HistoryEntry(
        uid=uid,
        request=_snapshot(request),
        status=summary.status,
        ok=summary.ok,
        time_ms=summary.time_ms,
    )
    db.add(entry)
    db.flush()

    stale = _history_query(db, uid).offset(limit).all()
    for old in stale:
        db.delete(old)
    if stale:
        logger.debug("Evicted %d history entries for %s", len(stale), uid)

    db.commit()
    db.refresh(entry)
    return entry


def clear_history(db: Session, uid: str, limit: int = DEFAULT_HISTORY_LIMIT) -> int:
    """
    Delete exactly the entries ``list_history`` returns.

    Returns:
        Number of entries deleted
    """
    entries = list_history(db, uid, limit)
    for entry in entries:
        db.delete(entry)
    db.commit()
    return len(entries)


def count_history(db: Session, uid: str) -> int:
    return db.query(HistoryEntry).filter(HistoryEntry.uid == uid).count()


def list_saved(db: Session, uid: str, limit: int = DEFAULT_SAVED_LIMIT) -> list[SavedRequest]:
    """Most recently updated saved requests for a user."""
    return (
        db.query(SavedRequest)
        .filter(SavedRequest.uid == uid)
        .order_by(SavedRequest.updated_at.desc(), SavedRequest.pk.desc())
        .limit(limit)
        .all()
    )


def count_saved(db: Session, uid: str) -> int:
    return db.query(SavedRequest).filter(SavedRequest.uid == uid).count()


def save_request(db: Session, uid: str, name: str, request: PostmanRequest) -> SavedRequest:
    """
    Save a named request.

    Always inserts; duplicate names are allowed.
    """
    saved = SavedRequest(uid=uid, name=name.strip() or name, request=_snapshot(request))
    db.add(saved)
    db.commit()
    db.refresh(saved)
    return saved


def delete_saved(db: Session, uid: str, saved_id: str) -> None:
    """
    Delete one saved request owned by ``uid``.

    Raises:
        ResourceNotFoundError: No such entry for this user
    """
    saved = (
        db.query(SavedRequest)
        .filter(SavedRequest.uid == uid, SavedRequest.id == saved_id)
        .first()
    )
    if saved is None:
        raise ResourceNotFoundError("Saved request", saved_id)
    db.delete(saved)
    db.commit()
