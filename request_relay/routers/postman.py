"""
History and saved request API routes.

Every route is scoped to the calling user; entries of other users are
invisible and cannot be deleted.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..config import RelaySettings, get_settings
from ..database import get_db
from ..identity import get_current_uid
from ..schemas.history import (
    HistoryCreate,
    HistoryItem,
    HistoryListResponse,
    SavedCreate,
    SavedItem,
    SavedListResponse,
)
from ..services import history_service


router = APIRouter(prefix="/api/postman", tags=["postman"])


@router.get("/history", response_model=HistoryListResponse)
def list_history(
    uid: str = Depends(get_current_uid),
    settings: RelaySettings = Depends(get_settings),
    db: Session = Depends(get_db)
):
    """
    Get the caller's most recent history entries, newest first.

    Returns:
        HistoryListResponse with at most ``history_limit`` items
    """
    items = history_service.list_history(db, uid, settings.history_limit)
    return HistoryListResponse(items=items, total=history_service.count_history(db, uid))


@router.post("/history", response_model=HistoryItem, status_code=status.HTTP_201_CREATED)
def add_history(
    entry: HistoryCreate,
    uid: str = Depends(get_current_uid),
    settings: RelaySettings = Depends(get_settings),
    db: Session = Depends(get_db)
):
    """Append one history entry for the caller."""
    return history_service.add_history(
        db, uid, entry.request, entry.response_summary, settings.history_limit
    )


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
def clear_history(
    uid: str = Depends(get_current_uid),
    settings: RelaySettings = Depends(get_settings),
    db: Session = Depends(get_db)
):
    """Delete the caller's visible history entries."""
    history_service.clear_history(db, uid, settings.history_limit)
    return None


@router.get("/saved", response_model=SavedListResponse)
def list_saved(
    uid: str = Depends(get_current_uid),
    settings: RelaySettings = Depends(get_settings),
    db: Session = Depends(get_db)
):
    """Get the caller's saved requests, most recently updated first."""
    items = history_service.list_saved(db, uid, settings.saved_limit)
    return SavedListResponse(items=items, total=history_service.count_saved(db, uid))


@router.post("/saved", response_model=SavedItem, status_code=status.HTTP_201_CREATED)
def save_request(
    saved: SavedCreate,
    uid: str = Depends(get_current_uid),
    db: Session = Depends(get_db)
):
    """
    Save a named request.

    Duplicate names are allowed; each call creates a new entry.
    """
    return history_service.save_request(db, uid, saved.name, saved.request)


@router.delete("/saved/{saved_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_saved(
    saved_id: str,
    uid: str = Depends(get_current_uid),
    db: Session = Depends(get_db)
):
    """
    Delete one saved request.

    Raises:
        ResourceNotFoundError: 404 if the caller has no entry with this id
    """
    history_service.delete_saved(db, uid, saved_id)
    return None
