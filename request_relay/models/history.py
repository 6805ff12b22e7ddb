"""
History and saved-request models for the developer console.

Both tables are partitioned by ``uid``; no query ever crosses users.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, JSON, Integer, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


def new_id() -> str:
    return uuid.uuid4().hex


class HistoryEntry(Base):
    """
    SQLAlchemy model for one executed request.

    Attributes:
        pk: Insertion sequence, breaks created_at ties
        id: Public identifier for the entry
        uid: Owning user id
        request: Snapshot of the PostmanRequest (camelCase JSON)
        status: HTTP status the console saw (upstream or relay)
        ok: Whether the status was 2xx
        time_ms: Elapsed time reported for the call
        created_at: Timestamp when the entry was appended
    """
    __tablename__ = "postman_history"
    __table_args__ = (Index("ix_postman_history_uid_created", "uid", "created_at"),)

    pk: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), unique=True, default=new_id)
    uid: Mapped[str] = mapped_column(String(128))
    request: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[int] = mapped_column(Integer)
    ok: Mapped[bool] = mapped_column(Boolean, default=False)
    time_ms: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    @property
    def response_summary(self) -> dict:
        return {"status": self.status, "ok": self.ok, "timeMs": self.time_ms}


class SavedRequest(Base):
    """
    SQLAlchemy model for a named saved request.

    Names are not unique; saving twice under one name creates two rows.
    """
    __tablename__ = "postman_saved"
    __table_args__ = (Index("ix_postman_saved_uid_updated", "uid", "updated_at"),)

    pk: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), unique=True, default=new_id)
    uid: Mapped[str] = mapped_column(String(128))
    name: Mapped[str] = mapped_column(String(255))
    request: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)
