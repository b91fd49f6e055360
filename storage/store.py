"""Persistence of the reminder collection under a fixed storage key."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence

from pydantic import ValidationError
from sqlmodel import Field, SQLModel, Session

from core.logs import get_logger
from core.settings import STORAGE
from models.reminder import ReminderRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredCollection(SQLModel, table=True):
    """A JSON document stored under a well-known key."""

    key: str = Field(primary_key=True)
    payload: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)


def _default_session_factory() -> Session:
    from storage.db import get_session, init_db

    init_db()
    return get_session()


def _serialise(records: Sequence[ReminderRecord]) -> str:
    return json.dumps([r.to_record() for r in records], ensure_ascii=False)


def _deserialise(payload: Optional[str]) -> List[ReminderRecord]:
    if not payload:
        return []
    data: Any = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError(f"expected a record list, got {type(data).__name__}")
    return [ReminderRecord.from_record(row) for row in data]


class ReminderStorage:
    """Reads and writes the whole collection as one flat record list.

    Record order is preserved across a save/load round trip.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = _default_session_factory,
        *,
        key: str = STORAGE.storage_key,
    ):
        self._session_factory = session_factory
        self.key = key
        self.logger = get_logger("storage")

    def load_records(self) -> List[ReminderRecord]:
        with self._session_factory() as session:
            row = session.get(StoredCollection, self.key)
            payload = row.payload if row else None
        try:
            return _deserialise(payload)
        except (json.JSONDecodeError, ValueError, TypeError, ValidationError) as exc:
            self.logger.warning("Stored reminders under %r are unreadable, starting empty: %s", self.key, exc)
            return []

    def save_records(self, records: Sequence[ReminderRecord]) -> None:
        payload = _serialise(records)
        with self._session_factory() as session:
            row = session.get(StoredCollection, self.key)
            if row is None:
                row = StoredCollection(key=self.key)
            row.payload = payload
            row.updated_at = _utcnow()
            session.add(row)
            session.commit()
        self.logger.debug("Saved %d reminders under %r", len(records), self.key)


__all__ = ["ReminderStorage", "StoredCollection"]
