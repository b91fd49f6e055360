# reminders/models/reminder.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from pydantic import field_validator, model_validator
from sqlmodel import Field, SQLModel

from core.recurrence import (
    NotificationRecurrence,
    Recurrence,
    ReminderStatus,
    is_resetting,
    normalize_recurrence,
    normalize_status,
)
from utils.datetime_utils import parse_iso


class ReminderRecord(SQLModel):
    """One tracked obligation.

    Fields are mutable, but only :class:`services.reminder_store.ReminderStore`
    should change them so the notification schedule stays in step.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), schema_extra={"frozen": True})
    name: str = ""
    account: str = ""
    description: str = ""
    next_due_date: datetime
    recurrence: Recurrence = Recurrence.ONE_TIME
    next_notification_date: Optional[datetime] = None
    notification_recurrence: NotificationRecurrence = NotificationRecurrence.NONE
    status: Optional[ReminderStatus] = None
    target_count: int = 1
    current_count: int = 0

    @field_validator("recurrence", mode="before")
    @classmethod
    def _coerce_recurrence(cls, value: Any) -> Recurrence:
        return normalize_recurrence(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Optional[ReminderStatus]:
        return normalize_status(value)

    @field_validator("next_due_date", "next_notification_date", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        parsed = parse_iso(value) if isinstance(value, (str, datetime)) else None
        return parsed if parsed is not None else value

    @model_validator(mode="after")
    def _fill_defaults(self) -> "ReminderRecord":
        if self.next_notification_date is None:
            self.next_notification_date = self.next_due_date
        if self.status is None:
            self.status = self.open_status()
        return self

    # ---------- derived state ----------
    @property
    def is_completed(self) -> bool:
        return self.status == ReminderStatus.COMPLETED

    @property
    def is_recurring(self) -> bool:
        return is_resetting(self.recurrence)

    @property
    def progress_label(self) -> str:
        return f"{self.current_count}/{self.target_count}"

    def open_status(self) -> ReminderStatus:
        """Status of a not-yet-completed record with this target."""
        if self.target_count > 1:
            return ReminderStatus.IN_PROGRESS
        return ReminderStatus.PENDING

    def normalize(self) -> "ReminderRecord":
        """Clamp counters into range; a completed record sits at its target."""
        self.target_count = max(1, int(self.target_count))
        self.current_count = max(0, min(int(self.current_count), self.target_count))
        if self.is_completed:
            self.current_count = self.target_count
        else:
            self.status = self.open_status()
        return self

    # ---------- persistence ----------
    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "ReminderRecord":
        return cls.model_validate(row)


__all__ = ["ReminderRecord"]
