"""Pure date arithmetic that turns a reminder into notification requests.

Each record maps to at most two scheduled entries: a user-visible *periodic*
alert and a silent *reset* trigger that revives a completed recurring record
on its next cycle. Both are addressed by a :class:`TriggerKey`, never by
ad-hoc string concatenation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from core.recurrence import NotificationRecurrence, Recurrence, recurrence_label
from core.settings import NOTIFICATIONS
from models.reminder import ReminderRecord
from utils.datetime_utils import at_time

ACTION_REMIND = "remind"
ACTION_RESET = "reset"


class TriggerRole(str, Enum):
    PERIODIC = "PERIODIC"
    RESET = "RESET"


@dataclass(frozen=True)
class TriggerKey:
    reminder_id: str
    role: TriggerRole

    @property
    def identifier(self) -> str:
        return f"{self.reminder_id}_{self.role.value}"

    @classmethod
    def parse(cls, identifier: str) -> Optional["TriggerKey"]:
        """Inverse of :attr:`identifier`; ``None`` for foreign identifiers."""
        head, sep, tail = (identifier or "").rpartition("_")
        if not sep or not head:
            return None
        try:
            role = TriggerRole(tail)
        except ValueError:
            return None
        return cls(reminder_id=head, role=role)


def keys_for(reminder_id: str) -> Tuple[TriggerKey, TriggerKey]:
    return (
        TriggerKey(reminder_id, TriggerRole.PERIODIC),
        TriggerKey(reminder_id, TriggerRole.RESET),
    )


def cancellation_identifiers(reminder_id: str) -> set[str]:
    # Early builds scheduled a single request under the bare record id.
    return {key.identifier for key in keys_for(reminder_id)} | {reminder_id}


# ---------- triggers ----------
@dataclass(frozen=True)
class OnceTrigger:
    fire_at: datetime

    @property
    def repeats(self) -> bool:
        return False

    def next_fire_after(self, moment: datetime) -> Optional[datetime]:
        return self.fire_at if self.fire_at > moment else None


@dataclass(frozen=True)
class WeeklyTrigger:
    weekday: int  # 0 = Monday, as datetime.weekday()
    hour: int
    minute: int
    second: int = 0

    @property
    def repeats(self) -> bool:
        return True

    def next_fire_after(self, moment: datetime) -> Optional[datetime]:
        days_ahead = (self.weekday - moment.weekday()) % 7
        candidate = (moment + timedelta(days=days_ahead)).replace(
            hour=self.hour, minute=self.minute, second=self.second, microsecond=0
        )
        if candidate <= moment:
            candidate += timedelta(days=7)
        return candidate


@dataclass(frozen=True)
class MonthlyTrigger:
    day: int
    hour: int
    minute: int
    second: int = 0

    @property
    def repeats(self) -> bool:
        return True

    def next_fire_after(self, moment: datetime) -> Optional[datetime]:
        # Months without this day (e.g. the 31st in April) are skipped.
        first = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        for offset in range(NOTIFICATIONS.monthly_search_months + 1):
            month_start = first + relativedelta(months=offset)
            try:
                candidate = month_start.replace(
                    day=self.day, hour=self.hour, minute=self.minute, second=self.second
                )
            except ValueError:
                continue
            if candidate > moment:
                return candidate
        return None


Trigger = Union[OnceTrigger, WeeklyTrigger, MonthlyTrigger]


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    silent: bool = False


@dataclass(frozen=True)
class ScheduledNotification:
    key: TriggerKey
    content: NotificationContent
    trigger: Trigger

    @property
    def identifier(self) -> str:
        return self.key.identifier


# ---------- date arithmetic ----------
def recurrence_interval(recurrence: Recurrence) -> Optional[relativedelta]:
    if recurrence == Recurrence.MONTHLY_RESET:
        return relativedelta(months=1)
    if recurrence == Recurrence.YEARLY_RESET:
        return relativedelta(years=1)
    # one-time and custom never reset
    return None


def next_reset_date(record: ReminderRecord) -> Optional[datetime]:
    interval = recurrence_interval(record.recurrence)
    if interval is None:
        return None
    return record.next_due_date + interval


def reset_moment(day: datetime) -> datetime:
    return at_time(day, NOTIFICATIONS.reset_hour, NOTIFICATIONS.reset_minute)


def advance_due_date(record: ReminderRecord) -> Optional[datetime]:
    return next_reset_date(record)


# ---------- derivation ----------
def _periodic_trigger(record: ReminderRecord) -> Trigger:
    anchor = record.next_notification_date or record.next_due_date
    cadence = record.notification_recurrence
    if cadence == NotificationRecurrence.WEEKLY:
        return WeeklyTrigger(anchor.weekday(), anchor.hour, anchor.minute, anchor.second)
    if cadence == NotificationRecurrence.MONTHLY:
        return MonthlyTrigger(anchor.day, anchor.hour, anchor.minute, anchor.second)
    return OnceTrigger(anchor)


def _periodic_body(record: ReminderRecord) -> str:
    parts = [p for p in (record.account, record.description) if p]
    if record.target_count > 1:
        parts.append(f"Progress {record.progress_label}")
    due = f"Due {record.next_due_date:%Y-%m-%d}"
    if record.is_recurring:
        due = f"{due} ({recurrence_label(record.recurrence).lower()})"
    parts.append(due)
    return " · ".join(parts)


def periodic_notification(record: ReminderRecord) -> Optional[ScheduledNotification]:
    if record.is_completed:
        return None
    content = NotificationContent(
        title=record.name,
        body=_periodic_body(record),
        metadata={"taskID": record.id, "action": ACTION_REMIND},
    )
    return ScheduledNotification(
        key=TriggerKey(record.id, TriggerRole.PERIODIC),
        content=content,
        trigger=_periodic_trigger(record),
    )


def reset_notification(record: ReminderRecord) -> Optional[ScheduledNotification]:
    reset_date = next_reset_date(record)
    if reset_date is None:
        return None
    content = NotificationContent(
        title=NOTIFICATIONS.reset_title,
        metadata={"taskID": record.id, "action": ACTION_RESET},
        silent=True,
    )
    return ScheduledNotification(
        key=TriggerKey(record.id, TriggerRole.RESET),
        content=content,
        trigger=OnceTrigger(reset_moment(reset_date)),
    )


def derive_notifications(record: ReminderRecord) -> List[ScheduledNotification]:
    """Periodic entry first, then the reset entry; either may be absent."""
    entries = [periodic_notification(record), reset_notification(record)]
    return [entry for entry in entries if entry is not None]


__all__ = [
    "ACTION_REMIND",
    "ACTION_RESET",
    "MonthlyTrigger",
    "NotificationContent",
    "OnceTrigger",
    "ScheduledNotification",
    "Trigger",
    "TriggerKey",
    "TriggerRole",
    "WeeklyTrigger",
    "advance_due_date",
    "cancellation_identifiers",
    "derive_notifications",
    "keys_for",
    "next_reset_date",
    "periodic_notification",
    "recurrence_interval",
    "reset_moment",
    "reset_notification",
]
