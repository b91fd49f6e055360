"""Recurrence, alert cadence and status vocabularies for reminders."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class Recurrence(str, Enum):
    ONE_TIME = "one-time"
    MONTHLY_RESET = "monthly-reset"
    YEARLY_RESET = "yearly-reset"
    CUSTOM = "custom"


class NotificationRecurrence(str, Enum):
    NONE = "none"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"


RESETTING_RECURRENCES = frozenset({Recurrence.MONTHLY_RESET, Recurrence.YEARLY_RESET})

RECURRENCE_LABELS: Dict[Recurrence, str] = {
    Recurrence.ONE_TIME: "One-time",
    Recurrence.MONTHLY_RESET: "Resets monthly",
    Recurrence.YEARLY_RESET: "Resets yearly",
    Recurrence.CUSTOM: "Custom",
}

# Display labels written by older builds of the app.
_LEGACY_RECURRENCE: Dict[str, Recurrence] = {
    "一次性任务": Recurrence.ONE_TIME,
    "短期任务": Recurrence.ONE_TIME,
    "每月初提醒": Recurrence.MONTHLY_RESET,
    "每年重复": Recurrence.YEARLY_RESET,
    "自定义...": Recurrence.CUSTOM,
}

_LEGACY_STATUS: Dict[str, ReminderStatus] = {
    "待完成": ReminderStatus.PENDING,
    "进行中": ReminderStatus.IN_PROGRESS,
    "已完成": ReminderStatus.COMPLETED,
}

DEFAULT_RECURRENCE = Recurrence.ONE_TIME


def normalize_recurrence(value: Recurrence | str | None) -> Recurrence:
    """Map enum values, display labels and legacy labels onto ``Recurrence``.

    Unknown labels fall back to one-time so an old record never fails to load.
    """
    if value is None:
        return DEFAULT_RECURRENCE
    if isinstance(value, Recurrence):
        return value
    text = str(value).strip()
    try:
        return Recurrence(text)
    except ValueError:
        pass
    if text in _LEGACY_RECURRENCE:
        return _LEGACY_RECURRENCE[text]
    for recurrence, label in RECURRENCE_LABELS.items():
        if label.lower() == text.lower():
            return recurrence
    return DEFAULT_RECURRENCE


def normalize_status(value: ReminderStatus | str | None) -> Optional[ReminderStatus]:
    if value is None:
        return None
    if isinstance(value, ReminderStatus):
        return value
    text = str(value).strip()
    if text in _LEGACY_STATUS:
        return _LEGACY_STATUS[text]
    return ReminderStatus(text)


def is_resetting(recurrence: Recurrence) -> bool:
    return recurrence in RESETTING_RECURRENCES


def recurrence_label(value: Recurrence) -> str:
    return RECURRENCE_LABELS.get(value, RECURRENCE_LABELS[DEFAULT_RECURRENCE])


def recurrence_options() -> Dict[str, str]:
    """Return mapping of dropdown values -> labels."""
    return {recurrence.value: label for recurrence, label in RECURRENCE_LABELS.items()}


__all__ = [
    "DEFAULT_RECURRENCE",
    "NotificationRecurrence",
    "Recurrence",
    "ReminderStatus",
    "RESETTING_RECURRENCES",
    "is_resetting",
    "normalize_recurrence",
    "normalize_status",
    "recurrence_label",
    "recurrence_options",
]
