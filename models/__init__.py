"""Models exposed by the reminder tracker."""
from .reminder import ReminderRecord

__all__ = ["ReminderRecord"]
