"""Notification port and an in-process notification center."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from core.logs import get_logger
from services.scheduler import NotificationContent, Trigger
from utils.datetime_utils import local_now, to_iso

DeliveryCallback = Callable[[str, Dict[str, Any]], None]


class NotificationPort(Protocol):
    """What the reminder store needs from a host notification system."""

    def register(self, identifier: str, content: NotificationContent, trigger: Trigger) -> None:
        ...

    def cancel(self, identifiers: Iterable[str]) -> None:
        ...


@dataclass
class PendingRequest:
    identifier: str
    content: NotificationContent
    trigger: Trigger
    next_fire_at: Optional[datetime]


class LocalNotificationCenter:
    """Keeps pending requests in memory and delivers them when asked.

    Registering an identifier that is already pending replaces it. Requests
    whose trigger can no longer fire are kept out of the pending set.
    """

    def __init__(
        self,
        on_delivered: Optional[DeliveryCallback] = None,
        *,
        clock: Callable[[], datetime] = local_now,
    ):
        self.on_delivered = on_delivered
        self._clock = clock
        self._pending: Dict[str, PendingRequest] = {}
        self.logger = get_logger("notifications")

    # ---------- NotificationPort ----------
    def register(self, identifier: str, content: NotificationContent, trigger: Trigger) -> None:
        next_fire_at = trigger.next_fire_after(self._clock())
        if next_fire_at is None:
            self._pending.pop(identifier, None)
            self.logger.info("Trigger for %s is in the past, not scheduled", identifier)
            return
        self._pending[identifier] = PendingRequest(identifier, content, trigger, next_fire_at)
        self.logger.debug("Scheduled %s at %s", identifier, to_iso(next_fire_at))

    def cancel(self, identifiers: Iterable[str]) -> None:
        for identifier in identifiers:
            if self._pending.pop(identifier, None) is not None:
                self.logger.debug("Cancelled %s", identifier)

    # ---------- inspection ----------
    def get(self, identifier: str) -> Optional[PendingRequest]:
        return self._pending.get(identifier)

    def identifiers(self) -> set[str]:
        return set(self._pending)

    def pending(self) -> List[PendingRequest]:
        return sorted(self._pending.values(), key=lambda r: (r.next_fire_at, r.identifier))

    # ---------- delivery ----------
    def deliver_due(self, now: Optional[datetime] = None) -> List[str]:
        """Fire every request due at ``now`` and return their identifiers."""

        moment = now or self._clock()
        due = [r for r in self.pending() if r.next_fire_at is not None and r.next_fire_at <= moment]
        delivered: List[str] = []
        for request in due:
            if self._pending.get(request.identifier) is not request:
                # replaced or cancelled by an earlier delivery in this batch
                continue
            if request.trigger.repeats:
                request.next_fire_at = request.trigger.next_fire_after(moment)
                if request.next_fire_at is None:
                    self._pending.pop(request.identifier, None)
            else:
                self._pending.pop(request.identifier, None)
            delivered.append(request.identifier)
            if self.on_delivered is None:
                continue
            try:
                self.on_delivered(request.identifier, dict(request.content.metadata))
            except Exception as exc:
                self.logger.error("Delivery callback for %s failed: %s", request.identifier, exc)
        return delivered


__all__ = ["DeliveryCallback", "LocalNotificationCenter", "NotificationPort", "PendingRequest"]
