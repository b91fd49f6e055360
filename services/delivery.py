"""Entry point for notifications delivered by the host system."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from core.logs import get_logger
from models.reminder import ReminderRecord
from services.reminder_store import ReminderStore
from services.scheduler import ACTION_RESET, TriggerKey


@dataclass(frozen=True)
class DeliveryEvent:
    identifier: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> Optional[str]:
        value = self.metadata.get("action")
        return str(value) if value is not None else None

    @property
    def reminder_id(self) -> Optional[str]:
        for name in ("taskID", "id"):
            value = self.metadata.get(name)
            if value:
                return str(value)
        key = TriggerKey.parse(self.identifier)
        return key.reminder_id if key else None


class DeliveryHandler:
    """Routes delivered notifications into the store.

    The trigger may fire long after it was scheduled, possibly in a fresh
    process, so the store's persisted state is reloaded before every reset.
    """

    def __init__(self, store_factory: Callable[[], ReminderStore]):
        self._store_factory = store_factory
        self.logger = get_logger("delivery")

    def on_delivered(self, identifier: str, metadata: Optional[Dict[str, Any]]) -> None:
        event = DeliveryEvent(identifier, dict(metadata) if isinstance(metadata, dict) else {})
        self.handle(event)

    def handle(self, event: DeliveryEvent) -> Optional[ReminderRecord]:
        if event.action != ACTION_RESET:
            self.logger.debug("Delivered %s (action=%s)", event.identifier, event.action)
            return None
        reminder_id = event.reminder_id
        if not reminder_id:
            self.logger.warning("Reset notification %s carries no reminder id", event.identifier)
            return None
        store = self._store_factory()
        store.load(seed=False)
        self.logger.info("Reset trigger delivered for %s", reminder_id)
        return store.reset_task(reminder_id)


__all__ = ["DeliveryEvent", "DeliveryHandler"]
