"""Owner of the reminder collection and its notification schedule."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from core.logs import get_logger
from core.recurrence import NotificationRecurrence, Recurrence, ReminderStatus
from core.settings import STORAGE
from models.reminder import ReminderRecord
from services import scheduler
from services.notifications import NotificationPort
from services.scheduler import TriggerKey, TriggerRole
from storage.store import ReminderStorage
from utils.datetime_utils import add_months, local_now, to_iso


class ReminderStore:
    """Lifecycle operations over the reminder collection.

    Every mutating call runs *mutate → reschedule → save* in that order.
    Records handed out are copies: changing one has no effect until it is
    passed back through :meth:`add_or_update`.
    """

    def __init__(
        self,
        port: NotificationPort,
        storage: Optional[ReminderStorage] = None,
        *,
        clock: Callable[[], datetime] = local_now,
        seed_examples: bool = STORAGE.seed_examples,
    ) -> None:
        self.port = port
        self.storage = storage or ReminderStorage()
        self._clock = clock
        self.seed_examples = seed_examples
        self._records: List[ReminderRecord] = []
        self.logger = get_logger("store")

    # ------------------------------------------------------------------
    # Read access
    @property
    def records(self) -> List[ReminderRecord]:
        return [r.model_copy() for r in self._records]

    def get(self, reminder_id: str) -> Optional[ReminderRecord]:
        record = self._find(reminder_id)
        return record.model_copy() if record else None

    def _find(self, reminder_id: str) -> Optional[ReminderRecord]:
        for record in self._records:
            if record.id == reminder_id:
                return record
        return None

    # ------------------------------------------------------------------
    # Persistence
    def load(self, *, seed: Optional[bool] = None) -> List[ReminderRecord]:
        """Replace the in-memory collection with what storage holds.

        ``seed`` overrides :attr:`seed_examples`; the delivery path passes
        ``False`` so a trigger firing on an empty store never creates records.
        """
        self._records = [r.normalize() for r in self.storage.load_records()]
        self.logger.debug("Loaded %d reminders", len(self._records))
        should_seed = self.seed_examples if seed is None else seed
        if not self._records and should_seed:
            self._seed_examples()
        return self.records

    def save(self) -> None:
        self.storage.save_records(self._records)

    def _seed_examples(self) -> None:
        today = self._clock()
        examples = [
            ReminderRecord(
                name="Marriott free night certificate",
                account="Marriott Bonvoy",
                description="Use it before it expires. A new certificate is issued every March.",
                next_due_date=add_months(today, 5),
                recurrence=Recurrence.YEARLY_RESET,
                notification_recurrence=NotificationRecurrence.MONTHLY,
                target_count=1,
            ),
            ReminderRecord(
                name="Credit card spend target",
                account="Chase co-brand card",
                description="Make 5 purchases this statement cycle. Check at the start of each cycle.",
                next_due_date=today + timedelta(days=3),
                recurrence=Recurrence.MONTHLY_RESET,
                notification_recurrence=NotificationRecurrence.WEEKLY,
                target_count=5,
                current_count=2,
            ),
        ]
        self.logger.info("No stored reminders, seeding %d examples", len(examples))
        for record in examples:
            self._upsert(record)
            self._schedule(record)
        self.save()

    # ------------------------------------------------------------------
    # Notification plumbing
    def _register(self, entry: scheduler.ScheduledNotification) -> None:
        try:
            self.port.register(entry.identifier, entry.content, entry.trigger)
        except Exception as exc:
            self.logger.error("Registering %s failed: %s", entry.identifier, exc)

    def _cancel(self, identifiers: Iterable[str]) -> None:
        identifiers = set(identifiers)
        try:
            self.port.cancel(identifiers)
        except Exception as exc:
            self.logger.error("Cancelling %s failed: %s", sorted(identifiers), exc)

    def _schedule(self, record: ReminderRecord) -> None:
        for entry in scheduler.derive_notifications(record):
            self._register(entry)

    def cancel_notifications(self, reminder_id: str) -> None:
        self._cancel(scheduler.cancellation_identifiers(reminder_id))

    def reschedule_all(self) -> None:
        """Re-arm every record, e.g. after the host dropped its pending requests."""
        for record in self._records:
            self.cancel_notifications(record.id)
            self._schedule(record)

    # ------------------------------------------------------------------
    # Lifecycle
    def _upsert(self, record: ReminderRecord) -> None:
        for index, existing in enumerate(self._records):
            if existing.id == record.id:
                self._records[index] = record
                return
        self._records.append(record)

    def add_or_update(self, record: ReminderRecord) -> ReminderRecord:
        stored = record.model_copy().normalize()
        self._upsert(stored)
        self.cancel_notifications(stored.id)
        self._schedule(stored)
        self.save()
        self.logger.debug("Saved reminder %s (%s)", stored.id, stored.status.value)
        return stored.model_copy()

    def delete(self, ids: Iterable[str]) -> None:
        targets = set(ids)
        for reminder_id in targets:
            self.cancel_notifications(reminder_id)
        before = len(self._records)
        self._records = [r for r in self._records if r.id not in targets]
        if len(self._records) != before:
            self.logger.debug("Deleted %d reminders", before - len(self._records))
        self.save()

    def increment_count(self, reminder_id: str) -> Optional[ReminderRecord]:
        """Count one qualifying action; completes the record at its target.

        Completed records are left untouched until they are reset.
        """
        record = self._find(reminder_id)
        if record is None:
            return None
        if record.is_completed:
            self.logger.debug("Ignoring increment on completed reminder %s", reminder_id)
            return None
        record.current_count += 1
        if record.current_count >= record.target_count:
            return self.complete_task(reminder_id)
        # refresh the periodic alert so its body shows the new progress
        entry = scheduler.periodic_notification(record)
        if entry is not None:
            self._register(entry)
        self.save()
        return record.model_copy()

    def complete_task(self, reminder_id: str) -> Optional[ReminderRecord]:
        record = self._find(reminder_id)
        if record is None:
            return None
        record.status = ReminderStatus.COMPLETED
        record.current_count = record.target_count
        # The reset entry stays armed: it revives the record next cycle.
        self._cancel({TriggerKey(reminder_id, TriggerRole.PERIODIC).identifier})
        self.save()
        self.logger.info("Completed reminder %s", reminder_id)
        return record.model_copy()

    def reset_task(self, reminder_id: str) -> Optional[ReminderRecord]:
        record = self._find(reminder_id)
        if record is None:
            self.logger.info("Reset for unknown reminder %s ignored", reminder_id)
            return None
        if not record.is_completed or not record.is_recurring:
            self.logger.debug("Reset for %s skipped (status=%s, recurrence=%s)",
                              reminder_id, record.status.value, record.recurrence.value)
            return None
        new_due = scheduler.advance_due_date(record)
        record.next_due_date = new_due
        record.next_notification_date = scheduler.reset_moment(new_due)
        record.current_count = 0
        record.status = record.open_status()
        self.cancel_notifications(reminder_id)
        self._schedule(record)
        self.save()
        self.logger.info("Reset reminder %s, next due %s", reminder_id, to_iso(new_due))
        return record.model_copy()

    def add_example_reminder(self) -> ReminderRecord:
        record = ReminderRecord(
            name="New card welcome bonus",
            account="Amex Platinum",
            description="Spend $6000 within 3 months of opening the card.",
            next_due_date=self._clock() + timedelta(days=7),
            recurrence=Recurrence.ONE_TIME,
        )
        return self.add_or_update(record)


__all__ = ["ReminderStore"]
