import logging
from datetime import datetime

from core.recurrence import NotificationRecurrence, Recurrence, ReminderStatus
from models.reminder import ReminderRecord
from services.reminder_store import ReminderStore
from services.scheduler import MonthlyTrigger, OnceTrigger


def _record(**fields):
    fields.setdefault("name", "Voucher")
    fields.setdefault("account", "Marriott")
    fields.setdefault("next_due_date", datetime(2026, 3, 1))
    return ReminderRecord(**fields)


def _yearly_voucher():
    return _record(
        recurrence=Recurrence.YEARLY_RESET,
        notification_recurrence=NotificationRecurrence.MONTHLY,
        next_notification_date=datetime(2026, 2, 20, 9, 30),
        target_count=1,
    )


class FailingPort:
    def register(self, identifier, content, trigger):
        raise RuntimeError("notifications disabled")

    def cancel(self, identifiers):
        raise RuntimeError("notifications disabled")


def test_add_schedules_periodic_and_reset_entries(store, center):
    saved = store.add_or_update(_yearly_voucher())

    assert center.identifiers() == {f"{saved.id}_PERIODIC", f"{saved.id}_RESET"}
    periodic = center.get(f"{saved.id}_PERIODIC")
    assert periodic.trigger == MonthlyTrigger(day=20, hour=9, minute=30, second=0)
    reset = center.get(f"{saved.id}_RESET")
    assert reset.trigger == OnceTrigger(datetime(2027, 3, 1, 8, 0))
    assert reset.next_fire_at == datetime(2027, 3, 1, 8, 0)


def test_complete_cancels_only_periodic_entry(store, center):
    saved = store.add_or_update(_yearly_voucher())

    completed = store.complete_task(saved.id)

    assert completed.status == ReminderStatus.COMPLETED
    assert center.identifiers() == {f"{saved.id}_RESET"}


def test_update_replaces_in_place_and_reschedules(store, center):
    saved = store.add_or_update(_record(recurrence=Recurrence.MONTHLY_RESET))
    other = store.add_or_update(_record(name="Other"))

    saved.name = "Renamed"
    saved.recurrence = Recurrence.ONE_TIME
    store.add_or_update(saved)

    assert [r.name for r in store.records] == ["Renamed", "Other"]
    assert f"{saved.id}_RESET" not in center.identifiers()
    assert f"{saved.id}_PERIODIC" in center.identifiers()
    assert f"{other.id}_PERIODIC" in center.identifiers()


def test_edits_clamp_count_to_target(store):
    saved = store.add_or_update(_record(target_count=5, current_count=4))
    saved.target_count = 2
    updated = store.add_or_update(saved)
    assert updated.current_count == 2
    assert updated.status == ReminderStatus.IN_PROGRESS

    overfull = store.add_or_update(_record(target_count=3, current_count=9))
    assert overfull.current_count == 3


def test_returned_records_are_detached(store):
    saved = store.add_or_update(_record())
    saved.name = "Changed locally"
    assert store.get(saved.id).name == "Voucher"


def test_increment_to_target_completes(store, center):
    saved = store.add_or_update(_record(target_count=3, recurrence=Recurrence.MONTHLY_RESET))

    results = [store.increment_count(saved.id) for _ in range(3)]

    assert [r.current_count for r in results] == [1, 2, 3]
    assert [r.status for r in results] == [
        ReminderStatus.IN_PROGRESS,
        ReminderStatus.IN_PROGRESS,
        ReminderStatus.COMPLETED,
    ]
    assert center.identifiers() == {f"{saved.id}_RESET"}


def test_increment_refreshes_progress_in_alert(store, center):
    saved = store.add_or_update(_record(target_count=5))
    store.increment_count(saved.id)
    assert "1/5" in center.get(f"{saved.id}_PERIODIC").content.body


def test_increment_after_completion_is_ignored(store):
    saved = store.add_or_update(_record(target_count=2))
    store.increment_count(saved.id)
    store.increment_count(saved.id)

    assert store.increment_count(saved.id) is None
    record = store.get(saved.id)
    assert record.current_count == 2
    assert record.status == ReminderStatus.COMPLETED


def test_count_never_exceeds_target(store):
    saved = store.add_or_update(_record(target_count=4))
    for step in range(10):
        store.increment_count(saved.id)
        if step == 5:
            record = store.get(saved.id)
            record.target_count = 6
            store.add_or_update(record)
        current = store.get(saved.id)
        assert current.current_count <= current.target_count


def test_yearly_reset_advances_one_year(store, center):
    saved = store.add_or_update(_record(recurrence=Recurrence.YEARLY_RESET, target_count=4))
    store.complete_task(saved.id)

    reset = store.reset_task(saved.id)

    assert reset.next_due_date == datetime(2027, 3, 1)
    assert reset.next_notification_date == datetime(2027, 3, 1, 8, 0)
    assert reset.current_count == 0
    assert reset.status == ReminderStatus.IN_PROGRESS
    assert center.get(f"{saved.id}_RESET").trigger == OnceTrigger(datetime(2028, 3, 1, 8, 0))
    assert center.get(f"{saved.id}_PERIODIC").trigger == OnceTrigger(datetime(2027, 3, 1, 8, 0))


def test_monthly_reset_single_target_returns_to_pending(store):
    saved = store.add_or_update(_record(recurrence=Recurrence.MONTHLY_RESET))
    store.complete_task(saved.id)
    reset = store.reset_task(saved.id)
    assert reset.next_due_date == datetime(2026, 4, 1)
    assert reset.status == ReminderStatus.PENDING


def test_reset_of_one_time_record_is_noop(store, center):
    saved = store.add_or_update(_record(recurrence=Recurrence.ONE_TIME))
    completed = store.complete_task(saved.id)
    scheduled = center.identifiers()

    assert store.reset_task(saved.id) is None
    assert store.get(saved.id).to_record() == completed.to_record()
    assert center.identifiers() == scheduled


def test_reset_of_open_recurring_record_is_noop(store):
    saved = store.add_or_update(_record(recurrence=Recurrence.MONTHLY_RESET))
    assert store.reset_task(saved.id) is None
    assert store.get(saved.id).next_due_date == datetime(2026, 3, 1)


def test_unknown_ids_are_noops(store):
    assert store.increment_count("missing") is None
    assert store.complete_task("missing") is None
    assert store.reset_task("missing") is None
    store.delete(["missing"])
    assert store.records == []


def test_delete_cancels_entries_and_persists(store, center, storage):
    keep = store.add_or_update(_record(name="Keep"))
    drop = store.add_or_update(_record(name="Drop", recurrence=Recurrence.MONTHLY_RESET))

    store.delete([drop.id, "missing"])

    assert [r.id for r in store.records] == [keep.id]
    assert not any(i.startswith(drop.id) for i in center.identifiers())
    assert [r.id for r in storage.load_records()] == [keep.id]


def test_every_mutation_is_persisted(store, storage):
    saved = store.add_or_update(_record(target_count=2))
    store.increment_count(saved.id)
    assert storage.load_records()[0].current_count == 1
    store.complete_task(saved.id)
    assert storage.load_records()[0].status == ReminderStatus.COMPLETED


def test_first_load_seeds_examples(center, storage, clock):
    store = ReminderStore(center, storage, clock=clock)
    records = store.load()

    assert len(records) == 2
    assert {r.recurrence for r in records} == {Recurrence.YEARLY_RESET, Recurrence.MONTHLY_RESET}
    assert len(storage.load_records()) == 2
    for record in records:
        assert f"{record.id}_PERIODIC" in center.identifiers()
        assert f"{record.id}_RESET" in center.identifiers()

    # a second start finds the saved examples and does not seed again
    again = ReminderStore(center, storage, clock=clock)
    assert [r.id for r in again.load()] == [r.id for r in records]


def test_corrupt_storage_is_replaced_by_examples(center, storage, clock, write_payload):
    write_payload("garbage")
    store = ReminderStore(center, storage, clock=clock)
    assert len(store.load()) == 2


def test_add_example_reminder(store, center, clock):
    record = store.add_example_reminder()
    assert record.recurrence == Recurrence.ONE_TIME
    assert record.next_due_date == datetime(2026, 1, 22, 10, 0)
    assert center.identifiers() == {f"{record.id}_PERIODIC"}


def test_reschedule_all_rearms_a_fresh_center(store, storage, clock):
    from services.notifications import LocalNotificationCenter

    saved = store.add_or_update(_yearly_voucher())
    fresh = LocalNotificationCenter(clock=clock)
    restarted = ReminderStore(fresh, storage, clock=clock, seed_examples=False)
    restarted.load()
    assert fresh.identifiers() == set()

    restarted.reschedule_all()
    assert fresh.identifiers() == {f"{saved.id}_PERIODIC", f"{saved.id}_RESET"}


def test_port_failures_do_not_block_saves(storage, clock, caplog):
    store = ReminderStore(FailingPort(), storage, clock=clock, seed_examples=False)
    store.load()

    with caplog.at_level(logging.ERROR):
        saved = store.add_or_update(_yearly_voucher())
        store.complete_task(saved.id)

    assert storage.load_records()[0].status == ReminderStatus.COMPLETED
    assert any("failed" in message for message in caplog.messages)


def test_load_clamps_overfull_stored_records(center, storage, clock):
    storage.save_records([_record(target_count=3, current_count=9)])
    store = ReminderStore(center, storage, clock=clock, seed_examples=False)

    loaded = store.load()[0]

    assert (loaded.current_count, loaded.target_count) == (3, 3)
    assert loaded.status == ReminderStatus.IN_PROGRESS


def test_raising_target_of_completed_record_stays_complete(store):
    saved = store.add_or_update(_record(target_count=1))
    completed = store.complete_task(saved.id)

    completed.target_count = 3
    updated = store.add_or_update(completed)

    assert updated.status == ReminderStatus.COMPLETED
    assert updated.current_count == updated.target_count == 3


def test_load_without_seeding_leaves_empty_storage_empty(center, storage, clock):
    store = ReminderStore(center, storage, clock=clock)
    assert store.load(seed=False) == []
    assert storage.load_records() == []
    assert center.identifiers() == set()
