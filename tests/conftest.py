from datetime import datetime

import pytest
from sqlmodel import Session, SQLModel, create_engine

from services.notifications import LocalNotificationCenter
from services.reminder_store import ReminderStore
from storage.store import ReminderStorage, StoredCollection


class FakeClock:
    """Settable stand-in for ``local_now``."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 1, 15, 10, 0))


@pytest.fixture()
def session_factory():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)

    def factory():
        return Session(engine)

    return factory


@pytest.fixture()
def storage(session_factory):
    return ReminderStorage(session_factory)


@pytest.fixture()
def center(clock):
    return LocalNotificationCenter(clock=clock)


@pytest.fixture()
def store(center, storage, clock):
    reminders = ReminderStore(center, storage, clock=clock, seed_examples=False)
    reminders.load()
    return reminders


@pytest.fixture()
def write_payload(session_factory):
    """Store a raw payload under the reminders key, bypassing serialisation."""

    def write(payload):
        with session_factory() as session:
            session.merge(StoredCollection(key="Reminders", payload=payload))
            session.commit()

    return write
