"""Shared fixtures: a bridge wired to the in-memory OS interfaces"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from os_interfaces.memory import (  # noqa: E402
  InMemoryConfigStorage,
  InMemoryNotificationManager,
  InMemoryTimerManager,
  StaticLifecycleProbe,
)
from reminders.bridge import AppChannel, ReminderBridge  # noqa: E402
from reminders.flag_store import RescheduleFlagStore  # noqa: E402
from reminders.presenter import NotificationPresenter, PendingTapStore  # noqa: E402

T_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z


@pytest.fixture
def storage():
  return InMemoryConfigStorage()


@pytest.fixture
def timers():
  return InMemoryTimerManager()


@pytest.fixture
def notifications():
  return InMemoryNotificationManager()


@pytest.fixture
def taps():
  return []


@pytest.fixture
def presenter(notifications, taps):
  presenter = NotificationPresenter(notifications, on_tap=taps.append)
  presenter.create_channels()
  return presenter


@pytest.fixture
def flag_store(storage):
  return RescheduleFlagStore(storage)


@pytest.fixture
def probe():
  return StaticLifecycleProbe(boot_id="boot-1", app_version="1.0.0")


@pytest.fixture
def bridge(timers, presenter, flag_store, storage, probe):
  bridge = ReminderBridge(
    timer_manager=timers,
    presenter=presenter,
    flag_store=flag_store,
    app_channel=AppChannel(),
    lifecycle_probe=probe,
    pending_taps=PendingTapStore(storage),
  )
  timers.on_fire = bridge.fire_handler()
  return bridge


@pytest.fixture
def flashcard_reminder():
  return {
    "reminderId": 1,
    "notificationType": "flashcard_review",
    "title": "Review",
    "message": "Cards are due",
    "scheduledTime": T_MS,
    "deckName": "Spanish",
    "cardCount": 12,
    "deckId": "abc",
  }
