"""
Test the bridge command surface and the reboot recovery scenario
"""

from unittest.mock import MagicMock

import pytest

from backend.exceptions import (
  AppError,
  CANCEL_ERROR,
  CHECK_ERROR,
  INVALID_ARGS,
  SCHEDULE_ERROR,
)
from os_interfaces.base import OSImplementations
from os_interfaces.memory import (
  InMemoryConfigStorage,
  InMemoryNotificationManager,
  StaticLifecycleProbe,
)
from reminders.boot import BootAction, BootEvent
from reminders.bridge import METHOD_ON_NEEDS_RESCHEDULE, METHOD_OPEN_DECK, create_bridge
from reminders.models import decode_payload
from reminders.presenter import CHANNEL_ID_FLASHCARD_REVIEW, DeepLink

from conftest import T_MS


def _schedule_args(reminder: dict) -> dict:
  return {
    "reminder_id": reminder["reminderId"],
    "scheduled_time": reminder["scheduledTime"],
    "notification_type": reminder["notificationType"],
    "title": reminder["title"],
    "message": reminder["message"],
    "deck_name": reminder["deckName"],
    "card_count": reminder["cardCount"],
    "deck_id": reminder["deckId"],
  }


class TestSchedule:
  def test_schedule_arms_one_timer(self, bridge, timers, flashcard_reminder):
    assert bridge.schedule(**_schedule_args(flashcard_reminder)) is True

    armed = timers.armed[1]
    assert armed.trigger_at_ms == T_MS
    assert armed.exact is True
    assert decode_payload(armed.payload).deck_id == "abc"

  def test_reschedule_same_id_replaces(self, bridge, timers):
    bridge.schedule(reminder_id=1, scheduled_time=T_MS, title="first")
    bridge.schedule(reminder_id=1, scheduled_time=T_MS + 60_000, title="second")

    assert list(timers.armed) == [1]
    assert timers.armed[1].trigger_at_ms == T_MS + 60_000
    assert decode_payload(timers.armed[1].payload).title == "second"

  @pytest.mark.parametrize(
    "kwargs", [{"scheduled_time": T_MS}, {"reminder_id": 1}, {}]
  )
  def test_missing_required_arguments(self, bridge, timers, kwargs):
    with pytest.raises(AppError) as exc_info:
      bridge.schedule(**kwargs)

    assert exc_info.value.name == INVALID_ARGS
    assert exc_info.value.source == "validation"
    assert timers.armed == {}

  def test_malformed_id_is_invalid_argument(self, bridge):
    with pytest.raises(AppError) as exc_info:
      bridge.schedule(reminder_id="not-a-number", scheduled_time=T_MS)  # type: ignore[arg-type]
    assert exc_info.value.name == INVALID_ARGS

  def test_inexact_when_exact_not_permitted(self, bridge, timers):
    timers.exact_allowed = False

    bridge.schedule(reminder_id=2, scheduled_time=T_MS)

    assert timers.armed[2].exact is False

  def test_permission_refusal_falls_back_to_inexact(self, bridge, timers, caplog):
    timers.refuse_exact = True

    assert bridge.schedule(reminder_id=3, scheduled_time=T_MS) is True

    assert timers.armed[3].exact is False
    assert "Fell back to inexact alarm" in caplog.text

  def test_host_failure_is_schedule_error(self, bridge, timers):
    timers.schedule_timer = MagicMock(side_effect=RuntimeError("alarm service gone"))

    with pytest.raises(AppError) as exc_info:
      bridge.schedule(reminder_id=4, scheduled_time=T_MS)

    assert exc_info.value.name == SCHEDULE_ERROR
    assert "alarm service gone" in exc_info.value.description


class TestCancel:
  def test_cancel_disarms(self, bridge, timers):
    bridge.schedule(reminder_id=1, scheduled_time=T_MS)

    assert bridge.cancel(1) is True
    assert 1 not in timers.armed

  def test_cancel_unarmed_is_noop(self, bridge):
    assert bridge.cancel(99) is True

  def test_cancel_missing_id(self, bridge):
    with pytest.raises(AppError) as exc_info:
      bridge.cancel(None)
    assert exc_info.value.name == INVALID_ARGS

  def test_cancel_host_failure(self, bridge, timers):
    timers.cancel_timer = MagicMock(side_effect=RuntimeError("boom"))
    with pytest.raises(AppError) as exc_info:
      bridge.cancel(1)
    assert exc_info.value.name == CANCEL_ERROR

  def test_cancel_leaves_notifications_alone(self, bridge, timers, notifications):
    bridge.schedule(reminder_id=1, scheduled_time=T_MS)
    timers.fire(1)
    bridge.cancel(1)

    assert 1 in notifications.posted


class TestRescheduleAll:
  def test_counts_successes_and_continues_past_malformed(self, bridge, timers, flashcard_reminder):
    reminders = [
      flashcard_reminder,
      {"reminderId": 2},  # no scheduledTime
      {"reminderId": 3, "scheduledTime": T_MS},
      {"scheduledTime": T_MS},  # no reminderId
      "not a reminder",
      {"reminderId": 6, "scheduledTime": T_MS, "notificationType": "daily_goal"},
    ]

    assert bridge.reschedule_all(reminders) == 3
    assert set(timers.armed) == {1, 3, 6}

  def test_per_entry_host_failure_does_not_abort(self, bridge, timers):
    real_schedule = timers.schedule_timer

    def flaky(timer_config):
      if timer_config.reminder_id == 2:
        raise RuntimeError("transient")
      return real_schedule(timer_config)

    timers.schedule_timer = flaky
    reminders = [{"reminderId": i, "scheduledTime": T_MS} for i in (1, 2, 3)]

    assert bridge.reschedule_all(reminders) == 2
    assert set(timers.armed) == {1, 3}

  def test_missing_list(self, bridge):
    with pytest.raises(AppError) as exc_info:
      bridge.reschedule_all(None)
    assert exc_info.value.name == INVALID_ARGS

  def test_empty_list(self, bridge):
    assert bridge.reschedule_all([]) == 0


class TestChecks:
  def test_check_needs_reschedule_reads_and_clears(self, bridge, flag_store):
    flag_store.set_true()

    assert bridge.check_needs_reschedule() is True
    assert bridge.check_needs_reschedule() is False

  def test_check_storage_failure(self, bridge, flag_store):
    flag_store.storage = MagicMock()
    flag_store.storage.get.side_effect = OSError("unreadable")

    with pytest.raises(AppError) as exc_info:
      bridge.check_needs_reschedule()
    assert exc_info.value.name == CHECK_ERROR

  def test_can_schedule_exact(self, bridge, timers):
    assert bridge.can_schedule_exact() is True
    timers.exact_allowed = False
    assert bridge.can_schedule_exact() is False


class TestNotificationTaps:
  def test_flashcard_tap_opens_deck(self, bridge):
    handled = bridge.handle_notification_tap(
      {"notification_type": "flashcard_review", "deck_id": "abc"}
    )

    assert handled is True
    events = bridge.app_channel.drain()
    assert [(e.method, e.arguments) for e in events] == [(METHOD_OPEN_DECK, {"deckId": "abc"})]

  @pytest.mark.parametrize(
    "extras",
    [
      {"notification_type": "flashcard_review", "deck_id": ""},
      {"notification_type": "study_reminder", "deck_id": "abc"},
      {},
    ],
  )
  def test_other_taps_are_ignored(self, bridge, extras):
    assert bridge.handle_notification_tap(extras) is False
    assert bridge.app_channel.drain() == []


class TestScenarios:
  def test_flashcard_reminder_fires_and_tap_opens_deck(
    self, bridge, timers, notifications, taps, flashcard_reminder
  ):
    """schedule -> timer fires -> flashcard notification -> tap -> openDeck"""
    bridge.schedule(**_schedule_args(flashcard_reminder))

    timers.fire(1)

    posted = notifications.posted[1]
    assert posted.channel_id == CHANNEL_ID_FLASHCARD_REVIEW
    assert posted.extras["deck_id"] == "abc"

    posted.tap()
    assert taps == [
      DeepLink(notification_type="flashcard_review", deck_id="abc", deck_name="Spanish")
    ]
    bridge.handle_notification_tap(taps[0].to_extras())
    assert bridge.app_channel.drain()[0].arguments == {"deckId": "abc"}

  def test_reboot_recovery(self, timers, flashcard_reminder):
    """reboot drops the timer -> startup sees flag -> app reschedules -> timer re-armed"""
    storage = InMemoryConfigStorage()
    os_impl = OSImplementations(
      notification_manager_cls=InMemoryNotificationManager,
      timer_manager_cls=lambda **kwargs: timers,
      config_storage_cls=lambda *args: storage,
      lifecycle_probe_cls=lambda: StaticLifecycleProbe("boot-1", "1.0"),
    )
    bridge = create_bridge(os_impl)
    assert bridge.on_app_start() is False

    bridge.schedule(**_schedule_args(flashcard_reminder))
    timers.reboot()
    bridge.boot_handler.handle(BootEvent(BootAction.BOOT_COMPLETED.value))

    restarted = create_bridge(os_impl)
    assert restarted.on_app_start() is True
    assert [e.method for e in restarted.app_channel.drain()] == [METHOD_ON_NEEDS_RESCHEDULE]

    assert restarted.reschedule_all([flashcard_reminder]) == 1
    assert 1 in timers.armed
    assert restarted.check_needs_reschedule() is False

  def test_wired_bridge_tap_opens_deck(self, timers, flashcard_reminder):
    """create_bridge alone routes a tap on its own notification to openDeck"""
    notifications = InMemoryNotificationManager()
    os_impl = OSImplementations(
      notification_manager_cls=lambda **kwargs: notifications,
      timer_manager_cls=lambda **kwargs: timers,
      config_storage_cls=lambda *args: InMemoryConfigStorage(),
    )
    bridge = create_bridge(os_impl)

    assert bridge.reschedule_all([flashcard_reminder]) == 1
    timers.fire(1)
    notifications.posted[1].tap()

    events = bridge.app_channel.drain()
    assert [(e.method, e.arguments) for e in events] == [(METHOD_OPEN_DECK, {"deckId": "abc"})]

  def test_tap_relaunching_running_app_opens_deck(self, timers):
    notifications = InMemoryNotificationManager()
    os_impl = OSImplementations(
      notification_manager_cls=lambda **kwargs: notifications,
      timer_manager_cls=lambda **kwargs: timers,
      config_storage_cls=lambda *args: InMemoryConfigStorage(),
    )
    bridge = create_bridge(os_impl)
    bridge.on_app_start()

    notifications.relaunch({"notification_type": "flashcard_review", "deck_id": "d9"})

    events = bridge.app_channel.drain()
    assert [(e.method, e.arguments) for e in events] == [(METHOD_OPEN_DECK, {"deckId": "d9"})]

  def test_startup_detects_missed_reboot(self, bridge, probe):
    """a reboot nobody reported is picked up from the changed boot id"""
    assert bridge.on_app_start() is False

    probe._boot_id = "boot-2"

    assert bridge.on_app_start() is True
    assert bridge.on_app_start() is False

  def test_startup_forwards_pending_taps(self, bridge, notifications, storage):
    notifications.launch_extras = {"notification_type": "flashcard_review", "deck_id": "d1"}
    bridge.pending_taps.save(DeepLink(notification_type="flashcard_review", deck_id="d2"))

    bridge.on_app_start()

    events = bridge.app_channel.drain()
    assert [e.arguments["deckId"] for e in events if e.method == METHOD_OPEN_DECK] == [
      "d1",
      "d2",
    ]


def test_bundle_without_timer_manager():
  os_impl = OSImplementations(
    notification_manager_cls=InMemoryNotificationManager,
    config_storage_cls=InMemoryConfigStorage,
  )

  assert os_impl.lifecycle_probe() is None
  with pytest.raises(RuntimeError):
    os_impl.timer_manager(app_name="burbly")
