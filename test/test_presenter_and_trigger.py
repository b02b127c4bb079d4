"""
Test notification rendering/posting and the timer-fired path
"""

from unittest.mock import AsyncMock

import pytest

from reminders.models import ReminderDescriptor, encode_payload
from reminders.presenter import (
  CHANNEL_ID_DAILY_GOALS,
  CHANNEL_ID_FLASHCARD_REVIEW,
  CHANNEL_ID_STUDY_REMINDERS,
  CHANNELS,
  DeepLink,
  PendingTapStore,
  render,
)
from reminders.trigger import AlarmFiredEvent, TimerTriggerHandler
from os_interfaces.base import Importance


def _descriptor(**overrides) -> ReminderDescriptor:
  fields = {"reminderId": 5, "scheduledTime": 0}
  fields.update(overrides)
  return ReminderDescriptor.model_validate(fields)


class TestRender:
  def test_flashcard_review(self, flashcard_reminder):
    rendered = render(ReminderDescriptor.model_validate(flashcard_reminder))

    assert rendered.title == "Time to Review Flashcards!"
    assert rendered.body == '12 cards in "Spanish" are due for review'
    assert rendered.deep_link == DeepLink(
      notification_type="flashcard_review", deck_id="abc", deck_name="Spanish"
    )

  def test_flashcard_review_defaults(self):
    rendered = render(_descriptor(notificationType="flashcard_review"))

    assert rendered.body == '0 cards in "Your Deck" are due for review'
    assert rendered.deep_link.deck_id == ""

  def test_daily_goal_uses_message_as_progress(self):
    rendered = render(_descriptor(notificationType="daily_goal", message="3 of 5 sessions"))

    assert rendered.title == "Daily Study Goal"
    assert rendered.body == "3 of 5 sessions"

  def test_unknown_type_renders_as_study_reminder(self):
    rendered = render(_descriptor(notificationType="mystery", title="Hi", message="There"))

    assert rendered.category.value == "study_reminder"
    assert (rendered.title, rendered.body) == ("Hi", "There")


class TestNotificationPresenter:
  def test_channels_created(self, notifications, presenter):
    assert set(notifications.channels) == {
      CHANNEL_ID_STUDY_REMINDERS,
      CHANNEL_ID_FLASHCARD_REVIEW,
      CHANNEL_ID_DAILY_GOALS,
    }
    assert notifications.channels[CHANNEL_ID_DAILY_GOALS].importance is Importance.DEFAULT
    assert notifications.channels[CHANNEL_ID_DAILY_GOALS].vibration is False

  def test_channels_idempotent(self, notifications, presenter):
    presenter.create_channels()
    assert len(notifications.channels) == len(CHANNELS)

  @pytest.mark.asyncio
  async def test_present_posts_on_category_channel(self, notifications, presenter):
    await presenter.present(_descriptor(notificationType="daily_goal"))

    posted = notifications.posted[5]
    assert posted.channel_id == CHANNEL_ID_DAILY_GOALS
    assert posted.extras == {"notification_type": "daily_goal"}

  @pytest.mark.asyncio
  async def test_same_identifier_replaces(self, notifications, presenter):
    await presenter.present(_descriptor(title="first"))
    await presenter.present(_descriptor(title="second"))

    assert list(notifications.posted) == [5]
    assert notifications.posted[5].title == "second"

  @pytest.mark.asyncio
  async def test_cancel_and_cancel_all(self, notifications, presenter):
    await presenter.present(_descriptor(reminderId=1))
    await presenter.present(_descriptor(reminderId=2))
    await presenter.present(_descriptor(reminderId=3))

    await presenter.cancel(1)
    assert set(notifications.posted) == {2, 3}

    await presenter.cancel_all()
    assert notifications.posted == {}

  @pytest.mark.asyncio
  async def test_tap_forwards_deep_link(self, notifications, presenter, taps, flashcard_reminder):
    await presenter.present(ReminderDescriptor.model_validate(flashcard_reminder))

    notifications.posted[1].tap()

    assert taps == [
      DeepLink(notification_type="flashcard_review", deck_id="abc", deck_name="Spanish")
    ]


class TestTimerTriggerHandler:
  @pytest.mark.asyncio
  async def test_fired_alarm_posts_notification(self, notifications, presenter, flashcard_reminder):
    payload = encode_payload(ReminderDescriptor.model_validate(flashcard_reminder))

    rendered = await TimerTriggerHandler(presenter).handle(AlarmFiredEvent(1, payload))

    assert rendered is not None
    assert notifications.posted[1].channel_id == CHANNEL_ID_FLASHCARD_REVIEW
    assert notifications.posted[1].extras["deck_id"] == "abc"

  @pytest.mark.asyncio
  async def test_bad_payload_falls_back_to_study_reminder(self, notifications, presenter):
    await TimerTriggerHandler(presenter).handle(AlarmFiredEvent(9, "%%%garbage"))

    posted = notifications.posted[9]
    assert posted.channel_id == CHANNEL_ID_STUDY_REMINDERS
    assert posted.title == "Study Reminder"
    assert posted.body == "Time to study!"

  @pytest.mark.asyncio
  async def test_missing_id_and_payload_uses_default_id(self, notifications, presenter):
    await TimerTriggerHandler(presenter).handle(AlarmFiredEvent(None, None))
    assert 1001 in notifications.posted

  @pytest.mark.asyncio
  async def test_presenter_failure_is_swallowed(self, presenter, caplog):
    presenter.manager.create_notification = AsyncMock(side_effect=RuntimeError("no bus"))

    rendered = await TimerTriggerHandler(presenter).handle(AlarmFiredEvent(1, None))

    assert rendered is None
    assert "Error showing notification" in caplog.text


def test_pending_tap_store_round_trip(storage):
  store = PendingTapStore(storage)
  assert store.take() is None

  store.save(DeepLink(notification_type="flashcard_review", deck_id="abc"))

  assert store.take() == DeepLink(notification_type="flashcard_review", deck_id="abc")
  assert store.take() is None
