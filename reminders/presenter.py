"""
Notification presenter: renders reminders onto the per-category channels
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from os_interfaces.base import (
  ConfigStorage,
  Importance,
  NotificationChannelConfig,
  NotificationManager,
)
from reminders.models import ReminderCategory, ReminderDescriptor

logger = logging.getLogger(__name__)

CHANNEL_ID_STUDY_REMINDERS = "study_reminders"
CHANNEL_ID_FLASHCARD_REVIEW = "flashcard_review"
CHANNEL_ID_DAILY_GOALS = "daily_goals"

CHANNELS: dict[ReminderCategory, NotificationChannelConfig] = {
  ReminderCategory.STUDY_REMINDER: NotificationChannelConfig(
    channel_id=CHANNEL_ID_STUDY_REMINDERS,
    name="Study Reminders",
    description="Reminders for scheduled study sessions",
    importance=Importance.HIGH,
    vibration=True,
    lights=True,
    show_badge=True,
  ),
  ReminderCategory.FLASHCARD_REVIEW: NotificationChannelConfig(
    channel_id=CHANNEL_ID_FLASHCARD_REVIEW,
    name="Flashcard Reviews",
    description="Reminders to review due flashcards",
    importance=Importance.HIGH,
    vibration=True,
    lights=True,
    show_badge=True,
  ),
  ReminderCategory.DAILY_GOAL: NotificationChannelConfig(
    channel_id=CHANNEL_ID_DAILY_GOALS,
    name="Daily Goals",
    description="Daily study goal reminders",
    importance=Importance.DEFAULT,
    vibration=False,
    show_badge=True,
  ),
}

FLASHCARD_TITLE = "Time to Review Flashcards!"
DAILY_GOAL_TITLE = "Daily Study Goal"
DEFAULT_DECK_NAME = "Your Deck"

KEY_PENDING_TAP = "pending_notification_tap"


@dataclass(frozen=True)
class DeepLink:
  """Extras attached to a notification and handed back to the app on tap"""

  notification_type: str
  deck_id: Optional[str] = None
  deck_name: Optional[str] = None

  def to_extras(self) -> dict[str, str]:
    return {k: v for k, v in asdict(self).items() if v is not None}

  @classmethod
  def from_extras(cls, extras: dict) -> "DeepLink":
    return cls(
      notification_type=extras.get("notification_type") or "",
      deck_id=extras.get("deck_id"),
      deck_name=extras.get("deck_name"),
    )


@dataclass(frozen=True)
class RenderedNotification:
  category: ReminderCategory
  title: str
  body: str
  deep_link: DeepLink


TapSink = Callable[[DeepLink], None]


def render(descriptor: ReminderDescriptor) -> RenderedNotification:
  """Turn a reminder into the title/body/deep link shown for its category"""
  category = descriptor.category
  match category:
    case ReminderCategory.FLASHCARD_REVIEW:
      deck_name = descriptor.deck_name or DEFAULT_DECK_NAME
      return RenderedNotification(
        category=category,
        title=FLASHCARD_TITLE,
        body=f'{descriptor.card_count} cards in "{deck_name}" are due for review',
        deep_link=DeepLink(
          notification_type=category.value,
          deck_id=descriptor.deck_id or "",
          deck_name=deck_name,
        ),
      )
    case ReminderCategory.DAILY_GOAL:
      return RenderedNotification(
        category=category,
        title=DAILY_GOAL_TITLE,
        body=descriptor.message,
        deep_link=DeepLink(notification_type=category.value),
      )
    case _:
      return RenderedNotification(
        category=ReminderCategory.STUDY_REMINDER,
        title=descriptor.title,
        body=descriptor.message,
        deep_link=DeepLink(notification_type=ReminderCategory.STUDY_REMINDER.value),
      )


class NotificationPresenter:
  def __init__(self, manager: NotificationManager, on_tap: Optional[TapSink] = None):
    self.manager = manager
    self.on_tap = on_tap

  def create_channels(self) -> None:
    self.manager.create_channels(list(CHANNELS.values()))

  async def show(
    self,
    category: ReminderCategory,
    title: str,
    body: str,
    identifier: int,
    deep_link: Optional[DeepLink] = None,
  ) -> None:
    """Post a notification on the channel for `category`, replacing any with the same identifier"""
    channel = CHANNELS[category]
    deep_link = deep_link or DeepLink(notification_type=category.value)

    on_clicked = None
    if self.on_tap is not None:
      sink = self.on_tap

      def on_clicked():
        sink(deep_link)

    await self.manager.create_notification(
      notification_id=identifier,
      channel_id=channel.channel_id,
      title=title,
      body=body,
      extras=deep_link.to_extras(),
      on_clicked=on_clicked,
      big_text=category is ReminderCategory.FLASHCARD_REVIEW,
    )
    logger.debug(f"Notification shown successfully: {category.value}")

  async def present(self, descriptor: ReminderDescriptor) -> RenderedNotification:
    rendered = render(descriptor)
    await self.show(
      rendered.category,
      rendered.title,
      rendered.body,
      descriptor.reminder_id,
      rendered.deep_link,
    )
    return rendered

  async def cancel(self, identifier: int) -> None:
    await self.manager.cancel_notification(identifier)

  async def cancel_all(self) -> None:
    await self.manager.cancel_all()


class PendingTapStore:
  """Holds a tapped notification's deep link until the app process reads it

  Used where the notification is posted by a different process than the app.
  """

  def __init__(self, storage: ConfigStorage):
    self.storage = storage

  def save(self, deep_link: DeepLink) -> None:
    self.storage.set(KEY_PENDING_TAP, deep_link.to_extras())

  def take(self) -> Optional[DeepLink]:
    extras = self.storage.get(KEY_PENDING_TAP)
    if not extras:
      return None
    self.storage.set(KEY_PENDING_TAP, None)
    return DeepLink.from_extras(extras)
