"""
Timer trigger handling: turns a fired alarm into a posted notification
"""

import logging
from dataclasses import dataclass
from typing import Optional

from reminders.models import (
  DecodeError,
  ReminderDescriptor,
  decode_payload,
  fallback_descriptor,
)
from reminders.presenter import NotificationPresenter, RenderedNotification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlarmFiredEvent:
  reminder_id: Optional[int]
  payload: Optional[str]


def decode_or_fallback(event: AlarmFiredEvent) -> ReminderDescriptor:
  """Decode the event payload; an undecodable payload becomes a generic study reminder"""
  try:
    descriptor = decode_payload(event.payload)
  except DecodeError as e:
    logger.warning(f"Falling back to study reminder for alarm {event.reminder_id}: {e}")
    return fallback_descriptor(event.reminder_id)
  if event.reminder_id is not None and event.reminder_id != descriptor.reminder_id:
    logger.warning(
      f"Alarm id {event.reminder_id} does not match payload id {descriptor.reminder_id}"
    )
  return descriptor


class TimerTriggerHandler:
  """Runs on the OS-triggered path, where nothing can be reported to a caller"""

  def __init__(self, presenter: NotificationPresenter):
    self.presenter = presenter

  async def handle(self, event: AlarmFiredEvent) -> Optional[RenderedNotification]:
    """Present the reminder for a fired alarm. Never raises."""
    logger.debug(f"Alarm received: {event.reminder_id}")
    try:
      descriptor = decode_or_fallback(event)
      rendered = await self.presenter.present(descriptor)
      logger.info(f"Notification shown for reminder {descriptor.reminder_id}")
      return rendered
    except Exception:
      logger.exception(f"Error showing notification for alarm {event.reminder_id}")
      return None
