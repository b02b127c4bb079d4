"""
Reminder descriptor model and the opaque payload attached to armed timers
"""

import base64
import binascii
import logging
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Study Reminder"
DEFAULT_MESSAGE = "Time to study!"
FALLBACK_NOTIFICATION_ID = 1001


class ReminderCategory(str, Enum):
  STUDY_REMINDER = "study_reminder"
  FLASHCARD_REVIEW = "flashcard_review"
  DAILY_GOAL = "daily_goal"

  @classmethod
  def resolve(cls, value: str) -> "ReminderCategory":
    """Map a category string to a category, degrading unknown ones to study reminders"""
    try:
      return cls(value)
    except ValueError:
      logger.warning(f"Unknown notification type: {value}")
      return cls.STUDY_REMINDER


class DecodeError(ValueError):
  """A timer payload could not be turned back into a ReminderDescriptor"""


class ReminderDescriptor(BaseModel):
  """A reminder as supplied by the application (camelCase on the wire)"""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

  reminder_id: int
  notification_type: str = ReminderCategory.STUDY_REMINDER.value
  title: str = DEFAULT_TITLE
  message: str = DEFAULT_MESSAGE
  scheduled_time: int  # epoch milliseconds
  deck_name: Optional[str] = None
  card_count: int = 0
  deck_id: Optional[str] = None

  @field_validator("notification_type", "title", "message", "card_count", mode="before")
  @classmethod
  def null_means_default(cls, v, info):
    """Explicit nulls from the application fall back to the field default"""
    if v is None:
      return cls.model_fields[info.field_name].default
    return v

  @field_validator("scheduled_time", mode="before")
  @classmethod
  def truncate_fractional_millis(cls, v):
    if isinstance(v, float):
      return int(v)
    return v

  @property
  def category(self) -> ReminderCategory:
    return ReminderCategory.resolve(self.notification_type)


def encode_payload(descriptor: ReminderDescriptor) -> str:
  """Serialize a descriptor to a transport safe string (URL-safe base64 of JSON)"""
  raw = descriptor.model_dump_json(by_alias=True)
  return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_payload(payload: Optional[str]) -> ReminderDescriptor:
  """
  Decode a payload produced by `encode_payload`

  Raises:
      DecodeError: payload is missing, not base64, not JSON, or fails validation
  """
  if not payload:
    raise DecodeError("Missing timer payload")
  try:
    raw = base64.urlsafe_b64decode(payload.encode("ascii")).decode("utf-8")
  except (binascii.Error, UnicodeError, ValueError) as e:
    raise DecodeError(f"Payload is not valid base64: {e}") from e
  try:
    return ReminderDescriptor.model_validate_json(raw)
  except ValidationError as e:
    raise DecodeError(f"Payload does not describe a reminder: {e}") from e


def fallback_descriptor(reminder_id: Optional[int] = None) -> ReminderDescriptor:
  """Generic study reminder shown when a fired timer's payload is unusable"""
  return ReminderDescriptor(
    reminder_id=reminder_id if reminder_id is not None else FALLBACK_NOTIFICATION_ID,
    notification_type=ReminderCategory.STUDY_REMINDER.value,
    title=DEFAULT_TITLE,
    message=DEFAULT_MESSAGE,
    scheduled_time=int(time.time() * 1000),
  )
