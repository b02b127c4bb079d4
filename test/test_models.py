"""
Test reminder descriptor model and payload codec
Run with: uv run pytest test/test_models.py
"""

import base64

import pytest
from pydantic import ValidationError

from reminders.models import (
  DEFAULT_MESSAGE,
  DEFAULT_TITLE,
  FALLBACK_NOTIFICATION_ID,
  DecodeError,
  ReminderCategory,
  ReminderDescriptor,
  decode_payload,
  encode_payload,
  fallback_descriptor,
)


def test_descriptor_from_wire_names(flashcard_reminder):
  """Test camelCase wire names populate the model"""
  descriptor = ReminderDescriptor.model_validate(flashcard_reminder)

  assert descriptor.reminder_id == 1
  assert descriptor.category is ReminderCategory.FLASHCARD_REVIEW
  assert descriptor.deck_id == "abc"
  assert descriptor.card_count == 12


def test_descriptor_defaults():
  """Test optional fields fall back to study reminder defaults"""
  descriptor = ReminderDescriptor.model_validate(
    {"reminderId": 7, "scheduledTime": 1000, "title": None, "cardCount": None}
  )

  assert descriptor.notification_type == "study_reminder"
  assert descriptor.title == DEFAULT_TITLE
  assert descriptor.message == DEFAULT_MESSAGE
  assert descriptor.card_count == 0
  assert descriptor.deck_name is None


def test_descriptor_requires_id_and_time():
  with pytest.raises(ValidationError):
    ReminderDescriptor.model_validate({"scheduledTime": 1000})
  with pytest.raises(ValidationError):
    ReminderDescriptor.model_validate({"reminderId": 1})


def test_fractional_scheduled_time_is_truncated():
  descriptor = ReminderDescriptor.model_validate({"reminderId": 1, "scheduledTime": 1500.7})
  assert descriptor.scheduled_time == 1500


def test_unknown_category_resolves_to_study_reminder():
  descriptor = ReminderDescriptor(reminder_id=1, scheduled_time=0, notification_type="weekly")

  assert descriptor.notification_type == "weekly"
  assert descriptor.category is ReminderCategory.STUDY_REMINDER


def test_payload_is_transport_safe(flashcard_reminder):
  """Test payload contains no characters needing shell or systemd quoting"""
  descriptor = ReminderDescriptor.model_validate(
    {**flashcard_reminder, "deckName": 'Deck "quoted" $HOME %h ünïcode'}
  )
  payload = encode_payload(descriptor)

  assert set(payload) <= set(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_="
  )
  assert decode_payload(payload) == descriptor


@pytest.mark.parametrize("payload", [None, "", "!!!", "bm90IGpzb24="])
def test_decode_rejects_garbage(payload):
  """Test missing, non-base64 and non-JSON payloads raise DecodeError"""
  with pytest.raises(DecodeError):
    decode_payload(payload)


def test_decode_rejects_json_without_required_fields():
  payload = base64.urlsafe_b64encode(b'{"title": "no id"}').decode()
  with pytest.raises(DecodeError, match="does not describe a reminder"):
    decode_payload(payload)


def test_fallback_descriptor():
  fallback = fallback_descriptor(None)
  assert fallback.reminder_id == FALLBACK_NOTIFICATION_ID
  assert fallback.category is ReminderCategory.STUDY_REMINDER
  assert fallback.title == DEFAULT_TITLE

  assert fallback_descriptor(42).reminder_id == 42
