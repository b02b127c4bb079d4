"""Reminder alarms: scheduling bridge, boot recovery and notification presentation"""

from .boot import BootAction, BootEvent, BootEventHandler, transition
from .bridge import AppChannel, AppEvent, ReminderBridge, create_bridge
from .flag_store import RescheduleFlagStore, RescheduleState
from .models import (
  DecodeError,
  ReminderCategory,
  ReminderDescriptor,
  decode_payload,
  encode_payload,
)
from .presenter import DeepLink, NotificationPresenter
from .trigger import AlarmFiredEvent, TimerTriggerHandler

__all__ = [
  "AlarmFiredEvent",
  "AppChannel",
  "AppEvent",
  "BootAction",
  "BootEvent",
  "BootEventHandler",
  "DecodeError",
  "DeepLink",
  "NotificationPresenter",
  "ReminderBridge",
  "ReminderCategory",
  "ReminderDescriptor",
  "RescheduleFlagStore",
  "RescheduleState",
  "TimerTriggerHandler",
  "create_bridge",
  "decode_payload",
  "encode_payload",
  "transition",
]
