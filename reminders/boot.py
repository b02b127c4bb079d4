"""
Boot / package-replaced handling

Both signals only mark the reschedule flag. Timers are re-armed later by the
application, which owns the reminder list.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from os_interfaces.base import ConfigStorage, LifecycleProbe
from reminders.flag_store import RescheduleFlagStore, RescheduleState

logger = logging.getLogger(__name__)

KEY_LAST_BOOT_ID = "last_boot_id"
KEY_LAST_APP_VERSION = "last_app_version"


class BootAction(str, Enum):
  BOOT_COMPLETED = "android.intent.action.BOOT_COMPLETED"
  MY_PACKAGE_REPLACED = "android.intent.action.MY_PACKAGE_REPLACED"


@dataclass(frozen=True)
class BootEvent:
  action: str


def transition(event: BootEvent, state: RescheduleState) -> RescheduleState:
  """Next reschedule state after `event`; unknown actions leave it unchanged"""
  if event.action in (BootAction.BOOT_COMPLETED.value, BootAction.MY_PACKAGE_REPLACED.value):
    return RescheduleState.PENDING_RESCHEDULE
  return state


class BootEventHandler:
  def __init__(self, flag_store: RescheduleFlagStore):
    self.flag_store = flag_store

  def handle(self, event: BootEvent) -> RescheduleState | None:
    """Apply a boot-type event. Never raises; returns None when it failed."""
    logger.info(f"Boot event received: {event.action}")
    try:
      current = self.flag_store.state
      new_state = transition(event, current)
      if new_state is RescheduleState.PENDING_RESCHEDULE:
        self.flag_store.set_true()
        logger.info("Marked alarms for rescheduling")
      else:
        logger.debug(f"Ignoring action {event.action}")
      return new_state
    except Exception:
      logger.exception("Error marking for reschedule")
      return None


def detect_missed_events(probe: LifecycleProbe, storage: ConfigStorage) -> list[BootEvent]:
  """
  Compare the current boot id and app version with the last recorded ones

  Used where the process cannot be woken at boot or upgrade time. The first
  call only records the values.

  Returns:
      A BootEvent for each of reboot / upgrade that happened since the last call
  """
  events = []
  boot_id = probe.boot_id()
  app_version = probe.app_version()

  last_boot_id = storage.get(KEY_LAST_BOOT_ID)
  if last_boot_id is not None and last_boot_id != boot_id:
    events.append(BootEvent(BootAction.BOOT_COMPLETED.value))
  last_version = storage.get(KEY_LAST_APP_VERSION)
  if last_version is not None and last_version != app_version:
    events.append(BootEvent(BootAction.MY_PACKAGE_REPLACED.value))

  if last_boot_id != boot_id:
    storage.set(KEY_LAST_BOOT_ID, boot_id)
  if last_version != app_version:
    storage.set(KEY_LAST_APP_VERSION, app_version)
  return events
