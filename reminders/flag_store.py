"""
Persisted "reschedule needed" flag

Set when a boot or app upgrade may have dropped armed timers; consumed once by
the application, which then re-arms every reminder it still holds.
"""

import logging
import threading
from enum import Enum

from os_interfaces.base import ConfigStorage

logger = logging.getLogger(__name__)

PREFS_NAME = "burbly_notification_prefs"
KEY_NEEDS_RESCHEDULE = "needs_reschedule"


class RescheduleState(str, Enum):
  CLEAN = "clean"
  PENDING_RESCHEDULE = "pending_reschedule"


class RescheduleFlagStore:
  """Narrow accessor over the single persisted boolean.

  Read-and-clear runs under a process-wide lock. It is not atomic against the
  process dying between the read and the clear; the flag is then consumed
  again on the next start, which only re-arms timers that are already armed.
  """

  _lock = threading.Lock()

  def __init__(self, storage: ConfigStorage, key: str = KEY_NEEDS_RESCHEDULE):
    self.storage = storage
    self.key = key

  def get(self) -> bool:
    return bool(self.storage.get(self.key, False))

  @property
  def state(self) -> RescheduleState:
    return RescheduleState.PENDING_RESCHEDULE if self.get() else RescheduleState.CLEAN

  def set_true(self) -> None:
    with self._lock:
      self.storage.set(self.key, True)
    logger.debug("Marked alarms for rescheduling")

  def get_and_clear(self) -> bool:
    """Return the current value and reset it to False"""
    with self._lock:
      needs = self.get()
      if needs:
        self.storage.set(self.key, False)
    return needs

  mark_needs_reschedule = set_true
  consume_needs_reschedule = get_and_clear
