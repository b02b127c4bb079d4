"""
Bridge command surface between application code and the OS alarm services

Commands are synchronous and independent. The application owns the reminder
list; the bridge only arms/cancels timers and reports the reschedule flag.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from backend.exceptions import (
  AppError,
  CANCEL_ERROR,
  CHECK_ERROR,
  RESCHEDULE_ERROR,
  SCHEDULE_ERROR,
)
from os_interfaces.base import (
  AlarmPermissionError,
  ConfigStorage,
  LifecycleProbe,
  OSImplementations,
  TimerConfig,
  TimerManager,
)
from reminders.boot import BootEventHandler, detect_missed_events
from reminders.flag_store import PREFS_NAME, RescheduleFlagStore
from reminders.models import ReminderCategory, ReminderDescriptor, encode_payload
from reminders.presenter import DeepLink, NotificationPresenter, PendingTapStore
from reminders.trigger import AlarmFiredEvent, TimerTriggerHandler

logger = logging.getLogger(__name__)

METHOD_ON_NEEDS_RESCHEDULE = "onNeedsReschedule"
METHOD_OPEN_DECK = "openDeck"


@dataclass
class AppEvent:
  """A message from the bridge to the application"""

  method: str
  arguments: dict[str, Any] = field(default_factory=dict)


class AppChannel:
  """Queue of AppEvents the application drains"""

  def __init__(self):
    self._events: deque[AppEvent] = deque()
    self._lock = threading.Lock()

  def invoke(self, method: str, arguments: Optional[dict[str, Any]] = None) -> None:
    with self._lock:
      self._events.append(AppEvent(method=method, arguments=arguments or {}))
    logger.debug(f"Queued {method} for the application")

  def drain(self) -> list[AppEvent]:
    with self._lock:
      events = list(self._events)
      self._events.clear()
    return events


class ReminderBridge:
  def __init__(
    self,
    timer_manager: TimerManager,
    presenter: NotificationPresenter,
    flag_store: RescheduleFlagStore,
    app_channel: Optional[AppChannel] = None,
    lifecycle_probe: Optional[LifecycleProbe] = None,
    pending_taps: Optional[PendingTapStore] = None,
  ):
    self.timer_manager = timer_manager
    self.presenter = presenter
    self.flag_store = flag_store
    self.app_channel = app_channel or AppChannel()
    self.lifecycle_probe = lifecycle_probe
    self.pending_taps = pending_taps
    self.boot_handler = BootEventHandler(flag_store)

    # taps on notifications this process posted, and taps that relaunch it
    if self.presenter.on_tap is None:
      self.presenter.on_tap = self.deliver_tap
    self.presenter.manager.watch_relaunches(self.handle_notification_tap)

    self.presenter.create_channels()

  # ---- commands ----
  def schedule(
    self,
    reminder_id: Optional[int] = None,
    scheduled_time: Optional[int] = None,
    notification_type: Optional[str] = None,
    title: Optional[str] = None,
    message: Optional[str] = None,
    deck_name: Optional[str] = None,
    card_count: Optional[int] = None,
    deck_id: Optional[str] = None,
  ) -> bool:
    """
    Arm the timer for a reminder, replacing any timer armed for the same id

    Raises:
        AppError: INVALID_ARGS when reminder_id or scheduled_time is missing or
          malformed, SCHEDULE_ERROR when the host fails to arm the timer
    """
    if reminder_id is None or scheduled_time is None:
      raise AppError.invalid_argument("Missing required arguments")
    try:
      descriptor = ReminderDescriptor(
        reminder_id=reminder_id,
        scheduled_time=scheduled_time,
        notification_type=notification_type,
        title=title,
        message=message,
        deck_name=deck_name,
        card_count=card_count,
        deck_id=deck_id,
      )
    except ValidationError as e:
      raise AppError.invalid_argument(f"Invalid reminder: {e}") from e

    try:
      self._arm(descriptor)
    except Exception as e:
      logger.error(f"Error scheduling reminder {reminder_id}: {e}")
      raise AppError.from_exception(
        e, name=SCHEDULE_ERROR, source="reminders", context="Failed to schedule reminder"
      ) from e
    logger.info(f"Scheduled reminder: {reminder_id} at {scheduled_time}")
    return True

  def cancel(self, reminder_id: Optional[int] = None) -> bool:
    """Disarm the timer for a reminder; cancelling an unarmed id is not an error"""
    if reminder_id is None:
      raise AppError.invalid_argument("Missing reminderId")
    try:
      self.timer_manager.cancel_timer(reminder_id)
    except Exception as e:
      logger.error(f"Error cancelling reminder {reminder_id}: {e}")
      raise AppError.from_exception(
        e, name=CANCEL_ERROR, source="reminders", context="Failed to cancel reminder"
      ) from e
    logger.info(f"Cancelled reminder: {reminder_id}")
    return True

  def reschedule_all(self, reminders: Optional[Iterable[Mapping[str, Any]]]) -> int:
    """
    Arm every reminder in the list, skipping entries that are malformed or fail

    Args:
        reminders: descriptors in wire form (camelCase keys)

    Returns:
        Number of reminders armed
    """
    if reminders is None:
      raise AppError.invalid_argument("Missing reminders list")
    try:
      success_count = 0
      for reminder in reminders:
        try:
          self._arm(ReminderDescriptor.model_validate(reminder))
          success_count += 1
        except Exception as e:
          reminder_id = reminder.get("reminderId") if isinstance(reminder, Mapping) else None
          logger.error(f"Error rescheduling reminder {reminder_id}: {e}")
    except Exception as e:
      logger.error(f"Error rescheduling all: {e}")
      raise AppError.from_exception(
        e, name=RESCHEDULE_ERROR, source="reminders", context="Failed to reschedule"
      ) from e
    logger.info(f"Rescheduled {success_count} reminders")
    return success_count

  def check_needs_reschedule(self) -> bool:
    """Read-and-clear the reschedule flag"""
    try:
      needs = self.flag_store.get_and_clear()
    except Exception as e:
      logger.error(f"Error checking reschedule: {e}")
      raise AppError.from_exception(e, name=CHECK_ERROR, source="reminders") from e
    logger.debug(f"Needs reschedule: {needs}")
    return needs

  def can_schedule_exact(self) -> bool:
    try:
      return self.timer_manager.can_schedule_exact()
    except Exception as e:
      raise AppError.from_exception(e, name=CHECK_ERROR, source="reminders") from e

  # ---- application lifecycle ----
  def on_app_start(self) -> bool:
    """
    Startup hook for the application process

    Feeds any reboot/upgrade missed while the app was not running into the
    boot handler, forwards a pending notification tap, and tells the
    application to re-issue its reminders if the flag was set.

    Returns:
        Whether `onNeedsReschedule` was sent
    """
    if self.lifecycle_probe is not None:
      try:
        for event in detect_missed_events(self.lifecycle_probe, self.flag_store.storage):
          self.boot_handler.handle(event)
      except Exception:
        logger.exception("Lifecycle probe failed")

    self.forward_pending_taps()

    needs = self.flag_store.get_and_clear()
    if needs:
      logger.info("Notifying application that alarms need rescheduling")
      self.app_channel.invoke(METHOD_ON_NEEDS_RESCHEDULE)
    return needs

  def handle_notification_tap(self, extras: Mapping[str, Any]) -> bool:
    """Send openDeck to the application for a tapped flashcard notification"""
    deep_link = DeepLink.from_extras(dict(extras))
    logger.debug(
      f"Handling notification intent: type={deep_link.notification_type}, deckId={deep_link.deck_id}"
    )
    if (
      deep_link.notification_type == ReminderCategory.FLASHCARD_REVIEW.value
      and deep_link.deck_id
    ):
      self.app_channel.invoke(METHOD_OPEN_DECK, {"deckId": deep_link.deck_id})
      logger.info(f"Sent openDeck command for deck: {deep_link.deck_id}")
      return True
    return False

  def deliver_tap(self, deep_link: DeepLink) -> None:
    self.handle_notification_tap(deep_link.to_extras())

  def forward_pending_taps(self) -> None:
    extras = self.presenter.manager.consume_launch_extras()
    if extras:
      self.handle_notification_tap(extras)
    if self.pending_taps is not None:
      deep_link = self.pending_taps.take()
      if deep_link is not None:
        self.handle_notification_tap(deep_link.to_extras())

  def fire_handler(self):
    """Callback for TimerManager.on_fire on hosts that deliver alarms in-process"""
    trigger = TimerTriggerHandler(self.presenter)

    def on_fire(reminder_id: Optional[int], payload: Optional[str]) -> None:
      asyncio.run(trigger.handle(AlarmFiredEvent(reminder_id=reminder_id, payload=payload)))

    return on_fire

  # ---- helpers ----
  def _arm(self, descriptor: ReminderDescriptor) -> str:
    timer_config = TimerConfig(
      reminder_id=descriptor.reminder_id,
      trigger_at_ms=descriptor.scheduled_time,
      payload=encode_payload(descriptor),
      exact=self.timer_manager.can_schedule_exact(),
    )
    try:
      return self.timer_manager.schedule_timer(timer_config)
    except AlarmPermissionError as e:
      logger.warning(f"Fell back to inexact alarm for {descriptor.reminder_id}: {e}")
      timer_config.exact = False
      return self.timer_manager.schedule_timer(timer_config)


def create_bridge(
  os_impl: OSImplementations,
  app_name: str = "burbly",
  app_channel: Optional[AppChannel] = None,
  storage: Optional[ConfigStorage] = None,
  **timer_kwargs,
) -> ReminderBridge:
  """Wire a ReminderBridge from platform implementations"""
  storage = storage or os_impl.config_storage(app_name, PREFS_NAME)
  presenter = NotificationPresenter(os_impl.notification_manager(app_name=app_name))
  bridge = ReminderBridge(
    timer_manager=os_impl.timer_manager(app_name=app_name, **timer_kwargs),
    presenter=presenter,
    flag_store=RescheduleFlagStore(storage),
    app_channel=app_channel,
    lifecycle_probe=os_impl.lifecycle_probe(),
    pending_taps=PendingTapStore(storage),
  )
  bridge.timer_manager.on_fire = bridge.fire_handler()
  return bridge
