"""
In-memory OS interfaces for testing and headless development
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .base import (
  AlarmPermissionError,
  ConfigStorage,
  FireCallback,
  LifecycleProbe,
  NotificationChannelConfig,
  NotificationManager,
  TimerConfig,
  TimerManager,
)

logger = logging.getLogger(__name__)


@dataclass
class PostedNotification:
  notification_id: int
  channel_id: str
  title: str
  body: str
  extras: Dict[str, str] = field(default_factory=dict)
  on_clicked: Optional[Callable] = None
  big_text: bool = False

  def tap(self) -> None:
    """Simulate the user tapping the notification"""
    if self.on_clicked:
      self.on_clicked()


class InMemoryNotificationManager(NotificationManager):
  """Notification manager that keeps posted notifications in a dict"""

  def __init__(self, app_name: str = "burbly"):
    self.app_name = app_name
    self.channels: Dict[str, NotificationChannelConfig] = {}
    self.posted: Dict[int, PostedNotification] = {}
    self.launch_extras: Optional[Dict[str, str]] = None
    self._relaunch_callback: Optional[Callable[[dict[str, str]], None]] = None

  def create_channels(self, channels: list[NotificationChannelConfig]) -> None:
    for channel in channels:
      self.channels[channel.channel_id] = channel

  async def create_notification(
    self,
    notification_id: int,
    channel_id: str,
    title: str,
    body: str,
    extras: Optional[dict[str, str]] = None,
    on_clicked: Optional[Callable] = None,
    big_text: bool = False,
  ) -> None:
    if channel_id not in self.channels:
      raise ValueError(f"Unknown notification channel: {channel_id}")
    self.posted[notification_id] = PostedNotification(
      notification_id=notification_id,
      channel_id=channel_id,
      title=title,
      body=body,
      extras=dict(extras or {}),
      on_clicked=on_clicked,
      big_text=big_text,
    )
    logger.debug(f"Posted notification {notification_id} on {channel_id}")

  async def cancel_notification(self, notification_id: int) -> None:
    self.posted.pop(notification_id, None)

  async def cancel_all(self) -> None:
    self.posted.clear()

  def consume_launch_extras(self) -> Optional[dict[str, str]]:
    extras, self.launch_extras = self.launch_extras, None
    return extras

  def watch_relaunches(self, callback: Callable[[dict[str, str]], None]) -> None:
    self._relaunch_callback = callback

  def relaunch(self, extras: Dict[str, str]) -> None:
    """Simulate a tap intent reaching the already running app"""
    if self._relaunch_callback:
      self._relaunch_callback(dict(extras))


class InMemoryTimerManager(TimerManager):
  """Timer manager holding one armed TimerConfig per reminder id

  `exact_allowed` mirrors the host permission state; `refuse_exact` makes
  exact arming raise AlarmPermissionError like a revoked permission would.
  """

  def __init__(
    self,
    app_name: str = "burbly",
    exact_allowed: bool = True,
    refuse_exact: bool = False,
    on_fire: Optional[FireCallback] = None,
  ):
    self.app_name = app_name
    self.exact_allowed = exact_allowed
    self.refuse_exact = refuse_exact
    self.on_fire = on_fire
    self.armed: Dict[int, TimerConfig] = {}
    self.history: List[TimerConfig] = []

  def schedule_timer(self, timer_config: TimerConfig) -> str:
    if timer_config.exact and self.refuse_exact:
      raise AlarmPermissionError("exact alarms are not permitted")
    self.armed[timer_config.reminder_id] = timer_config
    self.history.append(timer_config)
    return f"memory-{timer_config.reminder_id}"

  def cancel_timer(self, reminder_id: int) -> None:
    self.armed.pop(reminder_id, None)

  def can_schedule_exact(self) -> bool:
    return self.exact_allowed

  def fire(self, reminder_id: int) -> TimerConfig:
    """Deliver an armed timer as the host would at its trigger time"""
    timer_config = self.armed.pop(reminder_id)
    if self.on_fire:
      self.on_fire(timer_config.reminder_id, timer_config.payload)
    return timer_config

  def reboot(self) -> None:
    """Drop every armed timer, as a device reboot does"""
    self.armed.clear()


class InMemoryConfigStorage(ConfigStorage):
  """Dict backed configuration storage"""

  def __init__(self, app_name: str = "burbly", config_name: str = "prefs"):
    self.app_name = app_name
    self.config_name = config_name
    self._config: Dict[str, Any] = {}

  def load(self) -> dict:
    return self._config.copy()

  def save(self, config: dict) -> None:
    self._config = config.copy()

  def get(self, key: str, default: Any = None) -> Any:
    return self._config.get(key, default)

  def set(self, key: str, value: Any) -> None:
    self._config[key] = value


class StaticLifecycleProbe(LifecycleProbe):
  def __init__(self, boot_id: str = "boot-0", app_version: str = "0.1.0"):
    self._boot_id = boot_id
    self._app_version = app_version

  def boot_id(self) -> str:
    return self._boot_id

  def app_version(self) -> str:
    return self._app_version
