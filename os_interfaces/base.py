"""Abstract base classes for OS-specific interfaces"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class AlarmPermissionError(Exception):
  """Raised when the host refuses to arm an exact alarm."""


class Importance(str, Enum):
  LOW = "low"
  DEFAULT = "default"
  HIGH = "high"


@dataclass(frozen=True)
class NotificationChannelConfig:
  """Static notification channel definition, safe to create repeatedly"""

  channel_id: str
  name: str
  description: str
  importance: Importance = Importance.DEFAULT
  vibration: bool = False
  lights: bool = False
  show_badge: bool = True


@dataclass
class TimerConfig:
  reminder_id: int
  trigger_at_ms: int
  payload: str
  exact: bool = True


# (reminder_id, payload) delivered when an armed timer fires in-process
FireCallback = Callable[[int, Optional[str]], None]


class NotificationManager(ABC):
  """Abstract base class for notification management"""

  @abstractmethod
  def create_channels(self, channels: list[NotificationChannelConfig]) -> None:
    """Register notification channels. Must be idempotent."""
    raise NotImplementedError

  @abstractmethod
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
    """Create and show a notification

    Posting again with the same notification_id replaces the visible
    notification instead of adding a second one.

    Args:
      notification_id: Stable numeric identifier of the notification
      channel_id: Channel the notification is posted on
      title: Notification title
      body: Notification body text
      extras: Deep link data handed back to the app when tapped
      on_clicked: Optional callback when notification is clicked
      big_text: Render the body expanded when the host supports it
    """
    raise NotImplementedError

  @abstractmethod
  async def cancel_notification(self, notification_id: int) -> None:
    raise NotImplementedError

  @abstractmethod
  async def cancel_all(self) -> None:
    raise NotImplementedError

  def consume_launch_extras(self) -> Optional[dict[str, str]]:
    """Deep link extras the app process was launched with, if any"""
    return None

  def watch_relaunches(self, callback: Callable[[dict[str, str]], None]) -> None:
    """Call `callback` with the extras of taps that reach the already running app

    Hosts whose tap callbacks run in-process (on_clicked) need nothing here.
    """


class TimerManager(ABC):
  """Abstract base class for timer/alarm management"""

  on_fire: Optional[FireCallback] = None

  @abstractmethod
  def schedule_timer(self, timer_config: TimerConfig) -> str:
    """Arm a one-shot timer for a reminder.

    Arming a reminder_id that is already armed replaces the previous timer.

    Args:
      timer_config: Reminder id, trigger time, opaque payload and precision

    Returns:
      Host specific timer ID

    Raises:
      AlarmPermissionError: exact precision was requested but refused
    """
    raise NotImplementedError

  @abstractmethod
  def cancel_timer(self, reminder_id: int) -> None:
    """Disarm the timer for a reminder; does nothing if none is armed"""
    raise NotImplementedError

  @abstractmethod
  def can_schedule_exact(self) -> bool:
    raise NotImplementedError


class ConfigStorage(ABC):
  """Abstract base class for configuration file storage"""

  @abstractmethod
  def load(self) -> dict:
    """Load configuration from storage"""
    raise NotImplementedError

  @abstractmethod
  def save(self, config: dict) -> None:
    """Save configuration to storage"""
    raise NotImplementedError

  @abstractmethod
  def get(self, key: str, default: Any = None) -> Any:
    """Get a configuration value by key"""
    raise NotImplementedError

  @abstractmethod
  def set(self, key: str, value: Any) -> None:
    """Set a configuration value"""
    raise NotImplementedError


class LifecycleProbe(ABC):
  """Reports values that change across device reboots and app upgrades"""

  @abstractmethod
  def boot_id(self) -> str:
    raise NotImplementedError

  @abstractmethod
  def app_version(self) -> str:
    raise NotImplementedError


@dataclass
class OSImplementations:
  """Bundle of platform classes injected by the entrypoints

  Programs that only post notifications (the alarm-fired program) leave
  `timer_manager_cls` unset.
  """

  notification_manager_cls: Callable[..., NotificationManager]
  config_storage_cls: Callable[..., ConfigStorage]
  timer_manager_cls: Optional[Callable[..., TimerManager]] = None
  lifecycle_probe_cls: Optional[Callable[..., LifecycleProbe]] = None

  def notification_manager(self, *args, **kwargs) -> NotificationManager:
    return self.notification_manager_cls(*args, **kwargs)

  def timer_manager(self, *args, **kwargs) -> TimerManager:
    if self.timer_manager_cls is None:
      raise RuntimeError("No timer manager configured for this platform bundle")
    return self.timer_manager_cls(*args, **kwargs)

  def config_storage(self, *args, **kwargs) -> ConfigStorage:
    return self.config_storage_cls(*args, **kwargs)

  def lifecycle_probe(self, *args, **kwargs) -> Optional[LifecycleProbe]:
    if self.lifecycle_probe_cls is None:
      return None
    return self.lifecycle_probe_cls(*args, **kwargs)
