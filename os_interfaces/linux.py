"""Linux implementations: desktop-notifier notifications, systemd user timers, YAML prefs"""

import fcntl
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timedelta
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import yaml
from desktop_notifier import DesktopNotifier, Urgency
from platformdirs import user_config_dir
from pystemd.dbuslib import DBus
from pystemd.systemd1 import Manager

from .base import (
  ConfigStorage,
  Importance,
  LifecycleProbe,
  NotificationChannelConfig,
  NotificationManager,
  TimerConfig,
  TimerManager,
)

logger = logging.getLogger(__name__)

URGENCY_BY_IMPORTANCE = {
  Importance.LOW: Urgency.Low,
  Importance.DEFAULT: Urgency.Normal,
  Importance.HIGH: Urgency.Critical,
}

EXACT_ACCURACY = "1s"
INEXACT_ACCURACY = "15min"
PAST_DUE_DELAY_SECONDS = 5

BOOT_ID_PATH = Path("/proc/sys/kernel/random/boot_id")


class LinuxNotificationManager(NotificationManager):
  """Linux notification manager using desktop-notifier"""

  def __init__(self, app_name: str):
    self.notifier = DesktopNotifier(app_name=app_name)
    self.channels: dict[str, NotificationChannelConfig] = {}
    # reminder notification id -> desktop-notifier identifier
    self._posted: dict[int, str] = {}

  def create_channels(self, channels: list[NotificationChannelConfig]) -> None:
    # desktop notifications have no channels; keep them for the urgency lookup
    self.channels.update({c.channel_id: c for c in channels})

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
    """Post through the session's notification server

    Desktop notifications have no caller-chosen ids, so the previous
    notification for notification_id is cleared before posting.
    """
    channel = self.channels.get(channel_id)
    urgency = URGENCY_BY_IMPORTANCE[channel.importance] if channel else Urgency.Normal
    try:
      await self.cancel_notification(notification_id)
      identifier = await self.notifier.send(
        title=title,
        message=body,
        urgency=urgency,
        on_clicked=on_clicked,
      )
    except Exception as e:
      logger.error(f"Failed to send notification {notification_id}: {e}")
      return
    self._posted[notification_id] = str(identifier)
    logger.info(f"Notification {notification_id} sent on {channel_id}: {title}")

  async def cancel_notification(self, notification_id: int) -> None:
    identifier = self._posted.pop(notification_id, None)
    if identifier is not None:
      await self.notifier.clear(identifier)

  async def cancel_all(self) -> None:
    self._posted.clear()
    await self.notifier.clear_all()


def _service_unit(description: str, exec_start: str, wanted_by: Optional[str] = None) -> str:
  lines = [
    "[Unit]",
    f"Description={description}",
    "",
    "[Service]",
    "Type=oneshot",
    f"ExecStart={exec_start}",
  ]
  if wanted_by:
    lines += ["", "[Install]", f"WantedBy={wanted_by}"]
  return "\n".join(lines) + "\n"


def _timer_unit(description: str, service: str, on_calendar: str, accuracy: str) -> str:
  # Persistent catches up on a fire time missed while the machine was off
  return "\n".join(
    [
      "[Unit]",
      f"Description={description}",
      "",
      "[Timer]",
      f"OnCalendar={on_calendar}",
      f"AccuracySec={accuracy}",
      "Persistent=true",
      "WakeSystem=true",
      f"Unit={service}",
      "",
      "[Install]",
      "WantedBy=timers.target",
    ]
  ) + "\n"


class LinuxTimerManager(TimerManager):
  """One systemd user .service/.timer pair per reminder id

  The service runs `command --id <reminder_id> <payload>` when the timer
  elapses, so alarms survive the app exiting.
  """

  def __init__(
    self,
    app_name: str,
    command: str = "burbly-alarm-fired",
    exact_allowed: bool = True,
  ):
    self.app_name = app_name
    self.command = command
    self.exact_allowed = exact_allowed

  @contextmanager
  def _systemd(self) -> Iterator[Manager]:
    with DBus(user_mode=True) as bus:
      manager = Manager(bus=bus)
      manager.load()
      yield manager

  def _user_unit_dir(self) -> Path:
    return Path.home() / ".config/systemd/user"

  def _install_unit(self, filename: str, content: str) -> None:
    unit_dir = self._user_unit_dir()
    unit_dir.mkdir(parents=True, exist_ok=True)
    (unit_dir / filename).write_text(content)

  def _unit_name(self, reminder_id: int) -> str:
    return f"{self.app_name}-reminder-{reminder_id}"

  def schedule_timer(self, timer_config: TimerConfig) -> str:
    """Write the reminder's units and (re)start its timer"""
    base = self._unit_name(timer_config.reminder_id)
    fire_at = datetime.fromtimestamp(timer_config.trigger_at_ms / 1000)
    now = datetime.now()
    if fire_at <= now:
      # a fresh timer whose OnCalendar is already past never elapses
      logger.warning(
        f"Reminder {timer_config.reminder_id} is past due ({fire_at}), firing shortly"
      )
      fire_at = now + timedelta(seconds=PAST_DUE_DELAY_SECONDS)
    on_calendar = fire_at.strftime("%Y-%m-%d %H:%M:%S")
    accuracy = EXACT_ACCURACY if timer_config.exact else INEXACT_ACCURACY
    exec_start = f"{self.command} --id {timer_config.reminder_id} {timer_config.payload}"
    timer = f"{base}.timer".encode()

    with self._systemd() as m:
      self._install_unit(
        f"{base}.service",
        _service_unit(f"{self.app_name} reminder {timer_config.reminder_id}", exec_start),
      )
      self._install_unit(
        f"{base}.timer",
        _timer_unit(
          f"{self.app_name} reminder {timer_config.reminder_id} timer",
          f"{base}.service",
          on_calendar,
          accuracy,
        ),
      )
      m.Manager.Reload()
      m.Manager.EnableUnitFiles([timer], False, True)
      # restart so an already running timer picks up the new OnCalendar
      m.Manager.RestartUnit(timer, b"replace")

    logger.info(
      f"Armed reminder {timer_config.reminder_id} for {on_calendar} "
      f"({'exact' if timer_config.exact else 'inexact'})"
    )
    return base

  def cancel_timer(self, reminder_id: int) -> None:
    base = self._unit_name(reminder_id)
    unit_dir = self._user_unit_dir()
    if not (unit_dir / f"{base}.timer").exists():
      logger.debug(f"No timer armed for reminder {reminder_id}")
      return

    timer = f"{base}.timer".encode()
    with self._systemd() as m:
      try:
        m.Manager.StopUnit(timer, b"replace")
      except Exception as e:
        logger.warning(f"Could not stop {base}.timer: {e}")
      m.Manager.DisableUnitFiles([timer], False)
      for suffix in (".timer", ".service"):
        (unit_dir / f"{base}{suffix}").unlink(missing_ok=True)
      m.Manager.Reload()
    logger.info(f"Disarmed reminder {reminder_id}")

  def can_schedule_exact(self) -> bool:
    return self.exact_allowed

  def install_boot_hook(self, command: str, args: list[str]) -> None:
    """Enable a user unit that runs `command` at every session start; idempotent"""
    service = f"{self.app_name}-boot-event.service"

    with self._systemd() as m:
      installed = [path for path, _state in m.Manager.ListUnitFiles()]
      if any(path.endswith(service.encode()) for path in installed):
        logger.info("Boot hook unit already present")
      else:
        self._install_unit(
          service,
          _service_unit(
            f"{self.app_name} boot hook",
            " ".join([command, *args]),
            wanted_by="default.target",
          ),
        )
        m.Manager.Reload()
      m.Manager.EnableUnitFiles([service.encode()], False, True)


class LinuxConfigStorage(ConfigStorage):
  """YAML file under the user config dir

  The alarm and boot programs write the same file from other processes,
  so every read goes to disk and writes replace the file atomically.
  """

  def __init__(self, app_name: str, config_name: str):
    self.config_dir = Path(user_config_dir(app_name, ensure_exists=True))
    self.config_file = self.config_dir / f"{config_name}.yaml"
    self.lock_file = self.config_dir / f"{config_name}.yaml.lock"

  def load(self) -> dict:
    if not self.config_file.exists():
      return {}
    try:
      with open(self.config_file, "r") as f:
        return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
      logger.error(f"Failed to read {self.config_file}: {e}")
      return {}

  def save(self, config: dict) -> None:
    tmp = self.config_file.with_name(self.config_file.name + ".tmp")
    try:
      self.config_dir.mkdir(parents=True, exist_ok=True)
      with open(tmp, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False)
      os.replace(tmp, self.config_file)
    except OSError as e:
      logger.error(f"Failed to write {self.config_file}: {e}")
      raise
    logger.debug(f"Saved {self.config_file}")

  def get(self, key: str, default: Any = None) -> Any:
    return self.load().get(key, default)

  @contextmanager
  def _locked(self) -> Iterator[None]:
    """Exclusive lock across processes on a sidecar .lock file"""
    self.config_dir.mkdir(parents=True, exist_ok=True)
    with open(self.lock_file, "w") as lock_fd:
      fcntl.flock(lock_fd, fcntl.LOCK_EX)
      try:
        yield
      finally:
        fcntl.flock(lock_fd, fcntl.LOCK_UN)

  def set(self, key: str, value: Any) -> None:
    with self._locked():
      config = self.load()
      config[key] = value
      self.save(config)


class LinuxLifecycleProbe(LifecycleProbe):
  """Boot id from the kernel, app version from the installed distribution"""

  def __init__(self, distribution: str = "burbly"):
    self.distribution = distribution

  def boot_id(self) -> str:
    return BOOT_ID_PATH.read_text().strip()

  def app_version(self) -> str:
    try:
      return version(self.distribution)
    except PackageNotFoundError:
      return "unknown"
