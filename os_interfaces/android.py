"""Android-specific implementations of OS interfaces."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Optional

from jnius import JavaException, PythonJavaClass, autoclass, java_method  # type: ignore

from .base import (
  AlarmPermissionError,
  ConfigStorage,
  FireCallback,
  Importance,
  LifecycleProbe,
  NotificationChannelConfig,
  NotificationManager,
  TimerConfig,
  TimerManager,
)

logger = logging.getLogger(__name__)


# --- PyJNIus handles ---
PythonActivity = autoclass("org.kivy.android.PythonActivity")
Intent = autoclass("android.content.Intent")
IntentFilter = autoclass("android.content.IntentFilter")
PendingIntent = autoclass("android.app.PendingIntent")
NotificationManagerJava = autoclass("android.app.NotificationManager")
NotificationChannel = autoclass("android.app.NotificationChannel")
BuildVersion = autoclass("android.os.Build$VERSION")
NotificationCompatBuilder = autoclass("androidx.core.app.NotificationCompat$Builder")
NotificationCompatBigTextStyle = autoclass(
  "androidx.core.app.NotificationCompat$BigTextStyle"
)
NotificationCompat = autoclass("androidx.core.app.NotificationCompat")
AlarmManagerJava = autoclass("android.app.AlarmManager")
AndroidRDrawable = autoclass("android.R$drawable")
Context = autoclass("android.content.Context")
JavaSystem = autoclass("java.lang.System")
SystemClock = autoclass("android.os.SystemClock")

ACTION_ALARM_FIRE = "com.burbly.app.ALARM_FIRED"
EXTRA_NOTIFICATION_ID = "notification_id"
EXTRA_PAYLOAD = "payload"
LAUNCH_EXTRA_KEYS = ("notification_type", "deck_id", "deck_name")

IMPORTANCE_BY_LEVEL = {
  Importance.LOW: NotificationManagerJava.IMPORTANCE_LOW,
  Importance.DEFAULT: NotificationManagerJava.IMPORTANCE_DEFAULT,
  Importance.HIGH: NotificationManagerJava.IMPORTANCE_HIGH,
}

SDK_M = 23
SDK_O = 26
SDK_S = 31


def _context():
  return PythonActivity.mActivity.getApplicationContext()


def _flags(base: int | None = None) -> int:
  flag_immutable = PendingIntent.FLAG_IMMUTABLE
  flag_update = PendingIntent.FLAG_UPDATE_CURRENT
  return (base or 0) | flag_immutable | flag_update


class _AlarmReceiver(PythonJavaClass):
  __javainterfaces__ = ["android/content/BroadcastReceiver"]
  __javacontext__ = "app"

  def __init__(self, timer_manager: "AndroidTimerManager"):
    super().__init__()
    self.timer_manager = timer_manager

  @java_method("(Landroid/content/Context;Landroid/content/Intent;)V")
  def onReceive(self, _context, intent):
    reminder_id = intent.getIntExtra(EXTRA_NOTIFICATION_ID, -1)
    payload = intent.getStringExtra(EXTRA_PAYLOAD)
    callback = self.timer_manager.on_fire

    def run():
      try:
        if callback is None:
          logger.warning("Alarm %s fired with no handler attached", reminder_id)
          return
        callback(None if reminder_id < 0 else reminder_id, payload)
      except Exception:
        logger.exception("Failed to handle alarm %s", reminder_id)

    threading.Thread(target=run, daemon=True).start()


_alarm_receiver: _AlarmReceiver | None = None


def _ensure_alarm_receiver(ctx, timer_manager: "AndroidTimerManager") -> _AlarmReceiver:
  global _alarm_receiver
  if _alarm_receiver is None:
    _alarm_receiver = _AlarmReceiver(timer_manager)
    intent_filter = IntentFilter()
    intent_filter.addAction(ACTION_ALARM_FIRE)
    ctx.registerReceiver(_alarm_receiver, intent_filter)
  else:
    _alarm_receiver.timer_manager = timer_manager
  return _alarm_receiver


def _is_security_exception(e: JavaException) -> bool:
  return "SecurityException" in (getattr(e, "classname", None) or str(e))


class AndroidNotificationManager(NotificationManager):
  """Android notification manager using PyJNIus NotificationCompat."""

  def __init__(self, app_name: str = "burbly"):
    self.app_name = app_name
    self.ctx = _context()
    self.manager = self.ctx.getSystemService(Context.NOTIFICATION_SERVICE)
    self.importance: dict[str, Importance] = {}

  def create_channels(self, channels: list[NotificationChannelConfig]) -> None:
    for config in channels:
      self.importance[config.channel_id] = config.importance
    if BuildVersion.SDK_INT < SDK_O:
      return
    for config in channels:
      channel = NotificationChannel(
        config.channel_id, config.name, IMPORTANCE_BY_LEVEL[config.importance]
      )
      channel.setDescription(config.description)
      channel.enableVibration(config.vibration)
      channel.enableLights(config.lights)
      channel.setShowBadge(config.show_badge)
      self.manager.createNotificationChannel(channel)

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
    # Taps relaunch the activity with the extras; on_clicked has no Android hook.
    click_intent = Intent(self.ctx, PythonActivity)
    click_intent.setFlags(Intent.FLAG_ACTIVITY_NEW_TASK | Intent.FLAG_ACTIVITY_CLEAR_TOP)
    for key, value in (extras or {}).items():
      click_intent.putExtra(key, value)
    click_pi = PendingIntent.getActivity(
      self.ctx, notification_id, click_intent, _flags()
    )

    high = self.importance.get(channel_id) is Importance.HIGH
    icon = self.ctx.getApplicationInfo().icon or AndroidRDrawable.ic_dialog_info
    builder = (
      NotificationCompatBuilder(self.ctx, channel_id)
      .setSmallIcon(icon)
      .setContentTitle(title)
      .setContentText(body)
      .setAutoCancel(True)
      .setPriority(
        NotificationCompat.PRIORITY_HIGH if high else NotificationCompat.PRIORITY_DEFAULT
      )
      .setContentIntent(click_pi)
    )
    if high:
      builder = builder.setDefaults(NotificationCompat.DEFAULT_ALL)
    if big_text:
      builder = builder.setStyle(NotificationCompatBigTextStyle().bigText(body))

    self.manager.notify(notification_id, builder.build())
    logger.info("Notification %s created on %s", notification_id, channel_id)

  async def cancel_notification(self, notification_id: int) -> None:
    self.manager.cancel(notification_id)

  async def cancel_all(self) -> None:
    self.manager.cancelAll()

  def watch_relaunches(self, callback: Callable[[dict[str, str]], None]) -> None:
    """Forward taps that bring the running activity to the front (onNewIntent)"""
    from android import activity  # type: ignore  # provided by python-for-android

    def on_new_intent(intent):
      PythonActivity.mActivity.setIntent(intent)
      extras = self.consume_launch_extras()
      if extras:
        callback(extras)

    activity.bind(on_new_intent=on_new_intent)

  def consume_launch_extras(self) -> Optional[dict[str, str]]:
    intent = PythonActivity.mActivity.getIntent()
    if intent is None or intent.getStringExtra("notification_type") is None:
      return None
    extras = {}
    for key in LAUNCH_EXTRA_KEYS:
      value = intent.getStringExtra(key)
      if value is not None:
        extras[key] = value
      intent.removeExtra(key)
    return extras


class AndroidTimerManager(TimerManager):
  """Android timer manager using AlarmManager, one PendingIntent per reminder id."""

  def __init__(self, app_name: str = "burbly", on_fire: Optional[FireCallback] = None):
    self.app_name = app_name
    self.on_fire = on_fire
    self.ctx = _context()
    self.alarm_manager = self.ctx.getSystemService(Context.ALARM_SERVICE)
    _ensure_alarm_receiver(self.ctx, self)

  def _alarm_intent(self):
    intent = Intent(ACTION_ALARM_FIRE)
    intent.setPackage(self.ctx.getPackageName())
    return intent

  def schedule_timer(self, timer_config: TimerConfig) -> str:
    intent = self._alarm_intent()
    intent.putExtra(EXTRA_NOTIFICATION_ID, timer_config.reminder_id)
    intent.putExtra(EXTRA_PAYLOAD, timer_config.payload)

    # same request code + same intent filter => FLAG_UPDATE_CURRENT replaces
    pending_intent = PendingIntent.getBroadcast(
      self.ctx, timer_config.reminder_id, intent, _flags()
    )
    trigger_at = timer_config.trigger_at_ms
    rtc = AlarmManagerJava.RTC_WAKEUP

    if BuildVersion.SDK_INT < SDK_M:
      self.alarm_manager.set(rtc, trigger_at, pending_intent)
      logger.info("Scheduled basic alarm for %s", timer_config.reminder_id)
    elif timer_config.exact:
      try:
        self.alarm_manager.setExactAndAllowWhileIdle(rtc, trigger_at, pending_intent)
      except JavaException as e:
        if _is_security_exception(e):
          raise AlarmPermissionError(str(e)) from e
        raise
      logger.info("Scheduled exact alarm for %s", timer_config.reminder_id)
    else:
      self.alarm_manager.setAndAllowWhileIdle(rtc, trigger_at, pending_intent)
      logger.info("Scheduled inexact alarm for %s", timer_config.reminder_id)

    return f"alarm-{timer_config.reminder_id}"

  def cancel_timer(self, reminder_id: int) -> None:
    pending_intent = PendingIntent.getBroadcast(
      self.ctx,
      reminder_id,
      self._alarm_intent(),
      PendingIntent.FLAG_NO_CREATE | PendingIntent.FLAG_IMMUTABLE,
    )
    if pending_intent is None:
      logger.debug("No alarm armed for %s", reminder_id)
      return
    self.alarm_manager.cancel(pending_intent)
    pending_intent.cancel()
    logger.info("Cancelled alarm %s", reminder_id)

  def can_schedule_exact(self) -> bool:
    if BuildVersion.SDK_INT >= SDK_S:
      return bool(self.alarm_manager.canScheduleExactAlarms())
    return True


class AndroidConfigStorage(ConfigStorage):
  """SharedPreferences-backed storage; values are stored as JSON strings"""

  def __init__(self, app_name: str, config_name: str):
    self.ctx = _context()
    self.prefs = self.ctx.getSharedPreferences(config_name, Context.MODE_PRIVATE)

  def load(self) -> dict:
    entries = self.prefs.getAll()
    return {key: self.get(key) for key in entries.keySet().toArray()}

  def save(self, config: dict) -> None:
    editor = self.prefs.edit()
    editor.clear()
    for key, value in config.items():
      editor.putString(key, json.dumps(value))
    if not editor.commit():
      raise OSError(f"Failed to commit preferences {list(config)}")

  def get(self, key: str, default: Any = None) -> Any:
    raw = self.prefs.getString(key, None)
    if raw is None:
      return default
    return json.loads(raw)

  def set(self, key: str, value: Any) -> None:
    if not self.prefs.edit().putString(key, json.dumps(value)).commit():
      raise OSError(f"Failed to commit preference {key}")


class AndroidLifecycleProbe(LifecycleProbe):
  """Boot time (minute resolution) and last package update time"""

  def __init__(self):
    self.ctx = _context()

  def boot_id(self) -> str:
    boot_ms = JavaSystem.currentTimeMillis() - SystemClock.elapsedRealtime()
    return str(round(boot_ms / 60_000))

  def app_version(self) -> str:
    info = self.ctx.getPackageManager().getPackageInfo(self.ctx.getPackageName(), 0)
    return str(info.lastUpdateTime)
