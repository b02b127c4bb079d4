"""
Show the notification for a fired reminder alarm.

Run by the reminder's systemd timer (see LinuxTimerManager) with the payload
that was attached when the alarm was armed. A tap is handed to the running
app's backend; when no app is running, the deep link is stored and the app is
launched to pick it up at startup.

Usage:
    burbly-alarm-fired --id <reminder_id> <payload>
"""

import argparse
import asyncio
import json
import logging
import subprocess
from typing import Optional
from urllib.error import URLError
from urllib.request import Request, urlopen

from backend.config import AppConfig, configure_logging
from os_interfaces.base import OSImplementations
from reminders.flag_store import PREFS_NAME
from reminders.presenter import DeepLink, NotificationPresenter, PendingTapStore
from reminders.trigger import AlarmFiredEvent, TimerTriggerHandler

logger = logging.getLogger(__name__)

TAP_ENDPOINT = "/api/reminders/notification-tap"


def send_tap_to_running_app(deep_link: DeepLink, timeout: float = 2.0) -> bool:
  """POST the tap to an already running backend; False when none answers"""
  request = Request(
    f"http://127.0.0.1:{AppConfig.PORT}{TAP_ENDPOINT}",
    data=json.dumps(deep_link.to_extras()).encode(),
    headers={"Content-Type": "application/json"},
    method="POST",
  )
  try:
    with urlopen(request, timeout=timeout) as response:
      delivered = response.status == 200
  except (URLError, OSError) as e:
    logger.debug(f"No running app to take the tap: {e}")
    return False
  if delivered:
    logger.info("Delivered notification tap to the running app")
  return delivered


def open_app_on_click(app_command: str) -> None:
  """Launch the app; it picks up the stored deep link at startup"""
  try:
    subprocess.Popen(
      [app_command],
      stdout=subprocess.DEVNULL,
      stderr=subprocess.DEVNULL,
    )
    logger.info("Opened app from notification")
  except Exception as e:
    logger.error(f"Failed to open app: {e}")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(
    description="Post the notification for a fired reminder alarm."
  )
  parser.add_argument("--id", type=int, dest="reminder_id", help="Reminder id of the alarm")
  parser.add_argument("payload", nargs="?", help="Payload attached when the alarm was armed")
  return parser.parse_args(argv)


async def main(
  os_impl: OSImplementations | None = None, argv: Optional[list[str]] = None
) -> bool:
  """Main entrypoint function.

  Returns:
      True if a notification was posted
  """
  args = parse_args(argv)

  if os_impl is None:
    from os_interfaces.linux import LinuxConfigStorage, LinuxNotificationManager

    os_impl = OSImplementations(
      notification_manager_cls=LinuxNotificationManager,
      config_storage_cls=LinuxConfigStorage,
    )

  storage = os_impl.config_storage(AppConfig.APP_NAME, PREFS_NAME)
  pending_taps = PendingTapStore(storage)
  done_event = asyncio.Event()

  def on_tap(deep_link: DeepLink) -> None:
    """Hand the tap to the running app, or store it and launch the app"""
    if not send_tap_to_running_app(deep_link):
      try:
        pending_taps.save(deep_link)
      except Exception:
        logger.exception("Failed to store notification tap")
      open_app_on_click(AppConfig.APP_COMMAND)
    done_event.set()

  presenter = NotificationPresenter(
    os_impl.notification_manager(app_name=AppConfig.APP_NAME), on_tap=on_tap
  )
  presenter.create_channels()

  handler = TimerTriggerHandler(presenter)
  rendered = await handler.handle(
    AlarmFiredEvent(reminder_id=args.reminder_id, payload=args.payload)
  )
  if rendered is None:
    return False

  # Keep the click callback alive for a while, then exit
  logger.info("Waiting for notification interaction...")
  try:
    await asyncio.wait_for(done_event.wait(), timeout=AppConfig.NOTIFICATION_WAIT_SECONDS)
  except asyncio.TimeoutError:
    logger.info("No interaction with notification, exiting")
  return True


def run() -> None:
  configure_logging()
  asyncio.run(main())


if __name__ == "__main__":
  run()
