"""
Record a device boot or app upgrade so the app re-arms its reminders.

Installed as a systemd user unit that runs at session start, and meant to be
called from package post-install hooks with `package-replaced`.

Usage:
    burbly-boot-event [boot|package-replaced]
"""

import argparse
import logging
from typing import Optional

from backend.config import AppConfig, configure_logging
from os_interfaces.base import ConfigStorage
from reminders.boot import BootAction, BootEvent, BootEventHandler
from reminders.flag_store import PREFS_NAME, RescheduleFlagStore

logger = logging.getLogger(__name__)

ACTIONS = {
  "boot": BootAction.BOOT_COMPLETED,
  "package-replaced": BootAction.MY_PACKAGE_REPLACED,
}


def main(storage: Optional[ConfigStorage] = None, argv: Optional[list[str]] = None) -> int:
  parser = argparse.ArgumentParser(
    description="Mark reminders for rescheduling after a boot or app upgrade."
  )
  parser.add_argument("action", nargs="?", choices=sorted(ACTIONS), default="boot")
  args = parser.parse_args(argv)

  try:
    if storage is None:
      from os_interfaces.linux import LinuxConfigStorage

      storage = LinuxConfigStorage(AppConfig.APP_NAME, PREFS_NAME)
  except Exception:
    logger.exception("Could not open reminder preferences")
    return 1

  handler = BootEventHandler(RescheduleFlagStore(storage))
  state = handler.handle(BootEvent(ACTIONS[args.action].value))
  return 0 if state is not None else 1


def run() -> None:
  configure_logging()
  raise SystemExit(main())


if __name__ == "__main__":
  run()
