"""Linux entrypoint for the packaged Burbly app (pywebview shell + backend).

This entrypoint injects Linux OS interface implementations and installs the
user unit that records session starts for reminder recovery.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.error import URLError
from urllib.request import urlopen

from backend.config import AppConfig
from entrypoints.burbly_app_core import run_pywebview_app
from os_interfaces.base import OSImplementations
from os_interfaces.linux import (
  LinuxConfigStorage,
  LinuxLifecycleProbe,
  LinuxNotificationManager,
  LinuxTimerManager,
)

logger = logging.getLogger(__name__)

# Desktop build substitutes this path via Nix; in dev it may be overridden.
FRONTEND_PATH = Path(os.environ.get("BURBLY_FRONTEND_PATH", "@FRONTEND_PATH@"))


def _install_boot_hook() -> None:
  try:
    LinuxTimerManager(app_name=AppConfig.APP_NAME).install_boot_hook(
      command=AppConfig.BOOT_COMMAND, args=["boot"]
    )
    logger.info("Boot hook configured")
  except Exception as e:
    logger.error(f"Failed to install boot hook: {e}")


def _already_running() -> bool:
  """Another instance holds the backend port and answers /health"""
  try:
    with urlopen(f"http://127.0.0.1:{AppConfig.PORT}/health", timeout=1) as response:
      return response.status == 200
  except (URLError, OSError):
    return False


def main() -> None:
  if _already_running():
    logger.info("Burbly is already running")
    return
  _install_boot_hook()
  os_impl = OSImplementations(
    notification_manager_cls=LinuxNotificationManager,
    timer_manager_cls=LinuxTimerManager,
    config_storage_cls=LinuxConfigStorage,
    lifecycle_probe_cls=LinuxLifecycleProbe,
  )
  run_pywebview_app(
    frontend_path=FRONTEND_PATH,
    os_impl=os_impl,
    command=AppConfig.ALARM_COMMAND,
    exact_allowed=AppConfig.EXACT_ALARMS,
  )


if __name__ == "__main__":
  main()
