"""Android entrypoint for the packaged Burbly app.

Injects Android OS interfaces into the shared pywebview+backend bootstrap.
Alarms are delivered to the in-process receiver registered by
AndroidTimerManager; boots and upgrades are detected at startup by
AndroidLifecycleProbe.
"""

from __future__ import annotations

import os
from pathlib import Path

from entrypoints.burbly_app_core import run_pywebview_app
from os_interfaces.base import OSImplementations
from os_interfaces.android import (
  AndroidConfigStorage,
  AndroidLifecycleProbe,
  AndroidNotificationManager,
  AndroidTimerManager,
)

# On Android we rely on runtime-provided assets; in practice this may be set via env.
FRONTEND_PATH = Path(
  os.environ.get("BURBLY_FRONTEND_PATH", "/data/user/0/com.burbly.app/files/frontend")
)


def main() -> None:
  os_impl = OSImplementations(
    notification_manager_cls=AndroidNotificationManager,
    timer_manager_cls=AndroidTimerManager,
    config_storage_cls=AndroidConfigStorage,
    lifecycle_probe_cls=AndroidLifecycleProbe,
  )
  run_pywebview_app(frontend_path=FRONTEND_PATH, os_impl=os_impl)


if __name__ == "__main__":
  main()
