"""OS interface module - platform-specific implementations

Since we build separate executables for each platform,
import the appropriate implementation directly in the main entry points:
- entrypoints/burbly_app_linux.py imports from os_interfaces.linux
- entrypoints/burbly_app_android.py imports from os_interfaces.android
- tests and headless runs use os_interfaces.memory
"""

from .base import (
  AlarmPermissionError,
  ConfigStorage,
  LifecycleProbe,
  NotificationManager,
  OSImplementations,
  TimerConfig,
  TimerManager,
)

__all__ = [
  "AlarmPermissionError",
  "ConfigStorage",
  "LifecycleProbe",
  "NotificationManager",
  "OSImplementations",
  "TimerConfig",
  "TimerManager",
]
