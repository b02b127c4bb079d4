"""
Configuration module for the Burbly reminders bridge
"""

import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_flag(name: str, default: str) -> bool:
  return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


class AppConfig:
  """Application configuration settings"""

  # Server settings
  HOST = os.getenv("HOST", "127.0.0.1")
  PORT = int(os.getenv("PORT", "8000"))

  # CORS settings
  CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:5173,http://localhost:5174,http://localhost:8000"
  ).split(",")

  # Rate limiting for the local API
  RATE_LIMIT = os.getenv("RATE_LIMIT", "3600/hour")

  # Identity used for config dirs, unit names and notifications
  APP_NAME = os.getenv("BURBLY_APP_NAME", "burbly")

  # Programs the OS runs on our behalf (Linux)
  ALARM_COMMAND = os.getenv("BURBLY_ALARM_COMMAND", "burbly-alarm-fired")
  BOOT_COMMAND = os.getenv("BURBLY_BOOT_COMMAND", "burbly-boot-event")
  APP_COMMAND = os.getenv("BURBLY_APP_COMMAND", "burbly-app")

  # Whether Linux timers may be armed with 1s accuracy
  EXACT_ALARMS = _env_flag("BURBLY_EXACT_ALARMS", "true")

  # How long the alarm program keeps a notification's click handler alive
  NOTIFICATION_WAIT_SECONDS = float(os.getenv("BURBLY_NOTIFICATION_WAIT_SECONDS", "600"))

  # Logging
  LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str | None = None) -> None:
  """Configure root logging for the bridge programs"""
  logging.basicConfig(level=(level or AppConfig.LOG_LEVEL).upper(), format=LOG_FORMAT)
