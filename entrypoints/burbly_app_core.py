"""Shared bootstrap for the packaged Burbly app.

Platform entrypoints pass in their OS-interface bundle; this wires the reminder
bridge, serves the backend (and the built frontend) from a background thread
and opens the webview onto it. The window closing stops the server.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path

import uvicorn
import webview
from fastapi.staticfiles import StaticFiles

from backend.config import AppConfig, configure_logging
from backend.main import create_app
from os_interfaces.base import OSImplementations
from reminders.bridge import ReminderBridge, create_bridge

WEBVIEW_DEBUG = os.getenv("BURBLY_WEBVIEW_DEBUG", "").strip().lower() in {"1", "true"}

configure_logging("DEBUG" if WEBVIEW_DEBUG else None)
logger = logging.getLogger(__name__)

BACKEND_HOST = "127.0.0.1"
STARTUP_TIMEOUT_SECONDS = 10.0


def _build_server(frontend_path: Path, bridge: ReminderBridge) -> uvicorn.Server:
  app = create_app(bridge)
  # API routes are registered first, so the catch-all mount only serves assets
  if (frontend_path / "assets").exists():
    app.mount("/", StaticFiles(directory=frontend_path, html=True), name="frontend")
  config = uvicorn.Config(app, host=BACKEND_HOST, port=AppConfig.PORT, log_level="info")
  return uvicorn.Server(config)


def _serve(server: uvicorn.Server) -> None:
  try:
    server.run()
  except Exception:
    logger.exception("Backend server crashed")


def _wait_until_started(server: uvicorn.Server, thread: threading.Thread) -> bool:
  deadline = time.monotonic() + STARTUP_TIMEOUT_SECONDS
  while time.monotonic() < deadline:
    if server.started:
      return True
    if not thread.is_alive():
      return False
    time.sleep(0.05)
  return False


def run_pywebview_app(
  *, frontend_path: Path, os_impl: OSImplementations, **timer_kwargs
) -> None:
  """Run the app until its window is closed

  Extra keyword arguments go to the platform's timer manager.
  """
  if not frontend_path.exists():
    raise FileNotFoundError(f"Frontend path does not exist: {frontend_path}")

  bridge = create_bridge(os_impl, app_name=AppConfig.APP_NAME, **timer_kwargs)
  server = _build_server(frontend_path, bridge)
  thread = threading.Thread(target=_serve, args=(server,), daemon=True, name="burbly-backend")

  logger.info(f"Starting backend on {BACKEND_HOST}:{AppConfig.PORT}")
  thread.start()
  if not _wait_until_started(server, thread):
    raise RuntimeError("Backend failed to start")

  webview.create_window(
    title="Burbly",
    url=f"http://{BACKEND_HOST}:{AppConfig.PORT}/?v={int(time.time())}",
    width=1200,
    height=800,
    min_size=(800, 600),
  )
  webview.start(debug=WEBVIEW_DEBUG, private_mode=False, storage_path="~/.burbly")

  logger.info("Window closed, stopping backend")
  server.should_exit = True
  thread.join(timeout=5)
