"""
Burbly backend - FastAPI server exposing the reminder bridge
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from asgi_correlation_id import CorrelationIdFilter
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.middleware import SlowAPIMiddleware

from backend.api.reminders import router as reminders_router
from backend.config import AppConfig
from backend.middleware import ErrorHandlingMiddleware, error_handler, setup_logging_middleware
from reminders.bridge import ReminderBridge

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _add_correlation_filter() -> None:
  for handler in logging.root.handlers:
    handler.addFilter(CorrelationIdFilter(uuid_length=4))


async def _validation_error_handler(request: Request, exc: RequestValidationError):
  return error_handler(exc)


def create_app(bridge: ReminderBridge, run_startup_hook: bool = True) -> FastAPI:
  """
  Build the FastAPI app around a wired bridge

  Args:
    bridge: ReminderBridge built from the platform's OS implementations
    run_startup_hook: Call bridge.on_app_start() when the app starts
  """

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    logger.info("Starting Burbly backend...")
    if run_startup_hook:
      needs = bridge.on_app_start()
      logger.info(f"Startup reschedule check: {needs}")
    yield
    logger.info("Shutting down Burbly backend...")

  _add_correlation_filter()

  app = FastAPI(
    title="Burbly Reminders",
    description="Alarm scheduling and notification bridge for the Burbly app",
    version=VERSION,
    lifespan=lifespan,
  )
  app.state.bridge = bridge
  app.add_exception_handler(RequestValidationError, _validation_error_handler)

  # innermost
  app.add_middleware(ErrorHandlingMiddleware)

  app.add_middleware(
    CORSMiddleware,
    allow_origins=AppConfig.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )

  limiter = Limiter(key_func=get_remote_address, default_limits=[AppConfig.RATE_LIMIT])
  app.state.limiter = limiter
  app.add_middleware(SlowAPIMiddleware)

  # outermost
  setup_logging_middleware(app)

  app.include_router(reminders_router)

  @app.get("/health")
  async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "burbly-backend", "version": VERSION}

  return app
