"""
ASGI middleware: uniform error bodies and request logging for the reminder API
"""

import logging
import time
import traceback

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from backend.exceptions import INVALID_ARGS, AppError, get_status_code

logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware:
  """Turn anything raised below it into an ErrorResponse body"""

  def __init__(self, app: ASGIApp):
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send):
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    started = False

    async def track_start(message: Message):
      nonlocal started
      if message["type"] == "http.response.start":
        started = True
      await send(message)

    try:
      await self.app(scope, receive, track_start)
    except Exception as e:
      if started:
        logger.error(f"Error after response started for {scope['path']}: {e}")
        return
      await error_handler(e)(scope, receive, send)


def _describe_validation(exc: RequestValidationError) -> str:
  problems = []
  for err in exc.errors():
    field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    problems.append(f"{field or 'body'}: {err.get('msg')}")
  return "Invalid arguments: " + "; ".join(problems)


def _as_app_error(exc: Exception) -> tuple[AppError, int]:
  """Map an exception onto (AppError, HTTP status)"""
  match exc:
    case AppError() as e:
      return e, get_status_code(e.source)

    case RateLimitExceeded() as e:
      logger.warning(f"Rate limit exceeded: {e}")
      error = AppError(
        description="Too many reminder commands. Please try again later.",
        name="RATE_LIMIT_EXCEEDED",
        source="rate_limiter",
        caused_by=str(e),
      )
      return error, 429

    case HTTPException() as e:
      error = AppError(description=str(e.detail), name=f"HTTP_{e.status_code}", source="http")
      return error, e.status_code

    case RequestValidationError() as e:
      error = AppError(
        description=_describe_validation(e),
        name=INVALID_ARGS,
        source="validation",
        caused_by=f"{e.__class__.__name__}: {e}",
      )
      return error, 400

    case ValueError() as e:
      error = AppError.invalid_argument(str(e))
      error.caused_by = f"{e.__class__.__name__}: {e}"
      return error, 400

    case _:
      logger.error(f"Unhandled error: {exc}", exc_info=exc)
      error = AppError(
        description=str(exc),
        name="INTERNAL_ERROR",
        source="unknown",
        caused_by=f"{exc.__class__.__name__}: {exc}\n\nTraceback:\n{traceback.format_exc()}",
      )
      return error, 500


def error_handler(exc: Exception) -> JSONResponse:
  """Render any exception as an ErrorResponse JSON body"""
  error, status_code = _as_app_error(exc)
  logger.error(f"[{error.source}] {error.name} ({status_code}): {error.description}")
  return JSONResponse(status_code=status_code, content=error.to_response().model_dump())


class LoggingMiddleware:
  """Log one line per request and one per response with its duration"""

  def __init__(self, app: ASGIApp):
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send):
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    started_at = time.perf_counter()
    method, path = scope["method"], scope["path"]
    query = scope["query_string"].decode()
    target = f"{path}?{query}" if query else path
    logger.info(f"Request: {method} {target}")

    status_code = None

    async def capture_status(message: Message):
      nonlocal status_code
      if message["type"] == "http.response.start":
        status_code = message["status"]
      await send(message)

    await self.app(scope, receive, capture_status)

    elapsed = time.perf_counter() - started_at
    logger.info(f"Response: {status_code} for {method} {path} in {elapsed:.3f}s")


def setup_logging_middleware(app):
  """
  Add request logging, wrapped in correlation ids so every line of a
  request carries the same id
  """
  app.add_middleware(LoggingMiddleware)
  app.add_middleware(CorrelationIdMiddleware)
