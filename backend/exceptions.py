"""
Error model shared by the bridge commands and the HTTP layer
"""

from typing import Literal, Optional, cast
from pydantic import BaseModel, Field


# Where an error originated
ErrorSource = Literal[
  "rate_limiter",  # Rate limiting middleware
  "validation",  # Missing or malformed command arguments
  "reminders",  # Host failed to arm/cancel an alarm or read the flag
  "http",  # HTTP protocol errors
  "unknown",  # Uncategorized errors
]

# Error names reported back to the application
INVALID_ARGS = "INVALID_ARGS"
SCHEDULE_ERROR = "SCHEDULE_ERROR"
CANCEL_ERROR = "CANCEL_ERROR"
RESCHEDULE_ERROR = "RESCHEDULE_ERROR"
CHECK_ERROR = "CHECK_ERROR"

STATUS_BY_SOURCE: dict[str, int] = {
  "rate_limiter": 429,
  "validation": 400,
  "reminders": 500,
  "http": 500,
  "unknown": 500,
}


def get_status_code(source: ErrorSource) -> int:
  """HTTP status for an error source; anything unlisted is a server error"""
  return STATUS_BY_SOURCE.get(source, 500)


class ErrorResponse(BaseModel):
  """JSON body of every failed reminder command"""

  description: str = Field(..., description="Human-readable error message")
  name: str = Field(..., description="Error identifier, e.g. SCHEDULE_ERROR")
  source: ErrorSource = Field(..., description="Where the error originated")
  caused_by: Optional[str] = Field(
    None, description="Class and message of the wrapped host exception"
  )


class AppError(Exception):
  """
  A command failure as reported to the application.

  Bridge commands raise only this; host exceptions are wrapped with
  `from_exception` so the caller sees a stable error name.
  """

  def __init__(
    self,
    description: str,
    name: str,
    source: ErrorSource,
    caused_by: Optional[str] = None,
  ):
    self.description: str = description
    self.name: str = name
    self.source: ErrorSource = source
    self.caused_by: Optional[str] = caused_by
    super().__init__(description)

  def __repr__(self) -> str:
    return f"AppError({self.name!r}, source={self.source!r}, description={self.description!r})"

  def to_response(self) -> ErrorResponse:
    return ErrorResponse(
      description=self.description,
      name=self.name,
      source=cast(ErrorSource, self.source),
      caused_by=self.caused_by,
    )

  @classmethod
  def from_exception(
    cls,
    e: Exception,
    name: str,
    source: ErrorSource,
    context: Optional[str] = None,
  ) -> "AppError":
    """
    Wrap a host exception under `name`

    Args:
        e: The original exception
        name: Error identifier, one of the *_ERROR constants
        source: Where this error originated
        context: Prefix for the description, e.g. "Failed to schedule reminder"
    """
    message = str(e)
    return cls(
      description=f"{context}: {message}" if context else message,
      name=name,
      source=source,
      caused_by=f"{e.__class__.__name__}: {message}",
    )

  @classmethod
  def invalid_argument(cls, description: str) -> "AppError":
    """Missing or malformed command arguments"""
    return cls(description=description, name=INVALID_ARGS, source="validation")
