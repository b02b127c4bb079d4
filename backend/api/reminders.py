"""
Reminder API endpoints
The application's command surface for arming, cancelling and recovering alarms
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from reminders.bridge import AppEvent, ReminderBridge

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


class CamelModel(BaseModel):
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleRequest(CamelModel):
  """Arguments of the schedule command; required fields are checked by the bridge"""

  reminder_id: Optional[int] = None
  notification_type: Optional[str] = None
  title: Optional[str] = None
  message: Optional[str] = None
  scheduled_time: Optional[int] = None
  deck_name: Optional[str] = None
  card_count: Optional[int] = None
  deck_id: Optional[str] = None


class CancelRequest(CamelModel):
  reminder_id: Optional[int] = None


class RescheduleAllRequest(BaseModel):
  # Entries stay untyped so one malformed reminder does not reject the batch;
  # the bridge skips and counts them
  reminders: Optional[List[Any]] = None


class CommandResult(BaseModel):
  success: bool


class RescheduleAllResult(BaseModel):
  rescheduled: int


class NeedsRescheduleResult(CamelModel):
  needs_reschedule: bool


class CanScheduleExactResult(CamelModel):
  can_schedule_exact: bool


class NotificationTapRequest(BaseModel):
  notification_type: Optional[str] = None
  deck_id: Optional[str] = None
  deck_name: Optional[str] = None


class NotificationTapResult(BaseModel):
  handled: bool


class AppEventModel(BaseModel):
  method: str
  arguments: Dict[str, Any] = Field(default_factory=dict)


def get_bridge(request: Request) -> ReminderBridge:
  return request.app.state.bridge


@router.post("/schedule", response_model=CommandResult)
def schedule_reminder(body: ScheduleRequest, request: Request) -> CommandResult:
  """
  Arm (or replace) the alarm for a reminder
  """
  bridge = get_bridge(request)
  return CommandResult(success=bridge.schedule(**body.model_dump()))


@router.post("/cancel", response_model=CommandResult)
def cancel_reminder(body: CancelRequest, request: Request) -> CommandResult:
  """
  Disarm the alarm for a reminder
  """
  return CommandResult(success=get_bridge(request).cancel(body.reminder_id))


@router.post("/reschedule-all", response_model=RescheduleAllResult)
def reschedule_all(body: RescheduleAllRequest, request: Request) -> RescheduleAllResult:
  """
  Re-arm every reminder the application still holds
  """
  count = get_bridge(request).reschedule_all(body.reminders)
  return RescheduleAllResult(rescheduled=count)


@router.post(
  "/check-needs-reschedule",
  response_model=NeedsRescheduleResult,
  response_model_by_alias=True,
)
def check_needs_reschedule(request: Request) -> NeedsRescheduleResult:
  """
  Report and clear the reschedule flag
  """
  needs = get_bridge(request).check_needs_reschedule()
  return NeedsRescheduleResult(needs_reschedule=needs)


@router.get(
  "/can-schedule-exact",
  response_model=CanScheduleExactResult,
  response_model_by_alias=True,
)
def can_schedule_exact(request: Request) -> CanScheduleExactResult:
  return CanScheduleExactResult(can_schedule_exact=get_bridge(request).can_schedule_exact())


@router.get("/events", response_model=List[AppEventModel])
def drain_events(request: Request) -> List[AppEventModel]:
  """
  Messages for the application (onNeedsReschedule, openDeck), oldest first
  """
  events: List[AppEvent] = get_bridge(request).app_channel.drain()
  return [AppEventModel(method=e.method, arguments=e.arguments) for e in events]


@router.post("/notification-tap", response_model=NotificationTapResult)
def notification_tap(body: NotificationTapRequest, request: Request) -> NotificationTapResult:
  """
  Forward the extras of a tapped notification
  """
  handled = get_bridge(request).handle_notification_tap(body.model_dump(exclude_none=True))
  return NotificationTapResult(handled=handled)
