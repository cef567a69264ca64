"""
Subscription Endpoints

GET  /api/subscriptions?student_id=...           - A student's subscriptions, newest first
GET  /api/subscriptions/{id}                     - One subscription
POST /api/subscriptions/{id}/assign-teacher      - Assign the teacher of a paid subscription
GET  /api/subscriptions/{id}/sessions            - The subscription's sessions, by start time
POST /api/subscriptions/{id}/approve-week        - Teacher approves a submitted week
POST /api/subscriptions/{id}/decline-week        - Teacher declines a submitted week
GET  /api/subscriptions/{id}/weeks               - List the subscription's weeks
POST /api/subscriptions/{id}/weeks               - Student starts a new draft week
PUT  /api/subscriptions/{id}/weeks/{week_index}  - The week with this index, created if missing
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from app.api.dependencies import get_session_lifecycle, get_subscription_service, get_week_workflow
from app.schemas import SessionRecord, SubscriptionRecord, WeekRecord
from app.services.session_lifecycle import SessionLifecycle
from app.services.subscriptions import SubscriptionService
from app.services.week_workflow import WeekWorkflow

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


class WeekDecisionRequest(BaseModel):
    week_id: str = Field(..., min_length=1)


class DeclineWeekRequest(WeekDecisionRequest):
    reason: Optional[str] = Field(None, max_length=1000)


class ScheduledSessionSummary(BaseModel):
    id: str
    start_at: datetime
    end_at: datetime
    zoom_join_url: Optional[str] = None


class ApproveWeekResponse(BaseModel):
    success: bool = True
    status: str
    sessions_created: int = Field(..., ge=0)
    sessions: List[ScheduledSessionSummary]


class DeclineWeekResponse(BaseModel):
    success: bool = True
    status: str
    week_id: str


class CreateWeekRequest(BaseModel):
    week_index: int = Field(..., ge=0, description="Ordinal of the week within the subscription")


class WeeksResponse(BaseModel):
    data: List[WeekRecord]


class SubscriptionsResponse(BaseModel):
    data: List[SubscriptionRecord]


class AssignTeacherRequest(BaseModel):
    teacher_id: str = Field(..., min_length=1)


class SessionsResponse(BaseModel):
    data: List[SessionRecord]


@router.get("", response_model=SubscriptionsResponse)
async def list_subscriptions(
    student_id: str = Query(..., min_length=1, description="Student profile"),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionsResponse(data=await service.list_subscriptions(student_id))


@router.get("/{subscription_id}", response_model=SubscriptionRecord)
async def get_subscription(
    subscription_id: str = Path(...),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return await service.get_subscription(subscription_id)


@router.post("/{subscription_id}/assign-teacher", response_model=SubscriptionRecord)
async def assign_teacher(
    request: AssignTeacherRequest,
    subscription_id: str = Path(...),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Assign the teacher and move the subscription to teacher_assigned.

    Raises:
        400: Subscription not paid yet, or already active or finished
        404: Subscription not found
    """
    return await service.assign_teacher(subscription_id, request.teacher_id)


@router.get("/{subscription_id}/sessions", response_model=SessionsResponse)
async def list_sessions(
    subscription_id: str = Path(...),
    lifecycle: SessionLifecycle = Depends(get_session_lifecycle),
):
    return SessionsResponse(data=await lifecycle.list_sessions(subscription_id))


@router.post("/{subscription_id}/approve-week", response_model=ApproveWeekResponse)
async def approve_week(
    request: WeekDecisionRequest,
    subscription_id: str = Path(..., description="Subscription the week belongs to"),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    """
    Approve a submitted week.

    Creates one scheduled session per slot (with a Zoom meeting when one can
    be provisioned) and activates the subscription.

    Raises:
        400: Week not in submitted status, or week has no slots
        404: Subscription not found, or week not found/not owned by it
    """
    result = await workflow.approve_week(subscription_id, request.week_id)

    return ApproveWeekResponse(
        status=result.subscription_status.value,
        sessions_created=result.sessions_created,
        sessions=[ScheduledSessionSummary(**session.model_dump()) for session in result.sessions],
    )


@router.post("/{subscription_id}/decline-week", response_model=DeclineWeekResponse)
async def decline_week(
    request: DeclineWeekRequest,
    subscription_id: str = Path(..., description="Subscription the week belongs to"),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    """Decline a submitted week; no sessions are created"""
    week = await workflow.decline_week(subscription_id, request.week_id, request.reason)

    return DeclineWeekResponse(status=week.status.value, week_id=week.id)


@router.get("/{subscription_id}/weeks", response_model=WeeksResponse)
async def list_weeks(
    subscription_id: str = Path(...),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    weeks = await workflow.list_weeks(subscription_id)
    return WeeksResponse(data=weeks)


@router.post("/{subscription_id}/weeks", response_model=WeekRecord, status_code=201)
async def create_week(
    request: CreateWeekRequest,
    subscription_id: str = Path(...),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    """Start a new draft week for the subscription"""
    return await workflow.create_week(subscription_id, request.week_index)


@router.put("/{subscription_id}/weeks/{week_index}", response_model=WeekRecord)
async def get_or_create_week(
    subscription_id: str = Path(...),
    week_index: int = Path(..., ge=0),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    """Open the week with this index, creating it as a draft on first use"""
    return await workflow.get_or_create_week(subscription_id, week_index)
