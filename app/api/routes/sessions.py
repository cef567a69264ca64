"""
Session Lifecycle Endpoints

GET  /api/sessions/upcoming                - Next sessions of a student or teacher
GET  /api/sessions/{id}                    - One session
POST /api/sessions/sync-status             - Complete all elapsed sessions now
POST /api/sessions/{id}/complete           - Mark a session completed
POST /api/sessions/{id}/request-postpone   - Student asks to postpone
POST /api/sessions/{id}/approve-postpone   - Teacher approves a postpone request
"""
from typing import List, Literal

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from app.api.dependencies import get_session_lifecycle
from app.schemas import SessionRecord
from app.services.session_lifecycle import SessionLifecycle

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


class CompleteSessionResponse(BaseModel):
    success: bool = True
    sessions_remaining: int = Field(..., ge=0)
    subscription_status: str


class RequestPostponeRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class RequestPostponeResponse(BaseModel):
    success: bool = True
    status: str


class ApprovePostponeResponse(BaseModel):
    success: bool = True
    postpone_remaining: int = Field(..., ge=0)


class SyncStatusResponse(BaseModel):
    success: bool = True
    updated: int
    settled: int = 0
    failed: int
    message: str


class SessionsResponse(BaseModel):
    data: List[SessionRecord]


@router.post("/sync-status", response_model=SyncStatusResponse)
async def sync_session_status(lifecycle: SessionLifecycle = Depends(get_session_lifecycle)):
    """
    Run the expired-session sweep on demand.

    Same job the background scheduler runs periodically.
    """
    result = await lifecycle.reconcile_expired_sessions()

    if result.updated == 0 and result.settled == 0 and result.failed == 0:
        message = "No expired sessions to update"
    else:
        message = f"Updated {result.updated} expired session(s) to completed"
        if result.settled:
            message += f", settled {result.settled} pending completion(s)"
        if result.failed:
            message += f", {result.failed} failed"

    return SyncStatusResponse(
        updated=result.updated,
        settled=result.settled,
        failed=result.failed,
        message=message,
    )


@router.get("/upcoming", response_model=SessionsResponse)
async def list_upcoming_sessions(
    profile_id: str = Query(..., min_length=1),
    role: Literal["student", "teacher"] = Query(...),
    lifecycle: SessionLifecycle = Depends(get_session_lifecycle),
):
    """Up to 10 scheduled or running sessions starting from now, soonest first"""
    return SessionsResponse(data=await lifecycle.list_upcoming_sessions(profile_id, role))


@router.get("/{session_id}", response_model=SessionRecord)
async def get_session(
    session_id: str = Path(...),
    lifecycle: SessionLifecycle = Depends(get_session_lifecycle),
):
    return await lifecycle.get_session(session_id)


@router.post("/{session_id}/complete", response_model=CompleteSessionResponse)
async def complete_session(
    session_id: str = Path(..., description="Session to complete"),
    lifecycle: SessionLifecycle = Depends(get_session_lifecycle),
):
    """
    Mark a scheduled or in-progress session completed.

    Decrements the subscription's sessions_remaining; the subscription is
    completed once it reaches zero.
    """
    result = await lifecycle.complete_session(session_id)

    return CompleteSessionResponse(
        sessions_remaining=result.sessions_remaining,
        subscription_status=result.subscription_status.value,
    )


@router.post("/{session_id}/request-postpone", response_model=RequestPostponeResponse)
async def request_postpone(
    request: RequestPostponeRequest,
    session_id: str = Path(...),
    lifecycle: SessionLifecycle = Depends(get_session_lifecycle),
):
    session = await lifecycle.request_postpone(session_id, request.reason)
    return RequestPostponeResponse(status=session.status.value)


@router.post("/{session_id}/approve-postpone", response_model=ApprovePostponeResponse)
async def approve_postpone(
    session_id: str = Path(...),
    lifecycle: SessionLifecycle = Depends(get_session_lifecycle),
):
    """Approve a pending postpone request and consume one postpone credit"""
    remaining = await lifecycle.approve_postpone(session_id)
    return ApprovePostponeResponse(postpone_remaining=remaining)
