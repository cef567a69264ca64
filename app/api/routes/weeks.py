"""
Week Drafting Endpoints (student side)

GET    /api/weeks/{id}/slots           - Slots of a week, by start time
POST   /api/weeks/{id}/slots           - Propose a slot (draft weeks only)
DELETE /api/weeks/{id}/slots/{slot_id} - Withdraw a slot (draft weeks only)
POST   /api/weeks/{id}/submit          - Submit the week for teacher review
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Response
from pydantic import BaseModel, Field

from app.api.dependencies import get_week_workflow
from app.schemas import SlotRecord, WeekRecord
from app.services.week_workflow import WeekWorkflow

router = APIRouter(prefix="/api/weeks", tags=["weeks"])


class CreateSlotRequest(BaseModel):
    start_at: datetime
    end_at: datetime
    note: Optional[str] = Field(None, max_length=1000)


class SlotsResponse(BaseModel):
    data: List[SlotRecord]


@router.get("/{week_id}/slots", response_model=SlotsResponse)
async def list_slots(
    week_id: str = Path(...),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    return SlotsResponse(data=await workflow.list_slots(week_id))


@router.post("/{week_id}/slots", response_model=SlotRecord, status_code=201)
async def add_slot(
    request: CreateSlotRequest,
    week_id: str = Path(...),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    """
    Propose a lesson slot.

    Raises:
        400: Week is not a draft, or end_at is not after start_at
        404: Week not found
    """
    return await workflow.add_slot(week_id, request.start_at, request.end_at, request.note)


@router.delete("/{week_id}/slots/{slot_id}", status_code=204)
async def remove_slot(
    week_id: str = Path(...),
    slot_id: str = Path(...),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    await workflow.remove_slot(week_id, slot_id)
    return Response(status_code=204)


@router.post("/{week_id}/submit", response_model=WeekRecord)
async def submit_week(
    week_id: str = Path(...),
    workflow: WeekWorkflow = Depends(get_week_workflow),
):
    """Move a draft week with at least one slot to submitted"""
    return await workflow.submit_week(week_id)
