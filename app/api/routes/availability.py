"""
Teacher Availability Endpoints

GET    /api/availability?teacher_id=...  - A teacher's weekly rules
POST   /api/availability                 - Add a rule
PATCH  /api/availability/{id}            - Change a rule's day, times or active flag
DELETE /api/availability/{id}            - Remove a rule
"""
from datetime import time
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from pydantic import BaseModel, Field

from app.api.dependencies import get_teacher_availability
from app.schemas import AvailabilityRuleRecord
from app.services.availability import TeacherAvailability

router = APIRouter(prefix="/api/availability", tags=["availability"])


class CreateRuleRequest(BaseModel):
    teacher: str = Field(..., min_length=1)
    weekday: int = Field(..., description="0 = Sunday ... 6 = Saturday")
    start_time: time
    end_time: time
    is_active: bool = True


class UpdateRuleRequest(BaseModel):
    weekday: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_active: Optional[bool] = None


class CreateRuleResponse(BaseModel):
    success: bool = True
    data: AvailabilityRuleRecord


class RulesResponse(BaseModel):
    data: List[AvailabilityRuleRecord]


@router.get("", response_model=RulesResponse)
async def list_rules(
    teacher_id: str = Query(..., min_length=1),
    active_only: bool = Query(False),
    availability: TeacherAvailability = Depends(get_teacher_availability),
):
    return RulesResponse(data=await availability.list_rules(teacher_id, active_only))


@router.post("", response_model=CreateRuleResponse, status_code=201)
async def create_rule(
    request: CreateRuleRequest,
    availability: TeacherAvailability = Depends(get_teacher_availability),
):
    """
    Add a weekly availability range.

    Raises:
        400: Weekday outside 0..6, or end_time not after start_time
        409: The teacher already has this weekday and time range
    """
    rule = await availability.create_rule(
        request.teacher, request.weekday, request.start_time, request.end_time, request.is_active
    )
    return CreateRuleResponse(data=rule)


@router.patch("/{rule_id}", response_model=AvailabilityRuleRecord)
async def update_rule(
    request: UpdateRuleRequest,
    rule_id: str = Path(...),
    availability: TeacherAvailability = Depends(get_teacher_availability),
):
    return await availability.update_rule(rule_id, **request.model_dump(exclude_none=True))


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: str = Path(...),
    availability: TeacherAvailability = Depends(get_teacher_availability),
):
    await availability.delete_rule(rule_id)
    return Response(status_code=204)
