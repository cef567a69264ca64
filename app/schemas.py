"""
Domain records for the scheduling workflow.

Items come back from either store backend as plain dicts: ISO strings from the
REST backend, datetime/UUID objects from the database. These pydantic models
normalise both shapes (ids as strings, datetimes timezone-aware in UTC).
"""
from datetime import datetime, time, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Set
from uuid import UUID

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _stringify_id(value: Any) -> Any:
    if isinstance(value, (UUID, int)) and not isinstance(value, bool):
        return str(value)
    return value


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


ItemId = Annotated[str, BeforeValidator(_stringify_id)]
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class SubscriptionStatus(str, Enum):
    DRAFT = "draft"
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_RECEIVED = "payment_received"
    TEACHER_ASSIGNED = "teacher_assigned"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WeekStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    STUDENT_REQUESTED_POSTPONE = "student_requested_postpone"
    POSTPONE_APPROVED = "postpone_approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    STUDENT_NO_SHOW = "student_no_show"
    TEACHER_NO_SHOW = "teacher_no_show"


# approved and rejected are terminal
WEEK_TRANSITIONS: Dict[WeekStatus, Set[WeekStatus]] = {
    WeekStatus.DRAFT: {WeekStatus.SUBMITTED},
    WeekStatus.SUBMITTED: {WeekStatus.APPROVED, WeekStatus.REJECTED},
    WeekStatus.APPROVED: set(),
    WeekStatus.REJECTED: set(),
}

# Statuses from which a session may be marked completed
COMPLETABLE_SESSION_STATUSES = (SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS)


def can_transition_week(current: WeekStatus, target: WeekStatus) -> bool:
    return target in WEEK_TRANSITIONS[current]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SubscriptionRecord(_Record):
    id: ItemId
    student: Optional[ItemId] = None
    teacher: Optional[ItemId] = None
    course: Optional[ItemId] = None
    package: Optional[ItemId] = None
    course_label: Optional[str] = None
    session_duration_min: Optional[int] = None
    sessions_total: int = 0
    sessions_remaining: int = 0
    postpone_total: int = 0
    postpone_remaining: int = 0
    status: SubscriptionStatus = SubscriptionStatus.DRAFT

    @property
    def meeting_duration_minutes(self) -> int:
        return self.session_duration_min or 60


class WeekRecord(_Record):
    id: ItemId
    subscription: ItemId
    week_index: int
    status: WeekStatus = WeekStatus.DRAFT
    submitted_at: Optional[UtcDatetime] = None
    reviewed_at: Optional[UtcDatetime] = None
    teacher_comment: Optional[str] = None


class SlotRecord(_Record):
    id: ItemId
    week: ItemId
    start_at: UtcDatetime
    end_at: UtcDatetime
    note: Optional[str] = None


class SessionRecord(_Record):
    id: ItemId
    subscription: ItemId
    source_slot: Optional[ItemId] = None
    start_at: UtcDatetime
    end_at: UtcDatetime
    status: SessionStatus = SessionStatus.SCHEDULED
    completed_at: Optional[UtcDatetime] = None
    # sessions_remaining not yet decremented for this completion
    count_pending: Optional[bool] = False
    postpone_reason: Optional[str] = None
    postpone_requested_at: Optional[UtcDatetime] = None
    postpone_approved_at: Optional[UtcDatetime] = None
    zoom_meeting_id: Optional[str] = None
    zoom_join_url: Optional[str] = None
    zoom_start_url: Optional[str] = None

    @field_validator("zoom_meeting_id", mode="before")
    @classmethod
    def _meeting_id_as_str(cls, value: Any) -> Any:
        return _stringify_id(value)


class AvailabilityRuleRecord(_Record):
    id: ItemId
    teacher: ItemId
    weekday: int
    start_time: time
    end_time: time
    is_active: Optional[bool] = True


class Meeting(BaseModel):
    """Video meeting created by a meeting provisioner"""
    meeting_id: str
    join_url: str
    start_url: str


class CreatedSession(BaseModel):
    id: str
    start_at: datetime
    end_at: datetime
    zoom_join_url: Optional[str] = None


class ApprovalResult(BaseModel):
    sessions_created: int
    sessions: List[CreatedSession] = Field(default_factory=list)
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE


class CompletionResult(BaseModel):
    sessions_remaining: int
    subscription_status: SubscriptionStatus


class ReconcileResult(BaseModel):
    updated: int = 0
    settled: int = 0
    failed: int = 0
