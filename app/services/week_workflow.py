"""
Weekly Scheduling & Approval Workflow

Week lifecycle: draft -> submitted -> approved | rejected.

Students draft a week of proposed slots and submit it; the teacher approves
(every slot becomes a scheduled session, optionally with a Zoom meeting, and
the subscription becomes active) or declines it.

Approval is resumable: each session is keyed by the slot it came from
(source_slot), so re-running an approval that failed half-way reuses the
sessions already created instead of duplicating them. The week only moves to
approved after every slot has a session.
"""
import logging
from datetime import datetime
from typing import List, Optional

from app.errors import (
    BadRequestError,
    ConflictError,
    MeetingProvisioningError,
    NotFoundError,
    PreconditionFailedError,
)
from app.schemas import (
    ApprovalResult,
    CreatedSession,
    Meeting,
    SessionRecord,
    SessionStatus,
    SlotRecord,
    SubscriptionRecord,
    SubscriptionStatus,
    WeekRecord,
    WeekStatus,
    can_transition_week,
    ensure_utc,
    utcnow,
)
from app.services.item_store import SESSIONS, SLOTS, SUBSCRIPTIONS, WEEKS, ItemStore
from app.services.zoom_client import MeetingProvisioner

logger = logging.getLogger(__name__)


class WeekWorkflow:
    """Week drafting, submission and teacher review"""

    def __init__(self, store: ItemStore, meetings: MeetingProvisioner):
        self.store = store
        self.meetings = meetings

    async def _get_subscription(self, subscription_id: str) -> SubscriptionRecord:
        item = await self.store.read_item(SUBSCRIPTIONS, subscription_id)
        if item is None:
            raise NotFoundError("Subscription not found")
        return SubscriptionRecord.model_validate(item)

    async def _get_week(self, week_id: str) -> WeekRecord:
        item = await self.store.read_item(WEEKS, week_id)
        if item is None:
            raise NotFoundError("Week not found")
        return WeekRecord.model_validate(item)

    async def _get_subscription_week(self, subscription_id: str, week_id: str) -> WeekRecord:
        item = await self.store.read_item(WEEKS, week_id)
        week = WeekRecord.model_validate(item) if item is not None else None
        if week is None or week.subscription != str(subscription_id):
            raise NotFoundError("Week not found or does not belong to this subscription")
        return week

    async def list_weeks(self, subscription_id: str) -> List[WeekRecord]:
        await self._get_subscription(subscription_id)
        items = await self.store.list_items(
            WEEKS,
            filter={"subscription": {"_eq": str(subscription_id)}},
            sort=["week_index"],
        )
        return [WeekRecord.model_validate(item) for item in items]

    async def list_slots(self, week_id: str) -> List[SlotRecord]:
        await self._get_week(week_id)
        items = await self.store.list_items(
            SLOTS,
            filter={"week": {"_eq": str(week_id)}},
            sort=["start_at"],
        )
        return [SlotRecord.model_validate(item) for item in items]

    async def create_week(self, subscription_id: str, week_index: int) -> WeekRecord:
        """Start a new draft week; week_index is unique per subscription"""
        if week_index < 0:
            raise BadRequestError("week_index must be zero or positive")

        existing = await self.list_weeks(subscription_id)
        if any(week.week_index == week_index for week in existing):
            raise BadRequestError(f"Week {week_index} already exists for this subscription")

        item = await self.store.create_item(
            WEEKS,
            {
                "subscription": str(subscription_id),
                "week_index": week_index,
                "status": WeekStatus.DRAFT.value,
            },
        )
        logger.info(f"Created draft week {item['id']} (index {week_index}) for subscription {subscription_id}")
        return WeekRecord.model_validate(item)

    async def get_or_create_week(self, subscription_id: str, week_index: int) -> WeekRecord:
        """The week with this index, created as a draft when missing"""
        for week in await self.list_weeks(subscription_id):
            if week.week_index == week_index:
                return week
        return await self.create_week(subscription_id, week_index)

    async def add_slot(
        self,
        week_id: str,
        start_at: datetime,
        end_at: datetime,
        note: Optional[str] = None,
    ) -> SlotRecord:
        """Add a proposed slot; only draft weeks accept slots"""
        week = await self._get_week(week_id)
        if week.status != WeekStatus.DRAFT:
            raise PreconditionFailedError("Slots can only be added to a week in draft status")

        start_at, end_at = ensure_utc(start_at), ensure_utc(end_at)
        if end_at <= start_at:
            raise BadRequestError("Slot end time must be after its start time")

        item = await self.store.create_item(
            SLOTS,
            {"week": str(week_id), "start_at": start_at, "end_at": end_at, "note": note or None},
        )
        return SlotRecord.model_validate(item)

    async def remove_slot(self, week_id: str, slot_id: str) -> None:
        week = await self._get_week(week_id)
        if week.status != WeekStatus.DRAFT:
            raise PreconditionFailedError("Slots can only be removed from a week in draft status")

        item = await self.store.read_item(SLOTS, slot_id)
        if item is None or str(item["week"]) != str(week_id):
            raise NotFoundError("Slot not found in this week")

        await self.store.delete_item(SLOTS, slot_id)

    async def submit_week(self, week_id: str) -> WeekRecord:
        """Finalize a draft week for teacher review"""
        week = await self._get_week(week_id)
        if not can_transition_week(week.status, WeekStatus.SUBMITTED):
            raise PreconditionFailedError("Week must be in draft status to submit")

        if not await self.list_slots(week_id):
            raise BadRequestError("Cannot submit a week without slots")

        item = await self.store.update_item_if(
            WEEKS,
            week_id,
            {"status": {"_eq": WeekStatus.DRAFT.value}},
            {"status": WeekStatus.SUBMITTED.value, "submitted_at": utcnow()},
        )
        if item is None:
            raise ConflictError("Week changed status while being submitted")

        logger.info(f"Week {week_id} submitted for review")
        return WeekRecord.model_validate(item)

    async def _provision_meeting(self, subscription: SubscriptionRecord, slot: SlotRecord) -> Optional[Meeting]:
        """Best-effort meeting creation; None on any provisioner failure"""
        topic = f"{subscription.course_label or 'Session'} - Session"
        try:
            return await self.meetings.create_meeting(
                topic=topic,
                start_time=slot.start_at,
                duration_minutes=subscription.meeting_duration_minutes,
            )
        except MeetingProvisioningError as e:
            logger.warning(f"Meeting creation failed for slot {slot.id}, scheduling without one: {e}")
            return None
        except Exception as e:
            logger.warning(
                f"Unexpected meeting provisioner error for slot {slot.id}, scheduling without one: {e}",
                exc_info=True,
            )
            return None

    async def _discard_meeting(self, meeting: Meeting) -> None:
        """Best-effort removal of a meeting whose session was never stored"""
        try:
            await self.meetings.delete_meeting(meeting.meeting_id)
            logger.info(f"Deleted meeting {meeting.meeting_id} after its session could not be stored")
        except Exception as e:
            logger.warning(f"Could not delete orphaned meeting {meeting.meeting_id}: {e}")

    async def _session_for_slot(self, subscription: SubscriptionRecord, slot: SlotRecord) -> SessionRecord:
        existing = await self.store.list_items(
            SESSIONS,
            filter={"source_slot": {"_eq": slot.id}},
            limit=1,
        )
        if existing:
            logger.info(f"Session for slot {slot.id} already exists; reusing it")
            return SessionRecord.model_validate(existing[0])

        meeting = await self._provision_meeting(subscription, slot)
        try:
            item = await self.store.create_item(
                SESSIONS,
                {
                    "subscription": subscription.id,
                    "source_slot": slot.id,
                    "start_at": slot.start_at,
                    "end_at": slot.end_at,
                    "status": SessionStatus.SCHEDULED.value,
                    "zoom_meeting_id": meeting.meeting_id if meeting else None,
                    "zoom_join_url": meeting.join_url if meeting else None,
                    "zoom_start_url": meeting.start_url if meeting else None,
                },
            )
        except Exception:
            if meeting is not None:
                await self._discard_meeting(meeting)
            raise
        return SessionRecord.model_validate(item)

    async def approve_week(self, subscription_id: str, week_id: str) -> ApprovalResult:
        """
        Approve a submitted week and schedule one session per slot.

        Raises:
            NotFoundError: Unknown subscription, or week missing/not owned by it
            PreconditionFailedError: Week is not in submitted status
            BadRequestError: Week has no slots
            ConflictError: Another reviewer decided the week concurrently
        """
        subscription = await self._get_subscription(subscription_id)
        week = await self._get_subscription_week(subscription_id, week_id)

        if not can_transition_week(week.status, WeekStatus.APPROVED):
            raise PreconditionFailedError("Week must be in submitted status to approve")

        slots = await self.list_slots(week_id)
        if not slots:
            raise BadRequestError("No slots found for this week")

        sessions = [await self._session_for_slot(subscription, slot) for slot in slots]

        reviewed = await self.store.update_item_if(
            WEEKS,
            week_id,
            {"status": {"_eq": WeekStatus.SUBMITTED.value}},
            {"status": WeekStatus.APPROVED.value, "reviewed_at": utcnow()},
        )
        if reviewed is None:
            raise ConflictError("Week was reviewed concurrently")

        await self.store.update_item(
            SUBSCRIPTIONS,
            subscription.id,
            {"status": SubscriptionStatus.ACTIVE.value},
        )

        logger.info(
            f"Approved week {week_id} for subscription {subscription_id}: "
            f"{len(sessions)} sessions scheduled, "
            f"{sum(1 for s in sessions if s.zoom_meeting_id)} with meetings"
        )

        return ApprovalResult(
            sessions_created=len(sessions),
            sessions=[
                CreatedSession(
                    id=session.id,
                    start_at=session.start_at,
                    end_at=session.end_at,
                    zoom_join_url=session.zoom_join_url,
                )
                for session in sessions
            ],
            subscription_status=SubscriptionStatus.ACTIVE,
        )

    async def decline_week(self, subscription_id: str, week_id: str, reason: Optional[str] = None) -> WeekRecord:
        """Reject a submitted week; no sessions, no subscription change"""
        week = await self._get_subscription_week(subscription_id, week_id)

        if not can_transition_week(week.status, WeekStatus.REJECTED):
            raise PreconditionFailedError("Week must be in submitted status to decline")

        patch = {"status": WeekStatus.REJECTED.value, "reviewed_at": utcnow()}
        if reason:
            patch["teacher_comment"] = reason

        item = await self.store.update_item_if(
            WEEKS,
            week_id,
            {"status": {"_eq": WeekStatus.SUBMITTED.value}},
            patch,
        )
        if item is None:
            raise ConflictError("Week was reviewed concurrently")

        logger.info(f"Declined week {week_id} for subscription {subscription_id}")
        return WeekRecord.model_validate(item)
