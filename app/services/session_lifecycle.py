"""
Session Lifecycle

scheduled/in_progress -> completed (manual completion or reconciliation sweep)
scheduled -> student_requested_postpone -> postpone_approved

Manual completion and the reconciliation sweep share one completion path, so
both decrement the subscription's sessions_remaining the same way. The status
flip marks the session count_pending; the decrement then settles it. A
completion whose decrement lost every retry stays pending and is settled by a
later completion call or the next sweep.
"""
import logging
from datetime import datetime
from typing import List, Optional

from app import config
from app.errors import BadRequestError, ConflictError, NotFoundError, SchedulingError
from app.schemas import (
    COMPLETABLE_SESSION_STATUSES,
    CompletionResult,
    ReconcileResult,
    SessionRecord,
    SessionStatus,
    utcnow,
)
from app.services.item_store import SESSIONS, SUBSCRIPTIONS, ItemStore
from app.services.subscription_counters import SubscriptionCounters

logger = logging.getLogger(__name__)

_COMPLETABLE = [status.value for status in COMPLETABLE_SESSION_STATUSES]

# Subscription field holding the profile for each role
PROFILE_ROLES = ("student", "teacher")

UPCOMING_SESSIONS_LIMIT = 10


class SessionLifecycle:
    """Completion, postponement, listing and reconciliation of lesson sessions"""

    def __init__(self, store: ItemStore, counters: Optional[SubscriptionCounters] = None):
        self.store = store
        self.counters = counters or SubscriptionCounters(store)

    async def get_session(self, session_id: str) -> SessionRecord:
        item = await self.store.read_item(SESSIONS, session_id)
        if item is None:
            raise NotFoundError("Session not found")
        return SessionRecord.model_validate(item)

    async def list_sessions(self, subscription_id: str) -> List[SessionRecord]:
        """All sessions of a subscription, earliest first"""
        await self.counters.get_subscription(subscription_id)
        items = await self.store.list_items(
            SESSIONS,
            filter={"subscription": {"_eq": subscription_id}},
            sort=["start_at"],
        )
        return [SessionRecord.model_validate(item) for item in items]

    async def list_upcoming_sessions(
        self,
        profile_id: str,
        role: str,
        now: Optional[datetime] = None,
        limit: int = UPCOMING_SESSIONS_LIMIT,
    ) -> List[SessionRecord]:
        """
        Next scheduled or running sessions across every subscription where
        profile_id is the student or the teacher.

        Raises:
            BadRequestError: Unknown role
        """
        if role not in PROFILE_ROLES:
            raise BadRequestError(f"Role must be one of: {', '.join(PROFILE_ROLES)}")

        subscriptions = await self.store.list_items(
            SUBSCRIPTIONS, filter={role: {"_eq": profile_id}}
        )
        if not subscriptions:
            return []

        items = await self.store.list_items(
            SESSIONS,
            filter={
                "_and": [
                    {"subscription": {"_in": [item["id"] for item in subscriptions]}},
                    {"status": {"_in": _COMPLETABLE}},
                    {"start_at": {"_gte": now or utcnow()}},
                ]
            },
            sort=["start_at"],
            limit=limit,
        )
        return [SessionRecord.model_validate(item) for item in items]

    async def _complete(self, session: SessionRecord, completed_at: datetime) -> CompletionResult:
        """Shared completion path: flip the session, then consume one session credit"""
        # Subscription must exist before anything is written
        await self.counters.get_subscription(session.subscription)

        updated = await self.store.update_item_if(
            SESSIONS,
            session.id,
            {"status": {"_in": _COMPLETABLE}},
            {
                "status": SessionStatus.COMPLETED.value,
                "completed_at": completed_at,
                "count_pending": True,
            },
        )
        if updated is None:
            raise ConflictError("Session status changed concurrently")

        return await self._settle(SessionRecord.model_validate(updated))

    async def _settle(self, session: SessionRecord) -> CompletionResult:
        """
        Apply the pending sessions_remaining decrement of a completed session.

        Claiming the pending flag is itself a compare-and-swap, so a
        completion is counted exactly once however many callers settle it.
        """
        claimed = await self.store.update_item_if(
            SESSIONS,
            session.id,
            {"count_pending": {"_eq": True}},
            {"count_pending": False},
        )
        if claimed is None:
            # Someone else settled it
            subscription = await self.counters.get_subscription(session.subscription)
            return CompletionResult(
                sessions_remaining=subscription.sessions_remaining,
                subscription_status=subscription.status,
            )

        try:
            remaining, status = await self.counters.consume_session(session.subscription)
        except SchedulingError:
            await self.store.update_item(SESSIONS, session.id, {"count_pending": True})
            logger.warning(f"Session {session.id} completed; sessions_remaining decrement left pending")
            raise

        return CompletionResult(sessions_remaining=remaining, subscription_status=status)

    async def complete_session(self, session_id: str) -> CompletionResult:
        """
        Mark a session completed now and decrement sessions_remaining.

        Calling it again on a completed session whose decrement is still
        pending retries only the decrement.

        Raises:
            NotFoundError: Session or its subscription does not exist
            BadRequestError: Session already completed or not in a completable status
            ConflictError: The decrement lost every retry; it stays pending
        """
        session = await self.get_session(session_id)

        if session.status == SessionStatus.COMPLETED:
            if not session.count_pending:
                raise BadRequestError("Session is already completed")
            result = await self._settle(session)
        elif session.status not in COMPLETABLE_SESSION_STATUSES:
            raise BadRequestError("Session cannot be completed in current status")
        else:
            result = await self._complete(session, utcnow())

        logger.info(
            f"Session {session_id} completed; subscription {session.subscription} has "
            f"{result.sessions_remaining} sessions remaining ({result.subscription_status.value})"
        )
        return result

    async def request_postpone(self, session_id: str, reason: str) -> SessionRecord:
        """Student asks to postpone a scheduled session"""
        session = await self.get_session(session_id)
        if session.status != SessionStatus.SCHEDULED:
            raise BadRequestError("Only scheduled sessions can be postponed")

        subscription = await self.counters.get_subscription(session.subscription)
        if subscription.postpone_remaining <= 0:
            raise BadRequestError("No postpone credits remaining")

        updated = await self.store.update_item_if(
            SESSIONS,
            session_id,
            {"status": {"_eq": SessionStatus.SCHEDULED.value}},
            {
                "status": SessionStatus.STUDENT_REQUESTED_POSTPONE.value,
                "postpone_reason": reason,
                "postpone_requested_at": utcnow(),
            },
        )
        if updated is None:
            raise ConflictError("Session status changed concurrently")

        logger.info(f"Postpone requested for session {session_id}")
        return SessionRecord.model_validate(updated)

    async def approve_postpone(self, session_id: str) -> int:
        """
        Approve a requested postpone and consume one postpone credit.

        The credit is taken first; if the session has meanwhile left the
        requested status the credit is given back. Rebooking the lesson is
        not part of this call.

        Returns:
            postpone_remaining after the decrement
        """
        session = await self.get_session(session_id)
        if session.status != SessionStatus.STUDENT_REQUESTED_POSTPONE:
            raise BadRequestError("Session must be in postpone requested status")

        remaining = await self.counters.consume_postpone(session.subscription)

        updated = await self.store.update_item_if(
            SESSIONS,
            session_id,
            {"status": {"_eq": SessionStatus.STUDENT_REQUESTED_POSTPONE.value}},
            {"status": SessionStatus.POSTPONE_APPROVED.value, "postpone_approved_at": utcnow()},
        )
        if updated is None:
            await self.counters.release_postpone(session.subscription)
            raise ConflictError("Session status changed concurrently")

        logger.info(f"Postpone approved for session {session_id}; {remaining} postpone credits remaining")
        return remaining

    async def reconcile_expired_sessions(
        self,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> ReconcileResult:
        """
        Complete sessions whose end time has passed but are still active,
        then settle completions whose decrement is still pending.

        Elapsed sessions are assumed to have taken place; completed_at is set
        to the scheduled end_at, not the time of the sweep. A failure on one
        session is logged and counted and the sweep moves on.
        """
        now = now or utcnow()
        limit = limit if limit is not None else config.SESSION_SYNC_BATCH_SIZE

        expired = await self.store.list_items(
            SESSIONS,
            filter={
                "_and": [
                    {"end_at": {"_lt": now}},
                    {"status": {"_in": _COMPLETABLE}},
                ]
            },
            sort=["end_at"],
            limit=limit,
        )
        pending = await self.store.list_items(
            SESSIONS,
            filter={
                "_and": [
                    {"status": {"_eq": SessionStatus.COMPLETED.value}},
                    {"count_pending": {"_eq": True}},
                ]
            },
            sort=["end_at"],
            limit=limit,
        )

        result = ReconcileResult()
        for item in expired:
            session = SessionRecord.model_validate(item)
            try:
                await self._complete(session, session.end_at)
                result.updated += 1
            except SchedulingError as e:
                result.failed += 1
                logger.error(f"Could not reconcile session {session.id}: {e.message}")

        for item in pending:
            session = SessionRecord.model_validate(item)
            try:
                await self._settle(session)
                result.settled += 1
            except SchedulingError as e:
                result.failed += 1
                logger.error(f"Could not settle completed session {session.id}: {e.message}")

        if expired or pending:
            logger.info(
                f"Reconciled expired sessions: {result.updated} completed, "
                f"{result.settled} settled, {result.failed} failed"
            )
        return result
