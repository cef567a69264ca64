"""
Subscriptions

Lookup of a student's lesson packages and teacher assignment:

    payment_received -> teacher_assigned

Reassigning the teacher of a teacher_assigned subscription is allowed;
once weeks are approved (active) the teacher is fixed.
"""
import logging
from typing import List

from app.errors import ConflictError, NotFoundError, PreconditionFailedError
from app.schemas import SubscriptionRecord, SubscriptionStatus
from app.services.item_store import SUBSCRIPTIONS, ItemStore

logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = (SubscriptionStatus.PAYMENT_RECEIVED, SubscriptionStatus.TEACHER_ASSIGNED)


class SubscriptionService:

    def __init__(self, store: ItemStore):
        self.store = store

    async def get_subscription(self, subscription_id: str) -> SubscriptionRecord:
        item = await self.store.read_item(SUBSCRIPTIONS, subscription_id)
        if item is None:
            raise NotFoundError("Subscription not found")
        return SubscriptionRecord.model_validate(item)

    async def list_subscriptions(self, student_id: str) -> List[SubscriptionRecord]:
        """A student's subscriptions, newest first"""
        items = await self.store.list_items(
            SUBSCRIPTIONS,
            filter={"student": {"_eq": student_id}},
            sort=["-created_at"],
        )
        return [SubscriptionRecord.model_validate(item) for item in items]

    async def assign_teacher(self, subscription_id: str, teacher_id: str) -> SubscriptionRecord:
        """
        Assign the teacher of a paid subscription.

        Raises:
            NotFoundError: Unknown subscription
            PreconditionFailedError: Subscription not paid yet, or already active or finished
            ConflictError: Status changed while assigning
        """
        subscription = await self.get_subscription(subscription_id)
        if subscription.status not in ASSIGNABLE_STATUSES:
            raise PreconditionFailedError(
                f"Cannot assign a teacher to a subscription in {subscription.status.value} status"
            )

        item = await self.store.update_item_if(
            SUBSCRIPTIONS,
            subscription_id,
            {"status": {"_in": [status.value for status in ASSIGNABLE_STATUSES]}},
            {"teacher": teacher_id, "status": SubscriptionStatus.TEACHER_ASSIGNED.value},
        )
        if item is None:
            raise ConflictError("Subscription status changed concurrently")

        logger.info(f"Assigned teacher {teacher_id} to subscription {subscription_id}")
        return SubscriptionRecord.model_validate(item)
