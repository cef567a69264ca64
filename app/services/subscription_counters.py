"""
Subscription Counters

Sole writer of sessions_remaining, postpone_remaining and the counter-driven
subscription status flip. Each write is a compare-and-swap on the value that
was read; a lost race re-reads and recomputes (bounded). When the retries run
out the caller keeps the decrement pending on the session and settles it later,
so concurrent completions never lose a decrement.
"""
import logging
from typing import Tuple

from app.errors import BadRequestError, ConflictError, NotFoundError
from app.schemas import SubscriptionRecord, SubscriptionStatus
from app.services.item_store import SUBSCRIPTIONS, ItemStore

logger = logging.getLogger(__name__)

MAX_CAS_ATTEMPTS = 3


class SubscriptionCounters:
    """Counter mutations for a subscription"""

    def __init__(self, store: ItemStore):
        self.store = store

    async def get_subscription(self, subscription_id: str) -> SubscriptionRecord:
        item = await self.store.read_item(SUBSCRIPTIONS, subscription_id)
        if item is None:
            raise NotFoundError("Subscription not found")
        return SubscriptionRecord.model_validate(item)

    async def consume_session(self, subscription_id: str) -> Tuple[int, SubscriptionStatus]:
        """
        Decrement sessions_remaining by one, floored at 0.

        Reaching 0 flips the subscription status to completed.

        Returns:
            (sessions_remaining, subscription_status) after the write
        """
        for _ in range(MAX_CAS_ATTEMPTS):
            subscription = await self.get_subscription(subscription_id)
            remaining = max(0, subscription.sessions_remaining - 1)
            status = SubscriptionStatus.COMPLETED if remaining == 0 else subscription.status

            patch = {"sessions_remaining": remaining}
            if status != subscription.status:
                patch["status"] = status.value

            updated = await self.store.update_item_if(
                SUBSCRIPTIONS,
                subscription_id,
                {"sessions_remaining": {"_eq": subscription.sessions_remaining}},
                patch,
            )
            if updated is not None:
                if status == SubscriptionStatus.COMPLETED and status != subscription.status:
                    logger.info(f"Subscription {subscription_id} used its last session; marked completed")
                return remaining, status

            logger.info(f"sessions_remaining changed concurrently for subscription {subscription_id}; retrying")

        raise ConflictError("Subscription was modified concurrently; please retry")

    async def consume_postpone(self, subscription_id: str) -> int:
        """
        Decrement postpone_remaining by exactly one.

        Raises:
            BadRequestError: When no postpone credits remain
        """
        for _ in range(MAX_CAS_ATTEMPTS):
            subscription = await self.get_subscription(subscription_id)
            if subscription.postpone_remaining <= 0:
                raise BadRequestError("No postpone credits remaining")

            remaining = subscription.postpone_remaining - 1
            updated = await self.store.update_item_if(
                SUBSCRIPTIONS,
                subscription_id,
                {"postpone_remaining": {"_eq": subscription.postpone_remaining}},
                {"postpone_remaining": remaining},
            )
            if updated is not None:
                return remaining

            logger.info(f"postpone_remaining changed concurrently for subscription {subscription_id}; retrying")

        raise ConflictError("Subscription was modified concurrently; please retry")

    async def release_postpone(self, subscription_id: str) -> int:
        """Give back one postpone credit taken by consume_postpone, capped at postpone_total"""
        for _ in range(MAX_CAS_ATTEMPTS):
            subscription = await self.get_subscription(subscription_id)
            remaining = min(subscription.postpone_total, subscription.postpone_remaining + 1)
            updated = await self.store.update_item_if(
                SUBSCRIPTIONS,
                subscription_id,
                {"postpone_remaining": {"_eq": subscription.postpone_remaining}},
                {"postpone_remaining": remaining},
            )
            if updated is not None:
                return remaining

            logger.info(f"postpone_remaining changed concurrently for subscription {subscription_id}; retrying")

        raise ConflictError("Subscription was modified concurrently; please retry")
