"""
Service wiring

Global instances created on first use, in the same get_*() style the
services expose. Routes receive them through FastAPI Depends so tests can
swap them with app.dependency_overrides.
"""
import logging
from typing import Optional

from app import config
from app.errors import ConfigurationError
from app.services.availability import TeacherAvailability
from app.services.directus_store import DirectusItemStore
from app.services.item_store import DatabaseItemStore, ItemStore
from app.services.memory_store import MemoryItemStore
from app.services.payment_webhook import PaymentWebhookHandler
from app.services.session_lifecycle import SessionLifecycle
from app.services.subscriptions import SubscriptionService
from app.services.week_workflow import WeekWorkflow
from app.services.zoom_client import MeetingProvisioner, NullMeetingProvisioner, ZoomMeetingProvisioner

logger = logging.getLogger(__name__)

_store: Optional[ItemStore] = None
_meetings: Optional[MeetingProvisioner] = None


def create_item_store(kind: str) -> ItemStore:
    """Build the item store selected by ITEM_STORE"""
    if kind == "database":
        return DatabaseItemStore()
    if kind == "directus":
        return DirectusItemStore()
    if kind == "memory":
        return MemoryItemStore()
    raise ConfigurationError(f"Server configuration error: unknown ITEM_STORE '{kind}'")


def get_item_store() -> ItemStore:
    """Get or create global ItemStore instance."""
    global _store
    if _store is None:
        _store = create_item_store(config.ITEM_STORE)
        logger.info(f"Using {config.ITEM_STORE} item store")
    return _store


def get_meeting_provisioner() -> MeetingProvisioner:
    """Get or create global MeetingProvisioner instance."""
    global _meetings
    if _meetings is None:
        _meetings = ZoomMeetingProvisioner() if config.MEETINGS_ENABLED else NullMeetingProvisioner()
    return _meetings


def get_week_workflow() -> WeekWorkflow:
    return WeekWorkflow(get_item_store(), get_meeting_provisioner())


def get_session_lifecycle() -> SessionLifecycle:
    return SessionLifecycle(get_item_store())


def get_subscription_service() -> SubscriptionService:
    return SubscriptionService(get_item_store())


def get_teacher_availability() -> TeacherAvailability:
    return TeacherAvailability(get_item_store())


def get_payment_webhook_handler() -> PaymentWebhookHandler:
    return PaymentWebhookHandler(get_item_store())


async def close_services() -> None:
    """Release HTTP clients held by the global instances"""
    global _store, _meetings
    if _store is not None:
        await _store.aclose()
        _store = None
    if _meetings is not None:
        await _meetings.aclose()
        _meetings = None
