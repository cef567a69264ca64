"""SQLAlchemy ORM Models for the lesson scheduling schema"""
from app.models.subscription import Subscription
from app.models.subscription_week import SubscriptionWeek
from app.models.week_slot import WeekSlot
from app.models.session import Session
from app.models.teacher_availability_rule import TeacherAvailabilityRule

__all__ = [
    "Subscription",
    "SubscriptionWeek",
    "WeekSlot",
    "Session",
    "TeacherAvailabilityRule",
]
