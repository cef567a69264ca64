"""SubscriptionWeek model - One weekly scheduling proposal"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from app.database import Base


class SubscriptionWeek(Base):
    """Weekly batch of proposed slots awaiting teacher review"""

    __tablename__ = "subscription_weeks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subscription = Column(
        UUID(as_uuid=True),
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
    )
    week_index = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="draft")
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    teacher_comment = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("subscription", "week_index", name="uq_subscription_week_index"),
    )

    def __repr__(self):
        return f"<SubscriptionWeek(id={self.id}, index={self.week_index}, status={self.status})>"
