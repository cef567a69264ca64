"""Subscription model - A student's purchased lesson package for a course"""
from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from app.database import Base


class Subscription(Base):
    """Lesson package with session and postpone counters"""

    __tablename__ = "subscriptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student = Column(UUID(as_uuid=True), nullable=False)
    teacher = Column(UUID(as_uuid=True), nullable=True)
    course = Column(String(100), nullable=False)
    package = Column(String(100), nullable=False)
    course_label = Column(String(200), nullable=True)
    session_duration_min = Column(Integer, nullable=False, default=60)
    weeks_total = Column(Integer, nullable=False, default=0)
    sessions_total = Column(Integer, nullable=False)
    sessions_remaining = Column(Integer, nullable=False)
    postpone_total = Column(Integer, nullable=False, default=0)
    postpone_remaining = Column(Integer, nullable=False, default=0)
    status = Column(String(50), nullable=False, default="draft")
    payment_reference = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "sessions_remaining >= 0 AND sessions_remaining <= sessions_total",
            name="sessions_remaining_range",
        ),
        CheckConstraint(
            "postpone_remaining >= 0 AND postpone_remaining <= postpone_total",
            name="postpone_remaining_range",
        ),
        Index("idx_subscriptions_student", "student"),
        Index("idx_subscriptions_teacher", "teacher"),
    )

    def __repr__(self):
        return f"<Subscription(id={self.id}, status={self.status}, remaining={self.sessions_remaining})>"
