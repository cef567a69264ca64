"""TeacherAvailabilityRule model - Recurring weekly time range a teacher offers"""
from sqlalchemy import Boolean, Column, Integer, DateTime, Time, CheckConstraint, Index, true
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from app.database import Base


class TeacherAvailabilityRule(Base):
    """Weekday 0 is Sunday, 6 is Saturday"""

    __tablename__ = "teacher_availability_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    teacher = Column(UUID(as_uuid=True), nullable=False)
    weekday = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="availability_weekday_range"),
        CheckConstraint("end_time > start_time", name="availability_end_after_start"),
        Index("idx_availability_teacher_weekday", "teacher", "weekday"),
    )

    def __repr__(self):
        return f"<TeacherAvailabilityRule(teacher={self.teacher}, weekday={self.weekday}, {self.start_time}-{self.end_time})>"
