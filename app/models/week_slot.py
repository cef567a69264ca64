"""WeekSlot model - Proposed lesson time range within a week"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from app.database import Base


class WeekSlot(Base):
    __tablename__ = "week_slots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    week = Column(
        UUID(as_uuid=True),
        ForeignKey("subscription_weeks.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    note = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="slot_end_after_start"),
        Index("idx_week_slots_week_start", "week", "start_at"),
    )

    def __repr__(self):
        return f"<WeekSlot(id={self.id}, week={self.week}, start={self.start_at})>"
