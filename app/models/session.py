"""Session model - Concrete lesson occurrences created from approved week slots"""
from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Index, CheckConstraint, false
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from app.database import Base


class Session(Base):
    """Scheduled lesson with optional video meeting identifiers"""

    __tablename__ = "sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subscription = Column(
        UUID(as_uuid=True),
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Slot the session was generated from; approval idempotency key
    source_slot = Column(UUID(as_uuid=True), unique=True, nullable=True)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(50), nullable=False, default="scheduled")
    completed_at = Column(DateTime(timezone=True), nullable=True)
    # Completed but sessions_remaining not yet decremented
    count_pending = Column(Boolean, nullable=False, default=False, server_default=false())
    postpone_reason = Column(String(1000), nullable=True)
    postpone_requested_at = Column(DateTime(timezone=True), nullable=True)
    postpone_approved_at = Column(DateTime(timezone=True), nullable=True)
    zoom_meeting_id = Column(String(100), nullable=True)
    zoom_join_url = Column(String(1000), nullable=True)
    zoom_start_url = Column(String(2000), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="session_end_after_start"),
        Index("idx_sessions_subscription_start", "subscription", "start_at"),
        Index("idx_sessions_status_end", "status", "end_at"),
    )

    def __repr__(self):
        return f"<Session(id={self.id}, subscription={self.subscription}, status={self.status})>"
