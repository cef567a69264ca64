"""
Unit tests for domain records and the week state machine
"""
import uuid
from datetime import datetime, timezone

import pytest

from app.schemas import (
    SessionRecord,
    SubscriptionRecord,
    WeekStatus,
    can_transition_week,
)


class TestWeekTransitions:

    @pytest.mark.parametrize("current,target", [
        (WeekStatus.DRAFT, WeekStatus.SUBMITTED),
        (WeekStatus.SUBMITTED, WeekStatus.APPROVED),
        (WeekStatus.SUBMITTED, WeekStatus.REJECTED),
    ])
    def test_allowed(self, current, target):
        assert can_transition_week(current, target)

    @pytest.mark.parametrize("current,target", [
        (WeekStatus.DRAFT, WeekStatus.APPROVED),
        (WeekStatus.APPROVED, WeekStatus.REJECTED),
        (WeekStatus.REJECTED, WeekStatus.APPROVED),
        (WeekStatus.APPROVED, WeekStatus.SUBMITTED),
    ])
    def test_rejected(self, current, target):
        assert not can_transition_week(current, target)


class TestRecords:

    def test_session_from_rest_backend_shape(self):
        session = SessionRecord.model_validate({
            "id": 17,
            "subscription": "abc",
            "start_at": "2026-03-02T15:00:00Z",
            "end_at": "2026-03-02T16:00:00",
            "status": "scheduled",
            "zoom_meeting_id": 81234567890,
            "user_created": "ignored",
        })

        assert session.id == "17"
        assert session.zoom_meeting_id == "81234567890"
        assert session.start_at == datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)
        assert session.end_at.tzinfo is not None

    def test_session_from_database_shape(self):
        session_id = uuid.uuid4()
        session = SessionRecord.model_validate({
            "id": session_id,
            "subscription": uuid.uuid4(),
            "start_at": datetime(2026, 3, 2, 15, 0),
            "end_at": datetime(2026, 3, 2, 16, 0),
        })

        assert session.id == str(session_id)
        assert session.start_at.tzinfo == timezone.utc

    def test_meeting_duration_defaults_to_an_hour(self):
        assert SubscriptionRecord(id="s1").meeting_duration_minutes == 60
        assert SubscriptionRecord(id="s1", session_duration_min=45).meeting_duration_minutes == 45
