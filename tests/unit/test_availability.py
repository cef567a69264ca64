"""
Unit tests for teacher availability rules
"""
from datetime import time

import pytest

from app.errors import BadRequestError, ConflictError, NotFoundError
from app.services.availability import TeacherAvailability
from app.services.item_store import AVAILABILITY

TEACHER = "teacher-1"


class TestCreateRule:

    @pytest.mark.asyncio
    async def test_create_rule(self, store, seed):
        rule = await TeacherAvailability(store).create_rule(TEACHER, 2, time(9, 0), time(11, 30))

        assert rule.teacher == TEACHER
        assert rule.weekday == 2
        assert (rule.start_time, rule.end_time) == (time(9, 0), time(11, 30))
        assert rule.is_active is True
        assert len(seed.all(AVAILABILITY)) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("weekday", [-1, 7])
    async def test_weekday_out_of_range(self, store, weekday):
        with pytest.raises(BadRequestError, match=r"Weekday must be between 0 \(Sunday\) and 6 \(Saturday\)"):
            await TeacherAvailability(store).create_rule(TEACHER, weekday, time(9, 0), time(10, 0))

    @pytest.mark.asyncio
    async def test_end_must_follow_start(self, store):
        with pytest.raises(BadRequestError, match="End time must be after start time"):
            await TeacherAvailability(store).create_rule(TEACHER, 1, time(10, 0), time(10, 0))

    @pytest.mark.asyncio
    async def test_duplicate_compared_to_the_minute(self, store, seed):
        seed.rule(TEACHER, weekday=3, start_time=time(9, 0), end_time=time(10, 0))

        with pytest.raises(ConflictError, match="A time slot with the same day and times already exists"):
            await TeacherAvailability(store).create_rule(TEACHER, 3, time(9, 0, 45), time(10, 0, 10))

        assert len(seed.all(AVAILABILITY)) == 1

    @pytest.mark.asyncio
    async def test_same_times_on_other_day_or_teacher(self, store, seed):
        seed.rule(TEACHER, weekday=3)
        availability = TeacherAvailability(store)

        await availability.create_rule(TEACHER, 4, time(9, 0), time(10, 0))
        await availability.create_rule("teacher-2", 3, time(9, 0), time(10, 0))

        assert len(seed.all(AVAILABILITY)) == 3


class TestListRules:

    @pytest.mark.asyncio
    async def test_sorted_by_weekday_then_start(self, store, seed):
        seed.rule(TEACHER, weekday=5, start_time=time(8, 0), end_time=time(9, 0))
        seed.rule(TEACHER, weekday=1, start_time=time(14, 0), end_time=time(15, 0))
        seed.rule(TEACHER, weekday=1, start_time=time(9, 0), end_time=time(10, 0))
        seed.rule("teacher-2", weekday=0)

        rules = await TeacherAvailability(store).list_rules(TEACHER)

        assert [(r.weekday, r.start_time) for r in rules] == [
            (1, time(9, 0)),
            (1, time(14, 0)),
            (5, time(8, 0)),
        ]

    @pytest.mark.asyncio
    async def test_active_only(self, store, seed):
        active = seed.rule(TEACHER, weekday=1)
        seed.rule(TEACHER, weekday=2, is_active=False)

        rules = await TeacherAvailability(store).list_rules(TEACHER, active_only=True)

        assert [r.id for r in rules] == [active["id"]]


class TestUpdateAndDeleteRule:

    @pytest.mark.asyncio
    async def test_partial_update(self, store, seed):
        rule = seed.rule(TEACHER, weekday=1)

        updated = await TeacherAvailability(store).update_rule(rule["id"], end_time=time(12, 0), is_active=False)

        assert updated.weekday == 1
        assert updated.start_time == time(9, 0)
        assert updated.end_time == time(12, 0)
        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_update_may_keep_its_own_times(self, store, seed):
        rule = seed.rule(TEACHER, weekday=1)

        updated = await TeacherAvailability(store).update_rule(rule["id"], is_active=False)

        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_update_onto_another_rule(self, store, seed):
        seed.rule(TEACHER, weekday=1)
        other = seed.rule(TEACHER, weekday=2)

        with pytest.raises(ConflictError):
            await TeacherAvailability(store).update_rule(other["id"], weekday=1)

    @pytest.mark.asyncio
    async def test_update_validates_weekday(self, store, seed):
        rule = seed.rule(TEACHER)

        with pytest.raises(BadRequestError):
            await TeacherAvailability(store).update_rule(rule["id"], weekday=9)

    @pytest.mark.asyncio
    async def test_update_unknown_rule(self, store):
        with pytest.raises(NotFoundError, match="Availability rule not found"):
            await TeacherAvailability(store).update_rule("missing", weekday=1)

    @pytest.mark.asyncio
    async def test_delete_rule(self, store, seed):
        rule = seed.rule(TEACHER)
        availability = TeacherAvailability(store)

        await availability.delete_rule(rule["id"])

        assert seed.all(AVAILABILITY) == []
        with pytest.raises(NotFoundError):
            await availability.delete_rule(rule["id"])
