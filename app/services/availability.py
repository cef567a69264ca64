"""
Teacher Availability

Recurring weekly time ranges a teacher offers, one rule per weekday range.
Weekdays run from 0 (Sunday) to 6 (Saturday). Two rules of the same teacher
on the same weekday with the same start and end (compared to the minute) are
duplicates.
"""
import logging
from datetime import time
from typing import List, Optional

from app.errors import BadRequestError, ConflictError, NotFoundError
from app.schemas import AvailabilityRuleRecord
from app.services.item_store import AVAILABILITY, ItemStore

logger = logging.getLogger(__name__)

WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def _to_minute(value: time) -> time:
    return value.replace(second=0, microsecond=0, tzinfo=None)


class TeacherAvailability:
    """CRUD for teacher availability rules"""

    def __init__(self, store: ItemStore):
        self.store = store

    async def get_rule(self, rule_id: str) -> AvailabilityRuleRecord:
        item = await self.store.read_item(AVAILABILITY, rule_id)
        if item is None:
            raise NotFoundError("Availability rule not found")
        return AvailabilityRuleRecord.model_validate(item)

    async def list_rules(self, teacher_id: str, active_only: bool = False) -> List[AvailabilityRuleRecord]:
        """A teacher's rules ordered by weekday, then start time"""
        filter = {"teacher": {"_eq": teacher_id}}
        if active_only:
            filter = {"_and": [filter, {"is_active": {"_eq": True}}]}

        items = await self.store.list_items(AVAILABILITY, filter=filter, sort=["weekday", "start_time"])
        return [AvailabilityRuleRecord.model_validate(item) for item in items]

    def _validate(self, weekday: int, start_time: time, end_time: time) -> None:
        if not 0 <= weekday <= 6:
            raise BadRequestError("Weekday must be between 0 (Sunday) and 6 (Saturday)")
        if _to_minute(end_time) <= _to_minute(start_time):
            raise BadRequestError("End time must be after start time")

    async def _check_duplicate(
        self,
        teacher_id: str,
        weekday: int,
        start_time: time,
        end_time: time,
        exclude_id: Optional[str] = None,
    ) -> None:
        items = await self.store.list_items(
            AVAILABILITY,
            filter={"_and": [{"teacher": {"_eq": teacher_id}}, {"weekday": {"_eq": weekday}}]},
        )
        for item in items:
            rule = AvailabilityRuleRecord.model_validate(item)
            if rule.id == exclude_id:
                continue
            if (_to_minute(rule.start_time), _to_minute(rule.end_time)) == (_to_minute(start_time), _to_minute(end_time)):
                raise ConflictError("A time slot with the same day and times already exists")

    async def create_rule(
        self,
        teacher_id: str,
        weekday: int,
        start_time: time,
        end_time: time,
        is_active: bool = True,
    ) -> AvailabilityRuleRecord:
        """
        Add a weekly availability range.

        Raises:
            BadRequestError: Weekday out of range, or end not after start
            ConflictError: Same teacher, weekday and times already exist
        """
        self._validate(weekday, start_time, end_time)
        await self._check_duplicate(teacher_id, weekday, start_time, end_time)

        item = await self.store.create_item(
            AVAILABILITY,
            {
                "teacher": teacher_id,
                "weekday": weekday,
                "start_time": _to_minute(start_time),
                "end_time": _to_minute(end_time),
                "is_active": is_active,
            },
        )
        logger.info(f"Teacher {teacher_id} available {WEEKDAYS[weekday]} {start_time:%H:%M}-{end_time:%H:%M}")
        return AvailabilityRuleRecord.model_validate(item)

    async def update_rule(
        self,
        rule_id: str,
        weekday: Optional[int] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        is_active: Optional[bool] = None,
    ) -> AvailabilityRuleRecord:
        """Patch a rule; omitted fields keep their stored value"""
        rule = await self.get_rule(rule_id)

        weekday = rule.weekday if weekday is None else weekday
        start_time = rule.start_time if start_time is None else start_time
        end_time = rule.end_time if end_time is None else end_time

        self._validate(weekday, start_time, end_time)
        await self._check_duplicate(rule.teacher, weekday, start_time, end_time, exclude_id=rule.id)

        patch = {
            "weekday": weekday,
            "start_time": _to_minute(start_time),
            "end_time": _to_minute(end_time),
        }
        if is_active is not None:
            patch["is_active"] = is_active

        item = await self.store.update_item(AVAILABILITY, rule_id, patch)
        if item is None:
            raise NotFoundError("Availability rule not found")
        return AvailabilityRuleRecord.model_validate(item)

    async def delete_rule(self, rule_id: str) -> None:
        if not await self.store.delete_item(AVAILABILITY, rule_id):
            raise NotFoundError("Availability rule not found")
        logger.info(f"Deleted availability rule {rule_id}")
