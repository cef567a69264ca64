"""
Item Store

Generic collection verbs (list/read/create/update) addressed with
Directus-style JSON filter objects, e.g.:

    {"_and": [{"end_at": {"_lt": now}}, {"status": {"_in": ["scheduled", "in_progress"]}}]}

The workflows only speak this interface, so the same code runs against the
service's own database (DatabaseItemStore), the headless REST backend
(DirectusItemStore) or the in-process store (MemoryItemStore).
"""
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, time
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, or_, true, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.sqltypes import DateTime, Time

from app.database import AsyncSessionLocal
from app.errors import BadRequestError, ConflictError
from app.models import Session, Subscription, SubscriptionWeek, TeacherAvailabilityRule, WeekSlot

logger = logging.getLogger(__name__)

Item = Dict[str, Any]
Filter = Dict[str, Any]

SUBSCRIPTIONS = "subscriptions"
WEEKS = "subscription_weeks"
SLOTS = "week_slots"
SESSIONS = "sessions"
AVAILABILITY = "teacher_availability_rules"

COMPARISON_OPERATORS = ("_eq", "_neq", "_in", "_lt", "_lte", "_gt", "_gte", "_null")
LOGICAL_OPERATORS = ("_and", "_or")


class ItemStore(ABC):
    """Generic CRUD verbs over the scheduling collections"""

    @abstractmethod
    async def list_items(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        sort: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Item]:
        """List items matching filter; sort fields prefixed with '-' are descending"""

    @abstractmethod
    async def read_item(self, collection: str, item_id: str) -> Optional[Item]:
        """Return the item or None when it does not exist"""

    @abstractmethod
    async def create_item(self, collection: str, data: Item) -> Item:
        """Create an item and return it with its generated id"""

    @abstractmethod
    async def update_item(self, collection: str, item_id: str, data: Item) -> Optional[Item]:
        """Patch an item; None when it does not exist"""

    @abstractmethod
    async def update_item_if(
        self,
        collection: str,
        item_id: str,
        condition: Filter,
        data: Item,
    ) -> Optional[Item]:
        """
        Compare-and-swap patch.

        Applies data only if the stored item still matches condition.
        Returns the updated item, or None when nothing matched.
        """

    @abstractmethod
    async def delete_item(self, collection: str, item_id: str) -> bool:
        """Delete an item; False when it does not exist"""

    async def aclose(self) -> None:
        """Release network resources held by the store"""


def split_sort_field(field: str):
    """'-start_at' -> ('start_at', True)"""
    if field.startswith("-"):
        return field[1:], True
    return field, False


MODELS = {
    SUBSCRIPTIONS: Subscription,
    WEEKS: SubscriptionWeek,
    SLOTS: WeekSlot,
    SESSIONS: Session,
    AVAILABILITY: TeacherAvailabilityRule,
}


class DatabaseItemStore(ItemStore):
    """
    Item store over the service's PostgreSQL database.

    Each verb runs in its own AsyncSessionLocal() transaction. Conditional
    updates are a single UPDATE ... WHERE id = :id AND <condition>, so the
    check and the write cannot interleave with another writer.
    """

    def _model(self, collection: str):
        model = MODELS.get(collection)
        if model is None:
            raise BadRequestError(f"Unknown collection: {collection}")
        return model

    def _column(self, model, field: str):
        column = model.__table__.columns.get(field)
        if column is None:
            raise BadRequestError(f"Unknown field '{field}' for {model.__tablename__}")
        return column

    def _coerce(self, column, value: Any) -> Any:
        """Convert JSON-style operand values to the column's Python type"""
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return [self._coerce(column, v) for v in value]
        if isinstance(column.type, DateTime) and isinstance(value, str):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        if isinstance(column.type, Time) and isinstance(value, str):
            return time.fromisoformat(value)
        if getattr(column.type, "as_uuid", False) and isinstance(value, str):
            try:
                return uuid.UUID(value)
            except ValueError:
                raise BadRequestError(f"Invalid id for {column.name}: {value}")
        return value

    def _operator_clause(self, column, operator: str, operand: Any):
        if operator == "_eq":
            return column.is_(None) if operand is None else column == operand
        if operator == "_neq":
            return column.is_not(None) if operand is None else column != operand
        if operator == "_in":
            return column.in_(operand)
        if operator == "_lt":
            return column < operand
        if operator == "_lte":
            return column <= operand
        if operator == "_gt":
            return column > operand
        if operator == "_gte":
            return column >= operand
        if operator == "_null":
            return column.is_(None) if operand else column.is_not(None)
        raise BadRequestError(f"Unsupported filter operator: {operator}")

    def _condition(self, model, filter: Optional[Filter]):
        if not filter:
            return true()

        clauses = []
        for key, value in filter.items():
            if key in LOGICAL_OPERATORS:
                parts = [self._condition(model, sub) for sub in value]
                clauses.append(and_(*parts) if key == "_and" else or_(*parts))
                continue

            column = self._column(model, key)
            if not isinstance(value, dict):
                value = {"_eq": value}
            for operator, operand in value.items():
                if operator == "_null":
                    clauses.append(self._operator_clause(column, operator, bool(operand)))
                else:
                    clauses.append(self._operator_clause(column, operator, self._coerce(column, operand)))

        return and_(*clauses)

    def _values(self, model, data: Item) -> Item:
        return {key: self._coerce(self._column(model, key), value) for key, value in data.items()}

    def _to_item(self, row) -> Item:
        item = {}
        for column in row.__table__.columns:
            value = getattr(row, column.key)
            item[column.name] = str(value) if isinstance(value, uuid.UUID) else value
        return item

    def _id_clause(self, model, item_id: str):
        try:
            return model.id == uuid.UUID(str(item_id))
        except ValueError:
            return None

    async def list_items(self, collection, filter=None, sort=None, limit=None):
        model = self._model(collection)
        stmt = select(model).where(self._condition(model, filter))
        for field in sort or ():
            name, descending = split_sort_field(field)
            column = self._column(model, name)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        async with AsyncSessionLocal() as session:
            result = await session.execute(stmt)
            return [self._to_item(row) for row in result.scalars().all()]

    async def read_item(self, collection, item_id):
        model = self._model(collection)
        id_clause = self._id_clause(model, item_id)
        if id_clause is None:
            return None

        async with AsyncSessionLocal() as session:
            result = await session.execute(select(model).where(id_clause))
            row = result.scalar_one_or_none()
            return self._to_item(row) if row is not None else None

    async def create_item(self, collection, data):
        model = self._model(collection)
        row = model(**self._values(model, data))

        async with AsyncSessionLocal() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Cannot create {collection} item: {e.orig}")
            await session.refresh(row)
            return self._to_item(row)

    async def update_item(self, collection, item_id, data):
        return await self.update_item_if(collection, item_id, {}, data)

    async def update_item_if(self, collection, item_id, condition, data):
        model = self._model(collection)
        id_clause = self._id_clause(model, item_id)
        if id_clause is None:
            return None

        stmt = (
            update(model)
            .where(id_clause, self._condition(model, condition))
            .values(**self._values(model, data))
            .returning(model)
            .execution_options(synchronize_session=False)
        )

        async with AsyncSessionLocal() as session:
            try:
                result = await session.execute(stmt)
                row = result.scalars().first()
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Cannot update {collection} item {item_id}: {e.orig}")
            return self._to_item(row) if row is not None else None

    async def delete_item(self, collection, item_id):
        model = self._model(collection)
        id_clause = self._id_clause(model, item_id)
        if id_clause is None:
            return False

        async with AsyncSessionLocal() as session:
            row = (await session.execute(select(model).where(id_clause))).scalar_one_or_none()
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True
