"""
In-process item store.

Selected with ITEM_STORE=memory for local demos; also the store the workflow
tests run against. Items are copied on the way in and out so callers never
share state with the store, mirroring a remote backend.
"""
import copy
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.errors import BadRequestError, ConflictError
from app.schemas import ensure_utc
from app.services.item_store import (
    AVAILABILITY,
    COMPARISON_OPERATORS,
    LOGICAL_OPERATORS,
    SESSIONS,
    SLOTS,
    SUBSCRIPTIONS,
    WEEKS,
    Filter,
    Item,
    ItemStore,
    split_sort_field,
)

# collection -> field groups that must be unique when all values are set
UNIQUE_FIELDS = {
    SESSIONS: [("source_slot",)],
    WEEKS: [("subscription", "week_index")],
}


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return value
    return value


def _apply_operator(value: Any, operator: str, operand: Any) -> bool:
    if operator == "_null":
        return (value is None) == bool(operand)
    if operator == "_eq":
        if value is None or operand is None:
            return value == operand
        left, right = _comparable(value), _comparable(operand)
        # Integer keys match their string form, as REST backends coerce filter values
        if type(left) is not type(right) and all(type(v) in (int, str) for v in (left, right)):
            return str(left) == str(right)
        return left == right
    if operator == "_neq":
        return not _apply_operator(value, "_eq", operand)
    if operator == "_in":
        return any(_apply_operator(value, "_eq", candidate) for candidate in operand)
    if operator not in COMPARISON_OPERATORS:
        raise BadRequestError(f"Unsupported filter operator: {operator}")
    if value is None or operand is None:
        return False

    left, right = _comparable(value), _comparable(operand)
    if operator == "_lt":
        return left < right
    if operator == "_lte":
        return left <= right
    if operator == "_gt":
        return left > right
    return left >= right


def matches_filter(item: Item, filter: Optional[Filter]) -> bool:
    """Evaluate a Directus-style filter object against a plain dict"""
    if not filter:
        return True

    for key, value in filter.items():
        if key in LOGICAL_OPERATORS:
            results = [matches_filter(item, sub) for sub in value]
            if key == "_and" and not all(results):
                return False
            if key == "_or" and not any(results):
                return False
            continue

        if not isinstance(value, dict):
            value = {"_eq": value}
        for operator, operand in value.items():
            if not _apply_operator(item.get(key), operator, operand):
                return False

    return True


class MemoryItemStore(ItemStore):
    """Dict-backed store keyed by collection then item id"""

    def __init__(self, seed: Optional[Dict[str, List[Item]]] = None):
        self.collections: Dict[str, Dict[str, Item]] = {
            SUBSCRIPTIONS: {},
            WEEKS: {},
            SLOTS: {},
            SESSIONS: {},
            AVAILABILITY: {},
        }
        for collection, items in (seed or {}).items():
            for item in items:
                self._items(collection)[str(item["id"])] = copy.deepcopy(item)

    def _items(self, collection: str) -> Dict[str, Item]:
        if collection not in self.collections:
            raise BadRequestError(f"Unknown collection: {collection}")
        return self.collections[collection]

    def _check_unique(self, collection: str, candidate: Item) -> None:
        for fields in UNIQUE_FIELDS.get(collection, []):
            values = tuple(candidate.get(field) for field in fields)
            if any(v is None for v in values):
                continue
            for existing in self._items(collection).values():
                if existing["id"] == candidate["id"]:
                    continue
                if tuple(existing.get(field) for field in fields) == values:
                    raise ConflictError(
                        f"Cannot write {collection} item: duplicate {', '.join(fields)}"
                    )

    async def list_items(self, collection, filter=None, sort=None, limit=None):
        items = [item for item in self._items(collection).values() if matches_filter(item, filter)]
        for field in reversed(list(sort or ())):
            name, descending = split_sort_field(field)
            items.sort(key=lambda item: (item.get(name) is None, _comparable(item.get(name))), reverse=descending)
        if limit is not None:
            items = items[:limit]
        return copy.deepcopy(items)

    async def read_item(self, collection, item_id):
        item = self._items(collection).get(str(item_id))
        return copy.deepcopy(item) if item is not None else None

    async def create_item(self, collection, data):
        item = copy.deepcopy(data)
        item["id"] = str(item.get("id") or uuid.uuid4())
        self._check_unique(collection, item)
        self._items(collection)[item["id"]] = item
        return copy.deepcopy(item)

    async def update_item(self, collection, item_id, data):
        return await self.update_item_if(collection, item_id, {}, data)

    async def update_item_if(self, collection, item_id, condition, data):
        item = self._items(collection).get(str(item_id))
        if item is None or not matches_filter(item, condition):
            return None

        updated = {**item, **copy.deepcopy(data)}
        self._check_unique(collection, updated)
        self._items(collection)[str(item_id)] = updated
        return copy.deepcopy(updated)

    async def delete_item(self, collection, item_id):
        return self._items(collection).pop(str(item_id), None) is not None
