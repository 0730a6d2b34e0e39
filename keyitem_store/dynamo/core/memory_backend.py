"""
In-memory backend emulating the call patterns the application issues.

Only for local development and tests. All state lives in the instance and is
touched from a single event loop; the backend is not safe to share between
OS threads.
"""

import copy
import json
from dataclasses import dataclass, field, replace
from typing import Any

from ..constants import ERR_RESOURCE_NOT_FOUND
from ..exceptions import (
    BackendRequestFailedError,
    ConditionalCheckFailedError,
    ValidationFailedError,
)
from ..logging_config import get_logger
from ..models import (
    UNDEFINED,
    QueryPage,
    SecondaryIndex,
    TableDefinition,
    TableStatus,
    TTLStatus,
)
from .backend import StoreBackend
from .codec import marshal_item, unmarshal_item
from .expressions import (
    matches,
    parse_filter,
    parse_key_condition,
    parse_update,
    resolve_name,
    resolve_value,
    values_equal,
)

logger = get_logger(__name__)


@dataclass
class _MemoryTable:
    definition: TableDefinition
    items: dict[str, dict[str, Any]] = field(default_factory=dict)
    ttl_status: str = TTLStatus.DISABLED.value
    ttl_attribute: str | None = None


class InMemoryBackend(StoreBackend):
    """Process-local emulation keyed by each table's declared key attributes."""

    def __init__(self, definitions: list[TableDefinition] | None = None):
        self._tables: dict[str, _MemoryTable] = {}
        self.reset(definitions or [])

    def reset(self, definitions: list[TableDefinition]) -> None:
        """Drop every table and declare the given ones, empty."""
        self._tables.clear()
        for definition in definitions:
            self._declare(definition)
        logger.debug(f"In-memory tables reset: {sorted(self._tables)}")

    def table_names(self) -> list[str]:
        return sorted(self._tables)

    # ---------- Items ----------
    async def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
    ) -> None:
        memory = self._table(table)
        clauses = parse_filter(condition)
        stored = _normalize(item)
        _check_key_types(memory.definition, stored)
        storage_key = self._storage_key(memory.definition, stored)

        current = memory.items.get(storage_key)
        if clauses and not matches(clauses, current, names, _normalize(values)):
            raise ConditionalCheckFailedError(body="The conditional request failed")
        memory.items[storage_key] = stored

    async def get_item(
        self, table: str, key: dict[str, Any], consistent_read: bool = False
    ) -> dict[str, Any] | None:
        memory = self._table(table)
        normalized_key = _normalize(key)
        _check_key_types(memory.definition, normalized_key)
        stored = memory.items.get(self._storage_key(memory.definition, normalized_key, exact=True))
        return copy.deepcopy(stored) if stored is not None else None

    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        values: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
    ) -> dict[str, Any] | None:
        memory = self._table(table)
        action = parse_update(update_expression)
        clauses = parse_filter(condition)
        normalized_key = _normalize(key)
        _check_key_types(memory.definition, normalized_key)
        storage_key = self._storage_key(memory.definition, normalized_key, exact=True)
        normalized_values = _normalize(values)

        attribute = resolve_name(action.name, names)
        if attribute in memory.definition.key_names():
            raise ValidationFailedError(
                body=f"Cannot update attribute {attribute}: it is part of the key"
            )
        value = resolve_value(action.value, normalized_values)

        current = memory.items.get(storage_key)
        if clauses and not matches(clauses, current, names, normalized_values):
            raise ConditionalCheckFailedError(body="The conditional request failed")

        # UpdateItem creates the item when it does not exist yet
        updated = copy.deepcopy(current) if current is not None else dict(normalized_key)
        updated[attribute] = value
        _check_key_types(memory.definition, updated)
        memory.items[storage_key] = updated
        return copy.deepcopy(updated)

    async def delete_item(self, table: str, key: dict[str, Any]) -> None:
        memory = self._table(table)
        normalized_key = _normalize(key)
        _check_key_types(memory.definition, normalized_key)
        memory.items.pop(self._storage_key(memory.definition, normalized_key, exact=True), None)

    async def query(
        self,
        table: str,
        key_condition: str,
        values: dict[str, Any],
        index_name: str | None = None,
        filter_expression: str | None = None,
        names: dict[str, str] | None = None,
        cursor: dict[str, Any] | None = None,
        scan_forward: bool | None = None,
        limit: int | None = None,
    ) -> QueryPage:
        memory = self._table(table)
        definition = memory.definition
        condition = parse_key_condition(key_condition)
        clauses = parse_filter(filter_expression)
        normalized_values = _normalize(values)

        if index_name:
            index = definition.find_index(index_name)
            if index is None:
                raise ValidationFailedError(
                    body=f"The table does not have the specified index: {index_name}"
                )
            hash_attr = index.hash_key.name
            range_attr = index.range_key.name if index.range_key else None
        else:
            hash_attr = definition.hash_key.name
            range_attr = definition.range_key.name if definition.range_key else None

        if resolve_name(condition.hash_name, names) != hash_attr:
            raise ValidationFailedError(body="Query condition missed key schema element")
        hash_value = resolve_value(condition.hash_value, normalized_values)

        prefix: str | None = None
        if condition.prefix_name is not None and condition.prefix_value is not None:
            if resolve_name(condition.prefix_name, names) != range_attr:
                raise ValidationFailedError(body="Query key condition not supported")
            prefix = resolve_value(condition.prefix_value, normalized_values)
            if not isinstance(prefix, str):
                raise ValidationFailedError(body="begins_with requires a string operand")

        def in_partition(item: dict[str, Any]) -> bool:
            if not values_equal(item.get(hash_attr, UNDEFINED), hash_value):
                return False
            # Index entries only exist for items carrying every index key attribute
            if range_attr and range_attr not in item:
                return False
            if prefix is not None:
                sort_value = item.get(range_attr) if range_attr else None
                return isinstance(sort_value, str) and sort_value.startswith(prefix)
            return True

        def order(item: dict[str, Any]) -> tuple[Any, ...]:
            primary = self._storage_key(definition, item)
            return (item[range_attr], primary) if range_attr else (primary,)

        forward = scan_forward is not False
        ordered = sorted(
            (item for item in memory.items.values() if in_partition(item)),
            key=order,
            reverse=not forward,
        )

        if cursor:
            start_key = _normalize(cursor)
            _check_key_types(definition, start_key)
            start = order(start_key)
            if forward:
                ordered = [item for item in ordered if order(item) > start]
            else:
                ordered = [item for item in ordered if order(item) < start]

        evaluated = ordered[:limit] if limit else ordered
        more = len(evaluated) < len(ordered)
        selected = [
            copy.deepcopy(item)
            for item in evaluated
            if matches(clauses, item, names, normalized_values)
        ]

        next_cursor = None
        if more and evaluated:
            last = evaluated[-1]
            key_attrs = definition.key_names() + [a for a in (hash_attr, range_attr) if a]
            next_cursor = {name: copy.deepcopy(last[name]) for name in key_attrs if name in last}

        return QueryPage(items=selected, count=len(selected), cursor=next_cursor)

    # ---------- Control plane ----------
    async def describe_table(self, table: str) -> dict[str, Any] | None:
        memory = self._tables.get(table)
        if memory is None:
            return None
        definition = memory.definition
        description: dict[str, Any] = {
            "TableName": definition.name,
            "TableStatus": TableStatus.ACTIVE.value,
            "KeySchema": definition.key_schema(),
            "AttributeDefinitions": definition.attribute_definitions(),
            "ItemCount": len(memory.items),
        }
        if definition.indexes:
            description["GlobalSecondaryIndexes"] = [
                {
                    "IndexName": index.name,
                    "IndexStatus": TableStatus.ACTIVE.value,
                    "KeySchema": index.key_schema(),
                }
                for index in definition.indexes
            ]
        return description

    async def create_table(self, definition: TableDefinition) -> None:
        if definition.name in self._tables:
            return
        self._declare(definition)

    async def add_index(self, definition: TableDefinition, index: SecondaryIndex) -> None:
        memory = self._table(definition.name)
        if memory.definition.find_index(index.name):
            return
        memory.definition = replace(memory.definition, indexes=(*memory.definition.indexes, index))

    async def describe_time_to_live(self, table: str) -> dict[str, Any] | None:
        memory = self._tables.get(table)
        if memory is None:
            return None
        description: dict[str, Any] = {"TimeToLiveStatus": memory.ttl_status}
        if memory.ttl_attribute:
            description["AttributeName"] = memory.ttl_attribute
        return description

    async def update_time_to_live(self, table: str, attribute: str) -> None:
        memory = self._table(table)
        if memory.ttl_status == TTLStatus.ENABLED.value:
            raise ValidationFailedError(body="TimeToLive is already enabled")
        memory.ttl_status = TTLStatus.ENABLED.value
        memory.ttl_attribute = attribute

    # ---------- Helpers ----------
    def _declare(self, definition: TableDefinition) -> None:
        memory = _MemoryTable(definition)
        if definition.ttl_attribute:
            memory.ttl_status = TTLStatus.ENABLED.value
            memory.ttl_attribute = definition.ttl_attribute
        self._tables[definition.name] = memory

    def _table(self, table: str) -> _MemoryTable:
        memory = self._tables.get(table)
        if memory is None:
            body = json.dumps(
                {
                    "__type": f"com.amazonaws.dynamodb.v20120810#{ERR_RESOURCE_NOT_FOUND}",
                    "message": f"Requested resource not found: Table: {table} not found",
                }
            )
            raise BackendRequestFailedError(400, body, ERR_RESOURCE_NOT_FOUND)
        return memory

    @staticmethod
    def _storage_key(
        definition: TableDefinition, item: dict[str, Any], exact: bool = False
    ) -> str:
        names = definition.key_names()
        missing = [name for name in names if name not in item]
        if missing:
            raise ValidationFailedError(body=f"Missing the key {missing[0]} in the item")
        if exact and len(item) != len(names):
            raise ValidationFailedError(body="The provided key element does not match the schema")
        return json.dumps({name: item[name] for name in sorted(names)}, sort_keys=True)


def _normalize(value: dict[str, Any] | None) -> dict[str, Any]:
    """Round-trip through the codec so stored values look exactly like remote reads."""
    if not value:
        return {}
    return unmarshal_item(marshal_item(value))


def _key_type_matches(attribute_type: str, value: Any) -> bool:
    if attribute_type == "S":
        return isinstance(value, str)
    if attribute_type == "N":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return isinstance(value, bytes)


def _check_key_types(definition: TableDefinition, item: dict[str, Any]) -> None:
    """
    Reject key and index key attributes whose value does not have the declared type.

    An absent index attribute is fine: the item is simply left out of that index.

    Raises:
        ValidationFailedError: On the first mismatch
    """
    for attribute in definition.attribute_definitions():
        name, attribute_type = attribute["AttributeName"], attribute["AttributeType"]
        if name in item and not _key_type_matches(attribute_type, item[name]):
            raise ValidationFailedError(
                body=(
                    "One or more parameter values were invalid: Type mismatch for key "
                    f"{name} expected: {attribute_type}"
                )
            )
