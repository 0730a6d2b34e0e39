"""
Type models for the key-item store client.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class _Undefined:
    """Marker for an absent value, distinct from None (which is stored as NULL)."""

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> "_Undefined":
        return self


UNDEFINED = _Undefined()


class AttributeType(Enum):
    """Type tags of the attribute-value wire format."""

    STRING = "S"
    NUMBER = "N"
    BOOLEAN = "BOOL"
    NULL = "NULL"
    LIST = "L"
    MAP = "M"


class TableStatus(str, Enum):
    """Control-plane view of a table."""

    MISSING = "MISSING"
    CREATING = "CREATING"
    ACTIVE = "ACTIVE"
    UPDATING = "UPDATING"


class TTLStatus(str, Enum):
    """Time-to-live state reported by DescribeTimeToLive."""

    DISABLED = "DISABLED"
    ENABLING = "ENABLING"
    ENABLED = "ENABLED"
    DISABLING = "DISABLING"
    # Reported by some service emulators while a change is pending
    UPDATING = "UPDATING"


@dataclass(frozen=True)
class KeyAttribute:
    """A key attribute and its scalar wire type (S, N or B)."""

    name: str
    attribute_type: str = "S"


@dataclass(frozen=True)
class SecondaryIndex:
    """Global secondary index declaration."""

    name: str
    hash_key: KeyAttribute
    range_key: KeyAttribute | None = None
    projection_type: str = "ALL"

    def key_schema(self) -> list[dict[str, str]]:
        return _key_schema(self.hash_key, self.range_key)

    def to_wire(self) -> dict[str, Any]:
        return {
            "IndexName": self.name,
            "KeySchema": self.key_schema(),
            "Projection": {"ProjectionType": self.projection_type},
        }


@dataclass(frozen=True)
class TableDefinition:
    """Declared schema of one table: primary key, indexes and optional TTL attribute."""

    name: str
    hash_key: KeyAttribute
    range_key: KeyAttribute | None = None
    indexes: tuple[SecondaryIndex, ...] = ()
    ttl_attribute: str | None = None

    def key_names(self) -> list[str]:
        names = [self.hash_key.name]
        if self.range_key:
            names.append(self.range_key.name)
        return names

    def key_schema(self) -> list[dict[str, str]]:
        return _key_schema(self.hash_key, self.range_key)

    def attribute_definitions(self) -> list[dict[str, str]]:
        """Every key attribute of the table and its indexes, deduplicated by name."""
        seen: dict[str, KeyAttribute] = {}
        candidates = [self.hash_key, self.range_key]
        for index in self.indexes:
            candidates.extend([index.hash_key, index.range_key])
        for attribute in candidates:
            if attribute and attribute.name not in seen:
                seen[attribute.name] = attribute
        return [
            {"AttributeName": a.name, "AttributeType": a.attribute_type} for a in seen.values()
        ]

    def index_attribute_definitions(self, index: SecondaryIndex) -> list[dict[str, str]]:
        return [
            {"AttributeName": a.name, "AttributeType": a.attribute_type}
            for a in (index.hash_key, index.range_key)
            if a is not None
        ]

    def find_index(self, index_name: str) -> SecondaryIndex | None:
        for index in self.indexes:
            if index.name == index_name:
                return index
        return None


@dataclass
class QueryPage:
    """One page of Query results."""

    items: list[dict[str, Any]] = field(default_factory=list)
    count: int = 0
    cursor: dict[str, Any] | None = None


def _key_schema(hash_key: KeyAttribute, range_key: KeyAttribute | None) -> list[dict[str, str]]:
    schema = [{"AttributeName": hash_key.name, "KeyType": "HASH"}]
    if range_key:
        schema.append({"AttributeName": range_key.name, "KeyType": "RANGE"})
    return schema
