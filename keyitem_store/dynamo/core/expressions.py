"""
Fixed expression grammar understood by the in-memory backend.

Only the call shapes the application issues are accepted:

    key condition:  h = :v
                    h = :v AND begins_with(r, :p)
    filter/condition: clause [AND clause ...]
                    clause := attribute_not_exists(name) | name = :v
    update:         SET name = :v

Names may be written literally or as #alias placeholders. Extending the
supported shapes means extending these patterns, not matching substrings.
"""

import re
from dataclasses import dataclass
from typing import Any

from ..exceptions import (
    UnsupportedFilterExpressionError,
    UnsupportedKeyConditionError,
    UnsupportedUpdateExpressionError,
    ValidationFailedError,
)
from ..models import UNDEFINED

_NAME = r"#?[A-Za-z_][A-Za-z0-9_]*"
_VALUE = r":[A-Za-z0-9_]+"

_EQUALS = re.compile(rf"^\s*(?P<name>{_NAME})\s*=\s*(?P<value>{_VALUE})\s*$")
_BEGINS_WITH = re.compile(
    rf"^\s*begins_with\s*\(\s*(?P<name>{_NAME})\s*,\s*(?P<value>{_VALUE})\s*\)\s*$",
    re.IGNORECASE,
)
_NOT_EXISTS = re.compile(
    rf"^\s*attribute_not_exists\s*\(\s*(?P<name>{_NAME})\s*\)\s*$", re.IGNORECASE
)
_SET = re.compile(rf"^\s*SET\s+(?P<name>{_NAME})\s*=\s*(?P<value>{_VALUE})\s*$", re.IGNORECASE)
_AND = re.compile(r"\s+AND\s+", re.IGNORECASE)


@dataclass(frozen=True)
class KeyCondition:
    hash_name: str
    hash_value: str
    prefix_name: str | None = None
    prefix_value: str | None = None


@dataclass(frozen=True)
class Clause:
    """attribute_not_exists(name) when value is None, otherwise name = value."""

    name: str
    value: str | None = None


@dataclass(frozen=True)
class SetAction:
    name: str
    value: str


def parse_key_condition(expression: str) -> KeyCondition:
    """
    Parse a key condition expression.

    Raises:
        UnsupportedKeyConditionError: For any shape outside the grammar
    """
    parts = _AND.split(expression.strip())
    if len(parts) > 2:
        raise UnsupportedKeyConditionError(f"Unsupported key condition expression: {expression}")

    hash_match = _EQUALS.match(parts[0])
    if not hash_match:
        raise UnsupportedKeyConditionError(f"Unsupported key condition expression: {expression}")
    if len(parts) == 1:
        return KeyCondition(hash_match["name"], hash_match["value"])

    prefix_match = _BEGINS_WITH.match(parts[1])
    if not prefix_match:
        raise UnsupportedKeyConditionError(f"Unsupported key condition expression: {expression}")
    return KeyCondition(
        hash_match["name"], hash_match["value"], prefix_match["name"], prefix_match["value"]
    )


def parse_filter(expression: str | None) -> list[Clause]:
    """
    Parse a filter or condition expression; empty input yields no clauses.

    Raises:
        UnsupportedFilterExpressionError: For any clause outside the grammar
    """
    if not expression or not expression.strip():
        return []
    clauses = []
    for part in _AND.split(expression.strip()):
        not_exists = _NOT_EXISTS.match(part)
        if not_exists:
            clauses.append(Clause(not_exists["name"]))
            continue
        equals = _EQUALS.match(part)
        if equals:
            clauses.append(Clause(equals["name"], equals["value"]))
            continue
        raise UnsupportedFilterExpressionError(f"Unsupported filter expression: {expression}")
    return clauses


def parse_update(expression: str) -> SetAction:
    """
    Parse an update expression.

    Raises:
        UnsupportedUpdateExpressionError: Unless the expression is a single SET assignment
    """
    match = _SET.match(expression or "")
    if not match:
        raise UnsupportedUpdateExpressionError(f"Unsupported update expression: {expression}")
    return SetAction(match["name"], match["value"])


def resolve_name(name: str, names: dict[str, str] | None) -> str:
    """Resolve a #alias through ExpressionAttributeNames."""
    if not name.startswith("#"):
        return name
    if not names or name not in names:
        raise ValidationFailedError(body=f"Expression attribute name {name} is not defined")
    return names[name]


def resolve_value(placeholder: str, values: dict[str, Any] | None) -> Any:
    if not values or placeholder not in values:
        raise ValidationFailedError(body=f"Expression attribute value {placeholder} is not defined")
    return values[placeholder]


def matches(
    clauses: list[Clause],
    item: dict[str, Any] | None,
    names: dict[str, str] | None = None,
    values: dict[str, Any] | None = None,
) -> bool:
    """Evaluate parsed clauses against an item (None means the item does not exist)."""
    current = item or {}
    for clause in clauses:
        attribute = resolve_name(clause.name, names)
        if clause.value is None:
            if attribute in current:
                return False
            continue
        expected = resolve_value(clause.value, values)
        if not values_equal(current.get(attribute, UNDEFINED), expected):
            return False
    return True


def values_equal(left: Any, right: Any) -> bool:
    """
    Compare decoded attribute values the way the service does.

    A BOOL never equals an N, so True and 1 are different values here even
    though Python treats them as equal. Lists and maps compare element-wise.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(map(values_equal, left, right))
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(
            values_equal(value, right[name]) for name, value in left.items()
        )
    return left == right
