"""
Attribute-value codec: native Python values <-> DynamoDB JSON wire format.

Pure functions, no I/O.
"""

import math
from datetime import date, datetime
from typing import Any

from ..exceptions import MalformedAttributeValueError, UndefinedValueError, UnsupportedTypeError
from ..models import UNDEFINED, AttributeType


def sanitize(value: Any) -> Any:
    """
    Recursively drop UNDEFINED map entries and list elements.

    Args:
        value: Any native value

    Returns:
        The value with no UNDEFINED at any depth (tuples become lists)
    """
    if isinstance(value, (list, tuple)):
        return [sanitize(item) for item in value if item is not UNDEFINED]
    if isinstance(value, dict):
        return {key: sanitize(inner) for key, inner in value.items() if inner is not UNDEFINED}
    return value


def marshal(value: Any, remove_undefined: bool = True) -> dict[str, Any]:
    """
    Convert a native value into an attribute value.

    Args:
        value: Native value (str, finite number, bool, None, list/tuple, dict)
        remove_undefined: Drop UNDEFINED list elements and map entries instead of failing

    Returns:
        Tagged attribute value, e.g. {"S": "abc"}

    Raises:
        UnsupportedTypeError: For non-finite numbers and unsupported types
        UndefinedValueError: If UNDEFINED is found and cannot be dropped
    """
    if value is UNDEFINED:
        raise UndefinedValueError("Attempted to marshal an UNDEFINED value")
    if value is None:
        return {AttributeType.NULL.value: True}
    if isinstance(value, str):
        return {AttributeType.STRING.value: value}
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return {AttributeType.BOOLEAN.value: value}
    if isinstance(value, (int, float)):
        return {AttributeType.NUMBER.value: _format_number(value)}
    if isinstance(value, (datetime, date)):
        return {AttributeType.STRING.value: value.isoformat()}
    if isinstance(value, (list, tuple)):
        elements = []
        for item in value:
            if item is UNDEFINED:
                if remove_undefined:
                    continue
                raise UndefinedValueError("List contains an UNDEFINED element")
            elements.append(marshal(item, remove_undefined))
        return {AttributeType.LIST.value: elements}
    if isinstance(value, dict):
        entries: dict[str, Any] = {}
        for key, inner in value.items():
            if not isinstance(key, str):
                raise UnsupportedTypeError(f"Map keys must be strings, got {type(key).__name__}")
            if inner is UNDEFINED:
                if remove_undefined:
                    continue
                raise UndefinedValueError(f"Map entry '{key}' is UNDEFINED")
            entries[key] = marshal(inner, remove_undefined)
        return {AttributeType.MAP.value: entries}
    raise UnsupportedTypeError(f"Unsupported attribute type: {type(value).__name__}")


def unmarshal(attribute_value: Any) -> Any:
    """
    Convert an attribute value back into a native value.

    Raises:
        MalformedAttributeValueError: If the tag is missing, unknown or ambiguous
    """
    if not isinstance(attribute_value, dict) or len(attribute_value) != 1:
        raise MalformedAttributeValueError(f"Malformed attribute value: {attribute_value!r}")

    tag, payload = next(iter(attribute_value.items()))
    try:
        attribute_type = AttributeType(tag)
    except ValueError:
        raise MalformedAttributeValueError(f"Unsupported attribute tag: {tag!r}") from None

    if attribute_type is AttributeType.STRING:
        if not isinstance(payload, str):
            raise MalformedAttributeValueError("S payload must be a string")
        return payload
    if attribute_type is AttributeType.NUMBER:
        return _parse_number(payload)
    if attribute_type is AttributeType.BOOLEAN:
        if not isinstance(payload, bool):
            raise MalformedAttributeValueError("BOOL payload must be true or false")
        return payload
    if attribute_type is AttributeType.NULL:
        return None
    if attribute_type is AttributeType.LIST:
        if not isinstance(payload, list):
            raise MalformedAttributeValueError("L payload must be a list")
        return [unmarshal(item) for item in payload]
    if not isinstance(payload, dict):
        raise MalformedAttributeValueError("M payload must be an object")
    return {key: unmarshal(inner) for key, inner in payload.items()}


def marshal_item(item: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Sanitize and marshal every top-level attribute of an item."""
    sanitized = sanitize(item)
    return {key: marshal(value) for key, value in sanitized.items()}


def unmarshal_item(attributes: dict[str, Any] | None) -> dict[str, Any]:
    """Unmarshal an attribute map; None yields an empty dict."""
    if not attributes:
        return {}
    return {key: unmarshal(value) for key, value in attributes.items()}


def _format_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise UnsupportedTypeError("Cannot marshal non-finite numbers")
    return repr(value)


def _parse_number(text: Any) -> int | float:
    if not isinstance(text, str) or not text:
        raise MalformedAttributeValueError(f"N payload must be a decimal string, got {text!r}")
    try:
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)
    except ValueError:
        raise MalformedAttributeValueError(f"Invalid number: {text!r}") from None
