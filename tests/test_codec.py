from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import pytest

from keyitem_store.dynamo.core.codec import (
    marshal,
    marshal_item,
    sanitize,
    unmarshal,
    unmarshal_item,
)
from keyitem_store.dynamo.exceptions import (
    MalformedAttributeValueError,
    UndefinedValueError,
    UnsupportedTypeError,
)
from keyitem_store.dynamo.models import UNDEFINED


def _contains_undefined(value: Any) -> bool:
    if value is UNDEFINED:
        return True
    if isinstance(value, (list, tuple)):
        return any(_contains_undefined(item) for item in value)
    if isinstance(value, dict):
        return any(_contains_undefined(item) for item in value.values())
    return False


def test_marshal_scalars() -> None:
    assert marshal("abc") == {"S": "abc"}
    assert marshal("") == {"S": ""}
    assert marshal(42) == {"N": "42"}
    assert marshal(-1.5) == {"N": "-1.5"}
    assert marshal(True) == {"BOOL": True}
    assert marshal(False) == {"BOOL": False}
    assert marshal(None) == {"NULL": True}


def test_marshal_nested_structures() -> None:
    value = {"title": "Demo", "tags": ["a", {"weight": 2, "flags": [True, None]}]}

    assert marshal(value) == {
        "M": {
            "title": {"S": "Demo"},
            "tags": {
                "L": [
                    {"S": "a"},
                    {
                        "M": {
                            "weight": {"N": "2"},
                            "flags": {"L": [{"BOOL": True}, {"NULL": True}]},
                        }
                    },
                ]
            },
        }
    }


def test_marshal_dates_as_iso_strings() -> None:
    moment = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert marshal(moment) == {"S": "2025-01-02T03:04:05+00:00"}


@pytest.mark.parametrize(
    "value",
    [
        "",
        "plain text",
        0,
        -7,
        12345678901234567890,
        3.25,
        1e16,
        True,
        False,
        None,
        [],
        {},
        [1, "two", [3.5, None], {"four": False}],
        {"outer": {"inner": [{"deep": "value"}, [], {}]}},
    ],
)
def test_round_trip(value: Any) -> None:
    assert unmarshal(marshal(value)) == value


def test_booleans_do_not_become_numbers() -> None:
    restored = unmarshal(marshal({"flag": True, "count": 1}))
    assert restored["flag"] is True
    assert type(restored["count"]) is int


@pytest.mark.parametrize(
    "value",
    [float("nan"), float("inf"), float("-inf")],
)
def test_non_finite_numbers_are_rejected(value: Any) -> None:
    with pytest.raises(UnsupportedTypeError):
        marshal(value)


@pytest.mark.parametrize(
    "value", [lambda: None, {1, 2}, b"raw", object(), {1: "int key"}, Decimal("2.50")]
)
def test_unsupported_types_are_rejected(value: Any) -> None:
    with pytest.raises(UnsupportedTypeError):
        marshal(value)


def test_undefined_is_dropped_by_default() -> None:
    assert marshal({"a": UNDEFINED, "b": 1}) == {"M": {"b": {"N": "1"}}}
    assert marshal([1, UNDEFINED, 2]) == {"L": [{"N": "1"}, {"N": "2"}]}


def test_undefined_fails_without_removal() -> None:
    with pytest.raises(UndefinedValueError):
        marshal({"a": UNDEFINED}, remove_undefined=False)
    with pytest.raises(UndefinedValueError):
        marshal([UNDEFINED], remove_undefined=False)
    with pytest.raises(UndefinedValueError):
        marshal(UNDEFINED)


@pytest.mark.parametrize(
    "attribute_value",
    [
        {},
        {"X": "1"},
        {"S": "a", "N": "1"},
        "S",
        None,
        {"N": "abc"},
        {"L": "nope"},
        {"M": []},
        {"BOOL": "false"},
        {"BOOL": 0},
        {"S": 1},
    ],
)
def test_malformed_attribute_values(attribute_value: Any) -> None:
    with pytest.raises(MalformedAttributeValueError):
        unmarshal(attribute_value)


def test_sanitize_strips_undefined_at_every_depth() -> None:
    value = {
        "keep": 1,
        "drop": UNDEFINED,
        "nested": {"list": [UNDEFINED, {"x": UNDEFINED, "y": None}], "gone": UNDEFINED},
        "tuple": (1, UNDEFINED),
    }

    cleaned = sanitize(value)

    assert cleaned == {"keep": 1, "nested": {"list": [{"y": None}]}, "tuple": [1]}
    assert not _contains_undefined(cleaned)


@pytest.mark.parametrize(
    "value",
    [
        {"a": UNDEFINED, "b": [UNDEFINED, {"c": UNDEFINED}]},
        [UNDEFINED, UNDEFINED],
        "scalar",
        None,
        {"already": {"clean": [1, 2]}},
    ],
)
def test_sanitize_is_idempotent(value: Any) -> None:
    once = sanitize(value)
    assert sanitize(once) == once


def test_item_helpers() -> None:
    item = {"pk": "ORG#1", "sk": "QSET#42", "title": "Demo", "optional": UNDEFINED}

    marshalled = marshal_item(item)

    assert marshalled == {"pk": {"S": "ORG#1"}, "sk": {"S": "QSET#42"}, "title": {"S": "Demo"}}
    assert unmarshal_item(marshalled) == {"pk": "ORG#1", "sk": "QSET#42", "title": "Demo"}
    assert unmarshal_item(None) == {}


def test_numbers_keep_their_value_through_the_wire_format() -> None:
    for value in (0, -7, 2.5, 1e-07, 12345678901234567890):
        decoded = unmarshal(marshal(value))
        assert decoded == value
        assert type(decoded) is type(value)
