"""Approximate structural equality of JSON schemas.

Two schemas are "roughly" equal when they validate the same data in the same
way, ignoring metadata (titles, descriptions, defaults and the like) and
extension keys. Schemas are plain JSON values: dictionaries, or ``True``/``False``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

_SUBSCHEMA_ARRAY_KEYS = ("allOf", "anyOf", "oneOf")
_SUBSCHEMA_SINGLE_KEYS = ("not", "if", "then", "else")
_NUMBER_KEYS = ("multipleOf", "maximum", "exclusiveMaximum", "minimum", "exclusiveMinimum")
_STRING_KEYS = ("maxLength", "minLength", "pattern")
_ARRAY_KEYS = ("items", "additionalItems", "maxItems", "minItems", "uniqueItems", "contains")
_OBJECT_KEYS = (
    "maxProperties",
    "minProperties",
    "required",
    "properties",
    "patternProperties",
    "additionalProperties",
    "propertyNames",
)
_VALIDATION_KEYS = (
    ("type", "format", "enum", "const", "$ref")
    + _SUBSCHEMA_ARRAY_KEYS
    + _SUBSCHEMA_SINGLE_KEYS
    + _NUMBER_KEYS
    + _STRING_KEYS
    + _ARRAY_KEYS
    + _OBJECT_KEYS
)


def _check_schema(schema: Any) -> None:
    if not isinstance(schema, (bool, Mapping)):
        raise TypeError(f"a schema must be a boolean or a mapping, not {type(schema).__name__}")


def _json_equal(a: Any, b: Any) -> bool:
    """Equality of JSON values that tells booleans, integers and floats apart."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, int) or isinstance(b, int):
        return type(a) is type(b) and a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(_json_equal(a[key], b[key]) for key in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_json_equal(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def _group(schema: Optional[Mapping[str, Any]], keys: tuple[str, ...]) -> Optional[dict]:
    """The present, non-null values of ``keys``, or None when there are none."""
    if schema is None:
        return None
    found = {key: schema[key] for key in keys if schema.get(key) is not None}
    return found or None


def _roughly_option(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return roughly(a, b)


def _roughly_list(a: Optional[list], b: Optional[list]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return len(a) == len(b) and all(roughly(x, y) for x, y in zip(a, b))


def _roughly_properties(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    return len(a) == len(b) and all(
        a_name == b_name and roughly(a_schema, b_schema)
        for (a_name, a_schema), (b_name, b_schema) in zip(sorted(a.items()), sorted(b.items()))
    )


def _is_unconstrained(schema: Mapping[str, Any]) -> bool:
    return all(
        roughly_subschemas(schema, None) if key in _SUBSCHEMA_ARRAY_KEYS + _SUBSCHEMA_SINGLE_KEYS
        else schema.get(key) is None
        for key in _VALIDATION_KEYS
    ) and _object_group(schema) is None


def roughly(a: Any, b: Any) -> bool:
    """Whether two schemas are equivalent apart from metadata and extensions."""
    _check_schema(a)
    _check_schema(b)
    if isinstance(a, bool) and isinstance(b, bool):
        return a == b
    if a is False or b is False:
        return False
    if a is True:
        return _is_unconstrained(b)
    if b is True:
        return _is_unconstrained(a)

    return (
        _json_equal(a.get("type"), b.get("type"))
        and _json_equal(a.get("format"), b.get("format"))
        and _json_equal(a.get("enum"), b.get("enum"))
        and _json_equal(a.get("const"), b.get("const"))
        and roughly_subschemas(a, b)
        and _json_equal(_group(a, _NUMBER_KEYS), _group(b, _NUMBER_KEYS))
        and _json_equal(_group(a, _STRING_KEYS), _group(b, _STRING_KEYS))
        and roughly_array(a, b)
        and roughly_object(a, b)
        and _json_equal(a.get("$ref"), b.get("$ref"))
    )


def roughly_subschemas(a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]]) -> bool:
    """Compare the ``allOf``/``anyOf``/``oneOf``/``not``/``if``/``then``/``else`` parts."""
    keys = _SUBSCHEMA_ARRAY_KEYS + _SUBSCHEMA_SINGLE_KEYS
    aa = _group(a, keys)
    bb = _group(b, keys)
    if aa is None or bb is None:
        return aa is None and bb is None
    return all(_roughly_list(aa.get(key), bb.get(key)) for key in _SUBSCHEMA_ARRAY_KEYS) and all(
        _roughly_option(aa.get(key), bb.get(key)) for key in _SUBSCHEMA_SINGLE_KEYS
    )


def roughly_array(a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]]) -> bool:
    """Compare the array validation parts; only ``items`` is examined in detail."""
    aa = _group(a, _ARRAY_KEYS)
    bb = _group(b, _ARRAY_KEYS)
    if aa is None or bb is None:
        return aa is None and bb is None
    a_items = aa.get("items")
    b_items = bb.get("items")
    if a_items is None or b_items is None:
        return a_items is None and b_items is None
    a_many = isinstance(a_items, list)
    b_many = isinstance(b_items, list)
    if a_many != b_many:
        return False
    if a_many:
        return _roughly_list(a_items, b_items)
    return roughly(a_items, b_items)


def _object_group(schema: Optional[Mapping[str, Any]]) -> Optional[dict]:
    if schema is None:
        return None
    group = {
        "maxProperties": schema.get("maxProperties"),
        "minProperties": schema.get("minProperties"),
        "required": frozenset(schema.get("required") or ()),
        "properties": dict(schema.get("properties") or {}),
        "patternProperties": dict(schema.get("patternProperties") or {}),
        "additionalProperties": schema.get("additionalProperties"),
        "propertyNames": schema.get("propertyNames"),
    }
    if not any(group.values()) and group["maxProperties"] is None and group["minProperties"] is None:
        return None
    return group


def roughly_object(a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]]) -> bool:
    """Compare the object validation parts; ``required`` is compared as a set."""
    aa = _object_group(a)
    bb = _object_group(b)
    if aa is None or bb is None:
        return aa is None and bb is None
    return (
        _json_equal(aa["maxProperties"], bb["maxProperties"])
        and _json_equal(aa["minProperties"], bb["minProperties"])
        and aa["required"] == bb["required"]
        and _roughly_properties(aa["properties"], bb["properties"])
        and _roughly_properties(aa["patternProperties"], bb["patternProperties"])
        and _roughly_option(aa["additionalProperties"], bb["additionalProperties"])
        and _roughly_option(aa["propertyNames"], bb["propertyNames"])
    )