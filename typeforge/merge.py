"""Merging of JSON schemas, as needed to resolve ``allOf`` constructions.

A merge of two schemas admits exactly the data that both admit. Schemas are
plain JSON values: dictionaries, or ``True``/``False``. References are looked
up in a mapping from :class:`~typeforge.merge_fields.RefKey` to schema.
"""

from __future__ import annotations

import copy
import operator
from functools import reduce
from itertools import chain, islice, repeat
from typing import Any, Iterable, Mapping, Optional, Sequence

import jsonschema

from typeforge.merge_fields import (
    RefKey,
    Unsatisfiable,
    choose_value,
    merge_enum_values,
    merge_format,
    merge_instance_type,
    merge_number,
    merge_string,
    ref_key,
)
from typeforge.roughly import roughly

Defs = Mapping[RefKey, Any]

_METADATA_KEYS = (
    "$id",
    "title",
    "description",
    "default",
    "deprecated",
    "readOnly",
    "writeOnly",
    "examples",
)
_CORE_KEYS = ("type", "format", "enum", "const", "$ref")
_SUBSCHEMA_KEYS = ("allOf", "anyOf", "oneOf", "not", "if", "then", "else")
_NUMBER_KEYS = ("multipleOf", "maximum", "exclusiveMaximum", "minimum", "exclusiveMinimum")
_STRING_KEYS = ("maxLength", "minLength", "pattern")
_ARRAY_KEYS = ("items", "additionalItems", "maxItems", "minItems", "uniqueItems", "contains")


def _check_schema(schema: Any) -> None:
    if not isinstance(schema, (bool, Mapping)):
        raise TypeError(f"a schema must be a boolean or a mapping, not {type(schema).__name__}")


def _group(schema: Mapping[str, Any], keys: Iterable[str]) -> Optional[dict]:
    found = {key: schema[key] for key in keys if schema.get(key) is not None}
    return found or None


def _has_any(schema: Mapping[str, Any], keys: Iterable[str]) -> bool:
    return any(schema.get(key) is not None for key in keys)


def _subschemas(schema: Mapping[str, Any]) -> Optional[dict]:
    return _group(schema, _SUBSCHEMA_KEYS)


def _into_object(schema: Any) -> dict:
    if schema is True:
        return {}
    if schema is False:
        return {"not": True}
    return dict(schema)


def _object_validation(schema: Mapping[str, Any]) -> Optional[dict]:
    """The object keywords of a schema in normalised form, or None if it has none."""
    validation = {
        "required": set(schema.get("required") or ()),
        "properties": dict(schema.get("properties") or {}),
        "patternProperties": dict(schema.get("patternProperties") or {}),
        "additionalProperties": schema.get("additionalProperties"),
        "maxProperties": schema.get("maxProperties"),
        "minProperties": schema.get("minProperties"),
        "propertyNames": schema.get("propertyNames"),
    }
    if (
        validation["required"]
        or validation["properties"]
        or validation["patternProperties"]
        or _has_any(
            validation,
            ("additionalProperties", "maxProperties", "minProperties", "propertyNames"),
        )
    ):
        return validation
    return None


def _object_keys(validation: Mapping[str, Any]) -> dict:
    out: dict[str, Any] = {}
    for key in ("maxProperties", "minProperties"):
        if validation[key] is not None:
            out[key] = validation[key]
    if validation["required"]:
        out["required"] = sorted(validation["required"])
    if validation["properties"]:
        out["properties"] = dict(sorted(validation["properties"].items()))
    if validation["patternProperties"]:
        out["patternProperties"] = dict(sorted(validation["patternProperties"].items()))
    for key in ("additionalProperties", "propertyNames"):
        if validation[key] is not None:
            out[key] = validation[key]
    return out


def _value_conforms(schema: Mapping[str, Any], value: Any, defs: Defs) -> bool:
    document = dict(schema)
    definitions = {key.name: target for key, target in defs.items() if not key.is_root}
    if definitions:
        document["definitions"] = definitions
        document["$defs"] = definitions
    return jsonschema.Draft7Validator(document).is_valid(value)


def merge_all(schemas: Sequence[Any], defs: Defs) -> Any:
    """Merge all the given schemas; ``False`` if no value satisfies them all."""
    schemas = list(schemas)
    if len(schemas) < 2:
        raise ValueError("merge_all requires at least two schemas")
    first, second, *rest = schemas
    try:
        start = try_merge_schema(first, second, defs)
        return reduce(lambda schema, other: try_merge_schema(schema, other, defs), rest, start)
    except Unsatisfiable:
        return False


def _merge_additional_items(a: Any, b: Any, defs: Defs) -> Any:
    if a is None and b is None:
        return True
    return _merge_additional_properties(a, b, defs)


def _merge_additional_properties(a: Any, b: Any, defs: Defs) -> Any:
    if a is None:
        return copy.deepcopy(b)
    if b is None:
        return copy.deepcopy(a)
    try:
        return try_merge_schema(a, b, defs)
    except Unsatisfiable:
        return False


def try_merge_schema(a: Any, b: Any, defs: Defs) -> Any:
    """Merge two schemas; raise :class:`Unsatisfiable` if they admit no common value."""
    _check_schema(a)
    _check_schema(b)
    if a is False or b is False:
        return False
    if a is True:
        return copy.deepcopy(b)
    if b is True:
        return copy.deepcopy(a)

    a_ref = a.get("$ref")
    b_ref = b.get("$ref")
    if a_ref is not None and a_ref == b_ref:
        return {"$ref": a_ref}

    if a_ref is not None or b_ref is not None:
        ref_schema, other = (a, b) if a_ref is not None else (b, a)
        ref_name = ref_schema["$ref"]
        try:
            resolved = defs[ref_key(ref_name)]
        except KeyError:
            raise ValueError(f"unresolved reference: {ref_name}") from None
        merged = try_merge_schema(resolved, other, defs)
        # A merge that changes nothing about the referenced schema keeps the reference.
        if roughly(merged, resolved):
            return copy.deepcopy(dict(ref_schema))
        return merged

    return _merge_schema_object(a, b, defs)


def _merge_schema_object(a: Mapping[str, Any], b: Mapping[str, Any], defs: Defs) -> dict:
    if "$ref" in a or "$ref" in b:
        raise ValueError("references must be resolved before merging schema bodies")

    merged: dict[str, Any] = {}
    instance_type = merge_instance_type(a.get("type"), b.get("type"))
    if instance_type is not None:
        merged["type"] = instance_type
    schema_format = merge_format(a.get("format"), b.get("format"))
    if schema_format is not None:
        merged["format"] = schema_format

    groups = (
        merge_number(_group(a, _NUMBER_KEYS), _group(b, _NUMBER_KEYS)),
        merge_string(_group(a, _STRING_KEYS), _group(b, _STRING_KEYS)),
        _merge_array(_group(a, _ARRAY_KEYS), _group(b, _ARRAY_KEYS), defs),
    )
    for group in groups:
        if group:
            merged.update(group)
    object_validation = _merge_object(_object_validation(a), _object_validation(b), defs)
    if object_validation is not None:
        merged.update(_object_keys(object_validation))

    merged = _try_merge_with_subschemas(merged, _subschemas(a), defs)
    merged = _try_merge_with_subschemas(merged, _subschemas(b), defs)

    consts = {}
    if "const" in a:
        consts["a_const"] = a["const"]
    if "const" in b:
        consts["b_const"] = b["const"]
    enum_values = merge_enum_values(a.get("enum"), b_enum=b.get("enum"), **consts)
    if enum_values is None:
        return merged

    permitted = [value for value in enum_values if _value_conforms(merged, value, defs)]
    if not permitted:
        raise Unsatisfiable("no enumerated value conforms to the merged schema")
    merged["enum"] = permitted
    return merged


def merge_with_subschemas(
    schema: Mapping[str, Any], subschemas: Optional[Mapping[str, Any]], defs: Defs
) -> dict:
    """Merge a schema body with ``allOf``/``anyOf``/``oneOf``/``not`` subschemas."""
    present = None
    if subschemas:
        present = {key: value for key, value in subschemas.items() if value is not None} or None
    return _try_merge_with_subschemas(dict(schema), present, defs)


def _try_merge_with_subschemas(
    schema_object: dict, subschemas: Optional[Mapping[str, Any]], defs: Defs
) -> dict:
    if not subschemas:
        return schema_object
    keys = set(subschemas)

    if keys == {"allOf"}:
        merged = reduce(
            lambda schema, other: try_merge_schema(schema, other, defs),
            subschemas["allOf"],
            schema_object,
        )
        if merged is False:
            raise Unsatisfiable("allOf admits no value")
        return _into_object(merged)

    if keys in ({"anyOf"}, {"oneOf"}):
        (key,) = keys
        joined = []
        for other in subschemas[key]:
            try:
                merged = try_merge_schema(schema_object, other, defs)
            except Unsatisfiable:
                continue
            if roughly(merged, schema_object):
                joined.append(copy.deepcopy(schema_object))
            elif roughly(merged, other):
                joined.append(copy.deepcopy(other))
            else:
                joined.append(_join_schema(schema_object, other))
        if not joined:
            raise Unsatisfiable(f"no alternative of {key} is compatible")
        if len(joined) == 1:
            return _into_object(joined[0])
        result = {
            name: copy.deepcopy(schema_object[name])
            for name in _METADATA_KEYS
            if name in schema_object
        }
        result[key] = joined
        return result

    if keys == {"not"}:
        return _try_merge_schema_not(schema_object, subschemas["not"], defs)

    if keys <= {"if", "then", "else"}:
        raise ValueError("if/then/else schemas are not supported")

    raise ValueError(f"unsupported combination of subschemas: {sorted(keys)}")


def _try_merge_schema_not(schema_object: dict, not_schema: Any, defs: Defs) -> dict:
    """Remove what ``not_schema`` admits from ``schema_object``."""
    if not_schema is True:
        raise Unsatisfiable("not true admits no value")
    if not_schema is False:
        return schema_object

    if isinstance(not_schema, Mapping) and not _has_any(
        not_schema, _METADATA_KEYS + _CORE_KEYS + _NUMBER_KEYS + _STRING_KEYS + _ARRAY_KEYS
    ):
        not_object = _object_validation(not_schema)
        not_subschemas = _subschemas(not_schema)
        if not_object is not None and not_subschemas is None:
            result = copy.deepcopy(schema_object)
            if _object_validation(result) is not None:
                removed = not_object["required"]
                required = [name for name in result.get("required") or () if name not in removed]
                properties = {
                    name: prop
                    for name, prop in (result.get("properties") or {}).items()
                    if name not in removed
                }
                result.pop("required", None)
                result.pop("properties", None)
                if required:
                    result["required"] = required
                if properties:
                    result["properties"] = properties
            return result
        if not_subschemas is not None and not_object is None:
            return _try_merge_with_subschemas_not(schema_object, not_subschemas, defs)

    result = copy.deepcopy(schema_object)
    result["not"] = copy.deepcopy(not_schema)
    return result


def _try_merge_with_subschemas_not(
    schema_object: dict, not_subschemas: Mapping[str, Any], defs: Defs
) -> dict:
    keys = set(not_subschemas)
    if keys == {"anyOf"}:
        # not(anyOf) is allOf(not), which merges by subtraction.
        all_of = [{"not": copy.deepcopy(schema)} for schema in not_subschemas["anyOf"]]
        return _merge_schema_object(schema_object, {"allOf": all_of}, defs)
    raise ValueError(f"unsupported subschemas under not: {sorted(keys)}")


def _join_schema(a: Mapping[str, Any], b: Any) -> dict:
    return {"allOf": [copy.deepcopy(dict(a)), copy.deepcopy(b)]}


def _merge_items_array(
    pairs: Iterable[tuple[Any, Any]],
    min_items: Optional[int],
    max_items: Optional[int],
    defs: Defs,
) -> tuple[list, bool]:
    """Merge item schemas pairwise; also report whether more items may follow."""
    items: list = []
    for a, b in pairs:
        try:
            items.append(try_merge_schema(a, b, defs))
        except Unsatisfiable:
            if len(items) < (min_items if min_items is not None else 1):
                raise
            return items, False
        if max_items is not None and len(items) == max_items:
            return items, False
    return items, True


def _merge_array(
    a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]], defs: Defs
) -> Optional[dict]:
    if a is None:
        return copy.deepcopy(dict(b)) if b is not None else None
    if b is None:
        return copy.deepcopy(dict(a))

    max_items = choose_value(a.get("maxItems"), b.get("maxItems"), min)
    min_items = choose_value(a.get("minItems"), b.get("minItems"), max)
    unique_items = choose_value(a.get("uniqueItems"), b.get("uniqueItems"), operator.or_)

    a_contains = a.get("contains")
    b_contains = b.get("contains")
    if a_contains is None or b_contains is None:
        contains = copy.deepcopy(b_contains if a_contains is None else a_contains)
    elif a_contains == b_contains:
        contains = copy.deepcopy(a_contains)
    else:
        raise Unsatisfiable("arrays must contain two different things")

    if min_items is not None and max_items is not None and min_items > max_items:
        raise Unsatisfiable(f"minItems {min_items} exceeds maxItems {max_items}")

    a_items, a_additional = a.get("items"), a.get("additionalItems")
    b_items, b_additional = b.get("items"), b.get("additionalItems")
    a_many = isinstance(a_items, list)
    b_many = isinstance(b_items, list)

    if a_items is None and b_items is None:
        items, additional = None, None
    elif a_items is None or b_items is None:
        present, present_additional, many = (
            (b_items, b_additional, b_many) if a_items is None else (a_items, a_additional, a_many)
        )
        if not many:
            items, additional = copy.deepcopy(present), None
        elif max_items is not None and len(present) >= max_items:
            items, additional = copy.deepcopy(present[:max_items]), None
        else:
            items, additional = copy.deepcopy(present), copy.deepcopy(present_additional)
    elif not a_many and not b_many:
        items, additional = try_merge_schema(a_items, b_items, defs), None
    elif a_many != b_many:
        single = b_items if a_many else a_items
        array, array_additional = (a_items, a_additional) if a_many else (b_items, b_additional)
        items, allow_more = _merge_items_array(
            zip(array, repeat(single)), min_items, max_items, defs
        )
        if allow_more:
            additional = (
                copy.deepcopy(single)
                if array_additional is None
                else try_merge_schema(array_additional, single, defs)
            )
        else:
            additional, max_items = None, len(items)
    else:
        items_len = max(len(a_items), len(b_items))
        a_iter = chain(a_items, repeat(True if a_additional is None else a_additional))
        b_iter = chain(b_items, repeat(True if b_additional is None else b_additional))
        items, allow_more = _merge_items_array(
            islice(zip(a_iter, b_iter), items_len), min_items, max_items, defs
        )
        if allow_more:
            additional = _merge_additional_items(a_additional, b_additional, defs)
        else:
            additional, max_items = None, len(items)

    out: dict[str, Any] = {}
    for key, value in (
        ("items", items),
        ("additionalItems", additional),
        ("maxItems", max_items),
        ("minItems", min_items),
        ("uniqueItems", unique_items),
        ("contains", contains),
    ):
        if value is not None:
            out[key] = value
    return out or None


def _merge_additional(additional: Any, prop_schema: Any) -> Any:
    if additional is None or additional is True:
        return copy.deepcopy(prop_schema)
    if additional is False:
        raise Unsatisfiable("additional properties are forbidden")
    return {"allOf": [copy.deepcopy(additional), copy.deepcopy(prop_schema)]}


def _filter_prop(name: str, prop_schema: Any, validation: Mapping[str, Any]) -> Any:
    if name in validation["properties"]:
        raise ValueError(f"property {name!r} is named by both objects")
    if validation["propertyNames"] is not None:
        raise ValueError("merging with propertyNames is not supported")
    if validation["patternProperties"]:
        raise ValueError("merging with patternProperties is not supported")
    return _merge_additional(validation["additionalProperties"], prop_schema)


def _merge_object(
    a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]], defs: Defs
) -> Optional[dict]:
    if a is None:
        return copy.deepcopy(dict(b)) if b is not None else None
    if b is None:
        return copy.deepcopy(dict(a))

    properties: dict[str, Any] = {}
    for name, a_schema in a["properties"].items():
        try:
            if name in b["properties"]:
                properties[name] = try_merge_schema(a_schema, b["properties"][name], defs)
            else:
                properties[name] = _filter_prop(name, a_schema, b)
        except Unsatisfiable:
            if name in a["required"]:
                raise
    for name, b_schema in b["properties"].items():
        if name in a["properties"]:
            continue
        try:
            properties[name] = _filter_prop(name, b_schema, a)
        except Unsatisfiable:
            if name in b["required"]:
                raise

    return {
        "required": a["required"] | b["required"],
        "properties": dict(sorted(properties.items())),
        "patternProperties": {},
        "additionalProperties": _merge_additional_properties(
            a["additionalProperties"], b["additionalProperties"], defs
        ),
        "maxProperties": None,
        "minProperties": None,
        "propertyNames": None,
    }