import pytest

from typeforge.merge import merge_all, merge_with_subschemas, try_merge_schema
from typeforge.merge_fields import RefKey, Unsatisfiable


def test_simple_merge():
    a = {"type": "object", "properties": {"result": {"type": "string"}}}
    b = {
        "required": ["result", "msg"],
        "properties": {"result": {"enum": ["success"]}, "msg": {"type": "string"}},
    }
    ab = {
        "type": "object",
        "required": ["msg", "result"],
        "properties": {
            "result": {"type": "string", "enum": ["success"]},
            "msg": {"type": "string"},
        },
    }
    assert try_merge_schema(a, b, {}) == ab


def test_nop_merge():
    uri = ["avatar_url", "followers_url", "html_url", "organizations_url",
           "received_events_url", "repos_url", "subscriptions_url", "url"]
    uri_template = ["events_url", "following_url", "gists_url", "starred_url"]
    properties = {name: {"type": "string", "format": "uri"} for name in uri}
    properties.update({name: {"type": "string", "format": "uri-template"} for name in uri_template})
    properties.update(
        {
            "email": {"type": ["string", "null"]},
            "gravatar_id": {"type": "string"},
            "id": {"type": "integer"},
            "login": {"type": "string"},
            "name": {"type": "string"},
            "node_id": {"type": "string"},
            "site_admin": {"type": "boolean"},
            "type": {"type": "string", "enum": ["Bot", "User", "Organization"]},
        }
    )
    required = sorted(
        uri + uri_template + ["gravatar_id", "id", "login", "node_id", "site_admin", "type"]
    )
    a = {
        "type": "object",
        "required": required,
        "properties": properties,
        "additionalProperties": False,
    }
    assert try_merge_schema(a, {}, {}) == a


@pytest.mark.parametrize(
    "a, b",
    [
        (
            {"type": "array", "items": {"type": "integer"}},
            {"type": "array", "items": {"type": "string"}},
        ),
        (
            {"type": "array", "items": [{"type": "integer"}, {"type": "object"}]},
            {"type": "array", "items": {"type": "string"}},
        ),
        (
            {"type": "array", "items": [{"type": "integer"}, {"type": "object"}]},
            {"type": "array", "items": [{"type": "string"}, {"type": "object"}]},
        ),
        (
            {
                "type": "array",
                "items": [{"type": "integer"}] * 4,
                "minItems": 3,
                "maxItems": 4,
            },
            {
                "type": "array",
                "items": [{"type": "integer"}] * 2,
                "additionalItems": {"type": "string"},
                "maxItems": 100,
            },
        ),
    ],
)
def test_array_fail(a, b):
    with pytest.raises(Unsatisfiable):
        try_merge_schema(a, b, {})


def test_array_good1():
    a = {"type": "array", "items": [{"type": "integer"}] * 4, "maxItems": 4}
    b = {
        "type": "array",
        "items": [{"type": "integer"}] * 2,
        "additionalItems": {"type": "integer"},
        "maxItems": 3,
    }
    ab = {"type": "array", "items": [{"type": "integer"}] * 3, "maxItems": 3}
    assert try_merge_schema(a, b, {}) == ab


def test_array_good2():
    a = {"type": "array", "items": [{"type": "integer"}] * 3, "maxItems": 4}
    b = {"type": "array", "items": [{"type": "integer"}] * 2, "additionalItems": True}
    ab = {
        "type": "array",
        "items": [{"type": "integer"}] * 3,
        "additionalItems": True,
        "maxItems": 4,
    }
    assert try_merge_schema(a, b, {}) == ab


def test_array_good3():
    a = {"type": "array", "items": [{"type": "integer"}] * 3, "maxItems": 4}
    b = {
        "type": "array",
        "items": [{"type": "integer"}, {"type": "integer"}, {"type": "string"}],
        "additionalItems": True,
    }
    ab = {"type": "array", "items": [{"type": "integer"}] * 2, "maxItems": 2}
    assert try_merge_schema(a, b, {}) == ab


def test_match_one_of():
    a = {"$ref": "#/definitions/x"}
    b = {"oneOf": [{"$ref": "#/definitions/x"}, {"type": "null"}]}
    defs = {RefKey.definition("x"): {"type": "string"}}
    assert try_merge_schema(a, b, defs) == {"$ref": "#/definitions/x"}


def test_all_of_one_of_identity():
    a = {"oneOf": [{"$ref": "#/definitions/x"}, {"type": "null"}]}
    b = {"oneOf": [{"$ref": "#/definitions/x"}, {"type": "null"}]}
    defs = {RefKey.definition("x"): {"title": "x", "type": "string"}}
    assert try_merge_schema(a, b, defs) == {
        "oneOf": [{"$ref": "#/definitions/x"}, {"type": "null"}]
    }


def test_boolean_schemas():
    assert try_merge_schema(False, {"type": "string"}, {}) is False
    assert try_merge_schema(True, {"type": "string"}, {}) == {"type": "string"}
    assert try_merge_schema({"type": "integer"}, True, {}) == {"type": "integer"}


def test_same_reference_is_kept():
    a = {"$ref": "#/definitions/x", "description": "one"}
    b = {"$ref": "#/definitions/x"}
    assert try_merge_schema(a, b, {}) == {"$ref": "#/definitions/x"}


def test_unresolved_reference():
    with pytest.raises(ValueError):
        try_merge_schema({"$ref": "#/definitions/missing"}, {"type": "string"}, {})


def test_enum_values_filtered_by_type():
    merged = try_merge_schema({"enum": [1, "a", "b"]}, {"type": "string"}, {})
    assert merged == {"type": "string", "enum": ["a", "b"]}


def test_enum_values_none_conforming():
    with pytest.raises(Unsatisfiable):
        try_merge_schema({"enum": [1, 2]}, {"type": "string"}, {})


def test_ip_format_narrows():
    merged = try_merge_schema({"type": "string", "format": "ip"}, {"format": "ipv4"}, {})
    assert merged == {"type": "string", "format": "ipv4"}


def test_incompatible_optional_property_is_dropped():
    a = {"properties": {"x": {"type": "integer"}}, "additionalProperties": False}
    b = {"properties": {"y": {"type": "string"}}}
    assert try_merge_schema(a, b, {}) == {
        "properties": {"x": {"type": "integer"}},
        "additionalProperties": False,
    }


def test_incompatible_required_property_is_unsatisfiable():
    a = {"properties": {"x": {"type": "integer"}}, "additionalProperties": False}
    b = {"properties": {"y": {"type": "string"}}, "required": ["y"]}
    with pytest.raises(Unsatisfiable):
        try_merge_schema(a, b, {})


def test_merge_all_three():
    merged = merge_all(
        [{"type": "object"}, {"properties": {"a": {"type": "string"}}}, {"required": ["a"]}],
        {},
    )
    assert merged == {
        "type": "object",
        "properties": {"a": {"type": "string"}},
        "required": ["a"],
    }


def test_merge_all_unsatisfiable_is_false():
    assert merge_all([{"type": "string"}, {"type": "integer"}], {}) is False


def test_merge_all_needs_two():
    with pytest.raises(ValueError):
        merge_all([{"type": "string"}], {})


def test_merge_with_all_of():
    merged = merge_with_subschemas(
        {"type": "object"},
        {"allOf": [{"properties": {"a": {"type": "integer"}}}, {"required": ["a"]}]},
        {},
    )
    assert merged == {
        "type": "object",
        "properties": {"a": {"type": "integer"}},
        "required": ["a"],
    }


def test_merge_with_not_required():
    schema = {
        "type": "object",
        "required": ["a", "b"],
        "properties": {"a": {"type": "string"}, "b": {"type": "string"}},
    }
    merged = merge_with_subschemas(schema, {"not": {"required": ["b"]}}, {})
    assert merged == {
        "type": "object",
        "required": ["a"],
        "properties": {"a": {"type": "string"}},
    }


def test_merge_with_not_true_is_unsatisfiable():
    with pytest.raises(Unsatisfiable):
        merge_with_subschemas({"type": "string"}, {"not": True}, {})


def test_merge_with_not_false_is_identity():
    assert merge_with_subschemas({"type": "string"}, {"not": False}, {}) == {"type": "string"}


def test_merge_with_any_of_none_compatible():
    with pytest.raises(Unsatisfiable):
        merge_with_subschemas(
            {"type": "string"}, {"anyOf": [{"type": "integer"}, {"type": "null"}]}, {}
        )


def test_merge_with_any_of_single_survivor():
    merged = merge_with_subschemas(
        {"type": "string"}, {"anyOf": [{"type": "integer"}, {"type": "string"}]}, {}
    )
    assert merged == {"type": "string"}


def test_merge_with_if_then_else_unsupported():
    with pytest.raises(ValueError):
        merge_with_subschemas({"type": "string"}, {"if": {"type": "string"}}, {})