# typeforge

Building blocks for turning JSON Schema documents into typed data models.

typeforge works on schemas as plain Python values: dictionaries, or `True` /
`False` (the shape you get from `json.load`). It provides:

- **Schema merging** (`typeforge.merge`, `typeforge.merge_fields`). Given the
  members of an `allOf`, it computes one schema that accepts exactly the
  values that all of them accept, or reports that no value can satisfy them
  all.
- **Loose schema comparison** (`typeforge.roughly`). Decides whether two
  schemas validate the same way, ignoring metadata such as titles and
  descriptions.
- **Type and variant naming** (`typeforge.naming`). Case conversion and the
  naming rules used for generated types and enum variants.

## Installation

```
pip install typeforge
```

## Merging schemas

```python
from typeforge.merge import try_merge_schema, merge_all
from typeforge.merge_fields import Unsatisfiable

a = {"type": "object", "properties": {"result": {"type": "string"}}}
b = {"required": ["result"], "properties": {"result": {"enum": ["success"]}}}

try_merge_schema(a, b, {})
# {'type': 'object', 'required': ['result'],
#  'properties': {'result': {'type': 'string', 'enum': ['success']}}}

try:
    try_merge_schema({"type": "integer"}, {"type": "string"}, {})
except Unsatisfiable:
    print("no value satisfies both")
```

`merge_all` folds a list of at least two schemas together and returns `False`
(the schema that matches nothing) when they cannot all hold at once:

```python
merge_all([{"type": "integer"}, {"type": "string"}], {})   # False
```

References (`{"$ref": "#/definitions/x"}`) are resolved through a mapping of
`RefKey` to schema. When merging with a referenced schema changes nothing about
it, the reference is kept:

```python
from typeforge.merge_fields import RefKey

defs = {RefKey.definition("x"): {"type": "string"}}
try_merge_schema({"$ref": "#/definitions/x"}, {"type": "string"}, defs)
# {'$ref': '#/definitions/x'}
```

`merge_with_subschemas` merges a schema body with an `allOf`, `anyOf`,
`oneOf` or `not` part. Enumerated values that survive a merge are checked
against the merged schema with `jsonschema`.

Some constructions are not supported and raise `ValueError`: `if`/`then`/`else`,
merging two sets of number or string constraints, and merging objects that use
`propertyNames` or `patternProperties`.

### Field mergers

`typeforge.merge_fields` holds the per-keyword mergers, each raising
`Unsatisfiable` when the two sides cannot both hold:

```python
from typeforge.merge_fields import merge_instance_type, merge_format, merge_enum_values

merge_instance_type(["integer", "number"], "integer")   # 'integer'
merge_format("ip", "ipv4")                              # 'ipv4'
merge_enum_values(["a", "b"], b_enum=["b", "c"])        # ['b']
```

It also has `merge_number`, `merge_string`, `choose_value`, `ref_key` and
`RefKey.root()`.

## Comparing schemas

```python
from typeforge.roughly import roughly

roughly({"type": "string", "title": "x"}, {"type": "string"})   # True
roughly({"type": "string"}, {"type": "integer"})                # False
```

`roughly_subschemas`, `roughly_array` and `roughly_object` compare the
corresponding parts of two schemas.

## Naming

```python
from typeforge.naming import Name, recase, to_pascal_case, untagged_variant_names

Name.required("Event").append("payload").into_option()   # 'Event_payload'
Name.unknown().append("payload").into_option()           # None

to_pascal_case("review_request_removed")   # 'ReviewRequestRemoved'
recase("review_request_removed")           # ('ReviewRequestRemoved', 'review_request_removed')

untagged_variant_names(["ThingsOfYours", "ThingsOfMine"], 2)   # ['Yours', 'Mine']
untagged_variant_names(None, 2)                                # ['Variant0', 'Variant1']
```

`to_kebab_case` and `common_prefix` are available too.

## What the package does not do

typeforge does not examine the alternatives of a `oneOf` to decide whether
they form an optional value, a tagged enum or an untagged union, and it does
not generate any source code. It supplies the merging, comparison and naming
pieces such a generator needs.

## Running the tests

```
pip install -e .[test]
pytest
```