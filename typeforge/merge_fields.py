"""Merging of the individual keywords of two JSON schemas.

Each ``merge_*`` function combines one keyword (or one group of keywords) of
two schemas so that the result admits exactly the data both admit. When no
data can satisfy both, :class:`Unsatisfiable` is raised.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from functools import total_ordering
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar, Union

T = TypeVar("T")

InstanceType = Union[str, list]

# Canonical ordering of JSON schema instance types; intersections of type
# lists come out in this order.
_INSTANCE_TYPE_ORDER = ("null", "boolean", "object", "array", "number", "string", "integer")

_IP_FLAVOURS = ("ipv4", "ipv6")


class Unsatisfiable(Exception):
    """Two schemas admit no common value."""


@total_ordering
@dataclass(frozen=True)
class RefKey:
    """The key of a referenced schema: the root schema or a named definition."""

    name: Optional[str] = None

    @classmethod
    def root(cls) -> RefKey:
        return cls(None)

    @classmethod
    def definition(cls, name: str) -> RefKey:
        if name is None:
            raise ValueError("a definition needs a name")
        return cls(name)

    @property
    def is_root(self) -> bool:
        return self.name is None

    def _sort_key(self) -> tuple[int, str]:
        return (0, "") if self.name is None else (1, self.name)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RefKey):
            return NotImplemented
        return self._sort_key() < other._sort_key()


def ref_key(reference: str) -> RefKey:
    """The key named by a ``$ref`` value such as ``#/definitions/thing``."""
    if reference == "#":
        return RefKey.root()
    _, slash, name = reference.rpartition("/")
    if not slash:
        raise ValueError(f"expected a '/' in $ref: {reference}")
    return RefKey.definition(name)


def _same_json(a: Any, b: Any) -> bool:
    """Equality of JSON values that tells booleans, integers and floats apart."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) or isinstance(b, (int, float)):
        return type(a) is type(b) and a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(_same_json(a[key], b[key]) for key in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_same_json(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def _check_type_name(name: Any) -> str:
    if name not in _INSTANCE_TYPE_ORDER:
        raise ValueError(f"unknown instance type {name!r}")
    return name


def merge_instance_type(
    a: Optional[InstanceType], b: Optional[InstanceType]
) -> Optional[InstanceType]:
    """Intersect two ``type`` values, each None, a type name or a list of names.

    A lone surviving type is returned as a name, several as a list.
    """
    if a is None:
        return copy.copy(b)
    if b is None:
        return copy.copy(a)

    a_many = isinstance(a, list)
    b_many = isinstance(b, list)

    if not a_many and not b_many:
        if _check_type_name(a) != _check_type_name(b):
            raise Unsatisfiable(f"types {a!r} and {b!r} do not overlap")
        return a

    if a_many != b_many:
        single, many = (b, a) if a_many else (a, b)
        _check_type_name(single)
        if single not in [_check_type_name(name) for name in many]:
            raise Unsatisfiable(f"type {single!r} is not among {many!r}")
        return single

    a_set = {_check_type_name(name) for name in a}
    b_set = {_check_type_name(name) for name in b}
    common = [name for name in _INSTANCE_TYPE_ORDER if name in a_set and name in b_set]
    if not common:
        raise Unsatisfiable(f"types {a!r} and {b!r} do not overlap")
    if len(common) == 1:
        return common[0]
    return common


def merge_format(a: Optional[str], b: Optional[str]) -> Optional[str]:
    """Combine two ``format`` values.

    Differing formats are incompatible, except that ``ip`` yields to the more
    specific ``ipv4`` or ``ipv6``.
    """
    if a is None:
        return b
    if b is None:
        return a
    if a == "ip" and b in _IP_FLAVOURS:
        return b
    if b == "ip" and a in _IP_FLAVOURS:
        return a
    if a == b:
        return a
    raise Unsatisfiable(f"formats {a!r} and {b!r} are incompatible")


def _allowed_values(enum_values: Optional[Sequence[Any]], const: Any, has_const: bool):
    if enum_values is not None and has_const:
        raise ValueError("a schema with both enum and const is not supported")
    if enum_values is not None:
        return list(enum_values)
    if has_const:
        return [const]
    return None


_MISSING = object()


def merge_enum_values(
    a_enum: Optional[Sequence[Any]],
    a_const: Any = _MISSING,
    b_enum: Optional[Sequence[Any]] = None,
    b_const: Any = _MISSING,
) -> Optional[list]:
    """Intersect the values permitted by ``enum``/``const`` of two schemas.

    A ``const`` is passed as the value itself; leave it out (or pass the
    module's missing marker by omission) when the schema has none. The result
    keeps the order of the first schema's values; None means unrestricted.
    """
    aa = _allowed_values(a_enum, a_const, a_const is not _MISSING)
    bb = _allowed_values(b_enum, b_const, b_const is not _MISSING)

    if aa is None:
        return bb
    if bb is None:
        return aa
    values = [value for value in aa if any(_same_json(value, other) for other in bb)]
    if not values:
        raise Unsatisfiable("no value is permitted by both enumerations")
    return values


def _merge_validation_group(
    a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]], what: str
) -> Optional[dict]:
    if a is None:
        return None if b is None else copy.deepcopy(dict(b))
    if b is None:
        return copy.deepcopy(dict(a))
    raise ValueError(f"merging two sets of {what} constraints is not supported")


def merge_number(
    a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]]
) -> Optional[dict]:
    """Combine number constraints, of which at most one side may have any."""
    return _merge_validation_group(a, b, "number")


def merge_string(
    a: Optional[Mapping[str, Any]], b: Optional[Mapping[str, Any]]
) -> Optional[dict]:
    """Combine string constraints, of which at most one side may have any."""
    return _merge_validation_group(a, b, "string")


def choose_value(a: Optional[T], b: Optional[T], prefer: Callable[[T, T], T]) -> Optional[T]:
    """Prefer a present value to None, and ``prefer(a, b)`` when both are present."""
    if a is None:
        return b
    if b is None:
        return a
    return prefer(a, b)