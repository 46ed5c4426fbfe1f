"""Names for generated types and enum variants, and the case conversions they need."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import reduce
from typing import Iterator, Optional, Sequence


class NameKind(enum.Enum):
    """How firmly a type name is fixed."""

    REQUIRED = "required"
    SUGGESTED = "suggested"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Name:
    """A type name that is required, merely suggested, or not known at all."""

    kind: NameKind
    value: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is NameKind.UNKNOWN and self.value is not None:
            raise ValueError("an unknown name carries no value")
        if self.kind is not NameKind.UNKNOWN and self.value is None:
            raise ValueError(f"a {self.kind.value} name needs a value")

    @classmethod
    def required(cls, value: str) -> Name:
        return cls(NameKind.REQUIRED, value)

    @classmethod
    def suggested(cls, value: str) -> Name:
        return cls(NameKind.SUGGESTED, value)

    @classmethod
    def unknown(cls) -> Name:
        return cls(NameKind.UNKNOWN)

    def into_option(self) -> Optional[str]:
        """The name as a string, or None when it is unknown."""
        return self.value

    def append(self, suffix: str) -> Name:
        """A suggested name made by joining this name and ``suffix`` with ``_``."""
        if self.kind is NameKind.UNKNOWN:
            return self
        return Name.suggested(f"{self.value}_{suffix}")


class _Mode(enum.Enum):
    BOUNDARY = 0
    LOWER = 1
    UPPER = 2


def _alnum_runs(text: str) -> list[str]:
    return "".join(c if c.isalnum() else " " for c in text).split()


def _split_words(text: str) -> Iterator[str]:
    """Split ``text`` into words at separators and case boundaries."""
    for chunk in _alnum_runs(text):
        start = 0
        mode = _Mode.BOUNDARY
        for position, (current, following) in enumerate(zip(chunk, chunk[1:])):
            if current.islower():
                next_mode = _Mode.LOWER
            elif current.isupper():
                next_mode = _Mode.UPPER
            else:
                next_mode = mode

            if next_mode is _Mode.LOWER and following.isupper():
                yield chunk[start : position + 1]
                start = position + 1
                mode = _Mode.BOUNDARY
            elif mode is _Mode.UPPER and current.isupper() and following.islower():
                yield chunk[start:position]
                start = position
                mode = _Mode.BOUNDARY
            else:
                mode = next_mode
        yield chunk[start:]


def to_kebab_case(name: str) -> str:
    """Lower-case words joined with hyphens."""
    return "-".join(word.lower() for word in _split_words(name))


def to_pascal_case(name: str) -> str:
    """Capitalised words joined without separators."""
    return "".join(word[:1].upper() + word[1:].lower() for word in _split_words(name))


def recase(name: str) -> tuple[str, Optional[str]]:
    """Return the Pascal-case identifier for ``name`` and the original name
    when the two differ (the name to use in serialized data)."""
    converted = to_pascal_case(name)
    if not converted:
        raise ValueError(f"{name!r} yields no usable identifier")
    if not converted.isidentifier():
        raise ValueError(f"{name!r} yields the invalid identifier {converted!r}")
    return converted, (None if converted == name else name)


def common_prefix(name: str, prefix: str) -> str:
    """The leading words shared by two names, in Pascal case."""
    shared = []
    for left, right in zip(to_kebab_case(name).split("-"), to_kebab_case(prefix).split("-")):
        if left != right:
            break
        shared.append(left)
    return to_pascal_case("-".join(shared))


def untagged_variant_names(names: Optional[Sequence[Optional[str]]], count: int) -> list[str]:
    """Choose variant names for an untagged enum of ``count`` subschemas.

    When every subschema is named, the names with their common prefix removed
    are used; otherwise, or when removing the prefix leaves a name empty, the
    variants are called ``Variant0``, ``Variant1`` and so on.
    """
    fallback = [f"Variant{index}" for index in range(count)]
    if names is None:
        return fallback
    if len(names) != count:
        raise ValueError(f"expected {count} names, got {len(names)}")
    if not names or any(name is None for name in names):
        return fallback

    prefix = reduce(common_prefix, names)
    stripped = [name[len(prefix) :] for name in names]
    if any(not name for name in stripped):
        return fallback
    return stripped