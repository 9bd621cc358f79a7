"""
Defines the runtime values of casperlang.

Every value is immutable once built. All values except closures have exactly
one own tag: primitives and containers use the fixed primitive tags, and a
ConstructedValue carries the tag it was built with.
"""
import collections.abc
import math
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from casper.casper_tags import Tag, TagRegistry

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


# =================================================================
# Abstract Base Class
# =================================================================

class Value:
    """Base class for all casperlang values."""
    # Name of the fixed primitive tag, for the variants that have one.
    tag_name: Optional[str] = None

    def __setattr__(self, key, value):
        if key in self.__dict__ or getattr(self, "_sealed", False):
            raise AttributeError(f"{type(self).__name__} is immutable")
        object.__setattr__(self, key, value)

    def __delattr__(self, key):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _seal(self):
        object.__setattr__(self, "_sealed", True)

    def own_tag(self, registry: 'TagRegistry') -> Optional['Tag']:
        """The exact tag this value was built with, or None for closures."""
        return registry.lookup(self.tag_name) if self.tag_name else None

    def tag_chain(self, registry: 'TagRegistry') -> Tuple['Tag', ...]:
        tag = self.own_tag(registry)
        return registry.ancestor_chain(tag) if tag is not None else ()

    def __repr__(self) -> str:
        from casper.casper_printer import Printer
        return Printer().pformat(self)


def _require_value(item: Any, where: str) -> 'Value':
    if not isinstance(item, Value):
        raise TypeError(f"{where} must hold casperlang values, not {type(item).__name__}")
    return item


# =================================================================
# Primitives
# =================================================================

class IntValue(Value):
    tag_name = "Int"

    def __init__(self, value: int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"IntValue needs an int, not {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise OverflowError(f"{value} does not fit in a signed 64-bit integer")
        self.value = value
        self._seal()

    def __eq__(self, other):
        return isinstance(other, IntValue) and self.value == other.value

    def __hash__(self):
        return hash(("Int", self.value))


class FloatValue(Value):
    tag_name = "Float"

    def __init__(self, value: float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"FloatValue needs a float, not {type(value).__name__}")
        self.value = float(value)
        self._seal()

    def __eq__(self, other):
        if not isinstance(other, FloatValue):
            return False
        # NaN is equal to itself so that values stay usable as dict keys.
        if math.isnan(self.value) and math.isnan(other.value):
            return True
        return self.value == other.value

    def __hash__(self):
        return hash(("Float", "nan" if math.isnan(self.value) else self.value))


class StringValue(Value):
    tag_name = "String"

    def __init__(self, value: str):
        if not isinstance(value, str):
            raise TypeError(f"StringValue needs a str, not {type(value).__name__}")
        self.value = value
        self._seal()

    def __eq__(self, other):
        return isinstance(other, StringValue) and self.value == other.value

    def __hash__(self):
        return hash(("String", self.value))


# =================================================================
# Containers
# =================================================================

class ListValue(Value, collections.abc.Sequence):
    """An ordered, immutable sequence of values."""
    tag_name = "List"

    def __init__(self, items: Iterable[Value] = ()):
        self.items: Tuple[Value, ...] = tuple(_require_value(i, "ListValue") for i in items)
        self._seal()

    def __getitem__(self, index):
        return self.items[index]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __eq__(self, other):
        return isinstance(other, ListValue) and self.items == other.items

    def __hash__(self):
        return hash(("List", self.items))


class DictValue(Value, collections.abc.Mapping):
    """A string-keyed mapping that keeps insertion order."""
    tag_name = "Dict"

    def __init__(self, entries: Any = ()):
        if isinstance(entries, collections.abc.Mapping):
            entries = entries.items()
        data: Dict[str, Value] = {}
        for key, item in entries:
            if not isinstance(key, str):
                raise TypeError(f"DictValue keys must be str, not {type(key).__name__}")
            if key in data:
                raise ValueError(f"duplicate DictValue key {key!r}")
            data[key] = _require_value(item, "DictValue")
        self.entries: Mapping[str, Value] = MappingProxyType(data)
        self._seal()

    def __getitem__(self, key: str) -> Value:
        return self.entries[key]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __eq__(self, other):
        # Order is part of a dict's identity.
        return isinstance(other, DictValue) and list(self.entries.items()) == list(other.entries.items())

    def __hash__(self):
        return hash(("Dict", tuple(self.entries.items())))


# =================================================================
# Constructed values and closures
# =================================================================

class ConstructedValue(Value):
    """A value built by a user constructor: a tag plus ordered fields."""
    def __init__(self, tag: 'Tag', fields: Iterable[Value] = ()):
        from casper.casper_tags import Tag
        if not isinstance(tag, Tag):
            raise TypeError(f"ConstructedValue needs a Tag, not {type(tag).__name__}")
        self.tag = tag
        self.fields: Tuple[Value, ...] = tuple(_require_value(f, "ConstructedValue") for f in fields)
        self._seal()

    def own_tag(self, registry: 'TagRegistry') -> 'Tag':
        # Rejects tags from a different registry.
        registry.ancestor_chain(self.tag)
        return self.tag

    def __eq__(self, other):
        return isinstance(other, ConstructedValue) and self.tag == other.tag and self.fields == other.fields

    def __hash__(self):
        return hash((self.tag, self.fields))


class ClosureValue(Value):
    """A function value. Closures have an arity but no tag."""
    def __init__(self, arity: int, environment: Optional[Mapping[str, Any]] = None, body: Any = None):
        if isinstance(arity, bool) or not isinstance(arity, int) or arity < 0:
            raise ValueError(f"closure arity must be a non-negative int, got {arity!r}")
        self.arity = arity
        self.environment: Mapping[str, Any] = MappingProxyType(dict(environment or {}))
        self.body = body
        self._seal()

    def own_tag(self, registry: 'TagRegistry') -> None:
        return None

    def __eq__(self, other):
        if not isinstance(other, ClosureValue):
            return NotImplemented
        # NOTE: bodies compare by identity; they are opaque to the core.
        return self.arity == other.arity and self.body is other.body and dict(self.environment) == dict(other.environment)

    __hash__ = None


# =================================================================
# Helpers
# =================================================================

def from_python(obj: Any) -> Value:
    """Convert plain Python data (int, float, str, list, dict) into values.

    Existing values pass through unchanged. Booleans and None have no
    primitive counterpart and are rejected.
    """
    if isinstance(obj, Value):
        return obj
    if isinstance(obj, bool) or obj is None:
        raise TypeError(f"{obj!r} has no casperlang primitive; use a constructed value")
    if isinstance(obj, int):
        return IntValue(obj)
    if isinstance(obj, float):
        return FloatValue(obj)
    if isinstance(obj, str):
        return StringValue(obj)
    if isinstance(obj, (list, tuple)):
        return ListValue(from_python(x) for x in obj)
    if isinstance(obj, collections.abc.Mapping):
        return DictValue((k, from_python(v)) for k, v in obj.items())
    raise TypeError(f"cannot convert {type(obj).__name__} to a casperlang value")
