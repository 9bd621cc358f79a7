"""
A pretty-printer for casperlang values, patterns and definitions.
"""
from typing import Sequence

from casper.casper_datatypes import (
    IntValue, FloatValue, StringValue, ListValue, DictValue, ConstructedValue, ClosureValue
)
from casper.casper_patterns import (
    Wildcard, Binding, TagMatch, NamedTagMatch, ContainerMatch, ArityMatch, LIST_KIND
)
from casper.casper_functions import FunctionDefinition
from casper.casper_tags import Tag


class Printer:
    """Formats casperlang objects into short, readable text."""

    def __init__(self, max_depth: int = 32):
        # Deeper structure is elided as '...'.
        self.max_depth = max_depth
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        if level > self.max_depth:
            return "..."
        handler = self._get_handler(obj)
        return handler(obj, level)

    def pformat_score(self, score: Sequence[int]) -> str:
        return "[" + ", ".join(str(x) for x in score) + "]"

    def pformat_call(self, name: str, args: Sequence) -> str:
        parts = [name] + [self._atom(a, 1) for a in args]
        return " ".join(parts)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, tuple):
            return self._pformat_tuple
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            IntValue: self._pformat_primitive,
            FloatValue: self._pformat_primitive,
            StringValue: self._pformat_string,
            ListValue: self._pformat_list,
            DictValue: self._pformat_dict,
            ConstructedValue: self._pformat_constructed,
            ClosureValue: self._pformat_closure,
            Wildcard: lambda o, l: "_",
            Binding: lambda o, l: o.name,
            TagMatch: self._pformat_tag_match,
            NamedTagMatch: self._pformat_named_tag_match,
            ContainerMatch: self._pformat_container_match,
            ArityMatch: lambda o, l: f"<fn/{o.arity}>",
            FunctionDefinition: self._pformat_definition,
            Tag: lambda o, l: o.name,
        }

    # --- values ---

    def _pformat_primitive(self, obj, level):
        return repr(obj.value)

    def _pformat_string(self, obj, level):
        escaped = obj.value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'

    def _pformat_list(self, obj, level):
        return "[" + ", ".join(self.pformat(x, level + 1) for x in obj.items) + "]"

    def _pformat_dict(self, obj, level):
        items = (f'"{k}": {self.pformat(v, level + 1)}' for k, v in obj.entries.items())
        return "{" + ", ".join(items) + "}"

    def _pformat_constructed(self, obj, level):
        if not obj.fields:
            return obj.tag.name
        return " ".join([obj.tag.name] + [self._atom(f, level + 1) for f in obj.fields])

    def _pformat_closure(self, obj, level):
        return f"<closure/{obj.arity}>"

    def _pformat_tuple(self, obj, level):
        return "(" + ", ".join(self.pformat(x, level + 1) for x in obj) + ")"

    # --- patterns ---

    def _pformat_tag_match(self, obj, level):
        if not obj.fields:
            return obj.tag.name
        return " ".join([obj.tag.name] + [self._atom(f, level + 1) for f in obj.fields])

    def _pformat_named_tag_match(self, obj, level):
        if not obj.fields:
            return f"{obj.name}::{obj.tag.name}"
        return f"{obj.name}::({self._pformat_tag_match(obj, level)})"

    def _pformat_container_match(self, obj, level):
        inner = "*" if obj.element is None else self.pformat(obj.element, level + 1) + "*"
        return f"[{inner}]" if obj.kind == LIST_KIND else "{" + inner + "}"

    def _pformat_definition(self, obj, level):
        head = " ".join([obj.name] + [self._atom(p, level + 1) for p in obj.params])
        if isinstance(obj.body, str):
            return f"{head} = {obj.body}"
        return head

    def _atom(self, obj, level):
        """Format `obj` as an argument, parenthesized when it has fields."""
        text = self.pformat(obj, level)
        if isinstance(obj, (ConstructedValue, TagMatch)) and not isinstance(obj, NamedTagMatch) and obj.fields:
            return f"({text})"
        return text
