"""
Pattern trees: the structural templates that parameters are matched against.

A pattern is one of a closed set of node kinds. Patterns are built by the
loader (or an external parser) once, and only read afterwards.
"""
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from casper.casper_tags import Tag

LIST_KIND = "List"
DICT_KIND = "Dict"
CONTAINER_KINDS = (LIST_KIND, DICT_KIND)


class Pattern:
    """Base class for all pattern nodes."""

    def children(self) -> Tuple['Pattern', ...]:
        return ()

    def own_names(self) -> Tuple[str, ...]:
        """Names bound by this node itself, not by its children."""
        return ()

    def names(self) -> Tuple[str, ...]:
        """Every name bound anywhere in the tree, in depth-first order.

        Duplicates are kept so callers can detect collisions.
        """
        out: List[str] = []
        stack: List[Pattern] = [self]
        while stack:
            node = stack.pop()
            out.extend(node.own_names())
            stack.extend(reversed(node.children()))
        return tuple(out)

    def __repr__(self) -> str:
        from casper.casper_printer import Printer
        return Printer().pformat(self)


class Wildcard(Pattern):
    """Matches anything and binds nothing (`_`)."""
    def __eq__(self, other):
        return isinstance(other, Wildcard)

    def __hash__(self):
        return hash("_")


class Binding(Pattern):
    """Matches anything and binds it to `name`."""
    def __init__(self, name: str):
        self.name = name

    def own_names(self):
        return (self.name,)

    def __eq__(self, other):
        return isinstance(other, Binding) and self.name == other.name

    def __hash__(self):
        return hash(("bind", self.name))


class TagMatch(Pattern):
    """Matches values whose tag chain contains `tag`.

    With fields, the value must be a ConstructedValue built with exactly
    `tag` and holding as many fields, each matched in order.
    """
    def __init__(self, tag: 'Tag', fields: Sequence[Pattern] = ()):
        self.tag = tag
        self.fields: Tuple[Pattern, ...] = tuple(fields)

    def children(self):
        return self.fields

    def __eq__(self, other):
        return type(other) is TagMatch and self.tag == other.tag and self.fields == other.fields

    def __hash__(self):
        return hash(("tag", self.tag, self.fields))


class NamedTagMatch(TagMatch):
    """A TagMatch that also binds the whole value (`name::Tag`)."""
    def __init__(self, name: str, tag: 'Tag', fields: Sequence[Pattern] = ()):
        super().__init__(tag, fields)
        self.name = name

    def own_names(self):
        return (self.name,)

    def __eq__(self, other):
        return (
            isinstance(other, NamedTagMatch) and
            self.name == other.name and
            self.tag == other.tag and
            self.fields == other.fields
        )

    def __hash__(self):
        return hash(("named", self.name, self.tag, self.fields))


class ContainerMatch(Pattern):
    """Matches a List or Dict, optionally requiring every element to match."""
    def __init__(self, kind: str, element: Optional[Pattern] = None):
        if kind not in CONTAINER_KINDS:
            raise ValueError(f"container kind must be one of {CONTAINER_KINDS}, not {kind!r}")
        self.kind = kind
        self.element = element

    def children(self):
        return (self.element,) if self.element is not None else ()

    def __eq__(self, other):
        return isinstance(other, ContainerMatch) and self.kind == other.kind and self.element == other.element

    def __hash__(self):
        return hash(("container", self.kind, self.element))


class ArityMatch(Pattern):
    """Matches a closure taking exactly `arity` arguments."""
    def __init__(self, arity: int):
        if isinstance(arity, bool) or not isinstance(arity, int) or arity < 1:
            raise ValueError(f"arity pattern needs an int >= 1, got {arity!r}")
        self.arity = arity

    def __eq__(self, other):
        return isinstance(other, ArityMatch) and self.arity == other.arity

    def __hash__(self):
        return hash(("arity", self.arity))


def bound_names(patterns: Sequence[Pattern]) -> Tuple[str, ...]:
    """All names bound across a parameter list, in parameter order."""
    out: List[str] = []
    for p in patterns:
        out.extend(p.names())
    return tuple(out)


def first_duplicate(names: Sequence[str]) -> Optional[str]:
    seen = set()
    for n in names:
        if n in seen:
            return n
        seen.add(n)
    return None
