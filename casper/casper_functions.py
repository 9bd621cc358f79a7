"""
Function definitions and the table that groups them by name.

Definitions are added during the load phase only. The table checks the
load-time rules (one definition per constructor, no name bound twice within a
definition) as each definition arrives.
"""
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from casper.casper_errors import DuplicateBindingError, DuplicateConstructorError, RegistryFrozenError
from casper.casper_patterns import Pattern, bound_names, first_duplicate


def is_constructor_name(name: str) -> bool:
    return bool(name) and name[0].isupper()


class FunctionDefinition:
    """One clause of a function: a name, parameter patterns and a body.

    The body is opaque to the dispatch core; it is handed back to whoever
    evaluates the winning definition.
    """
    def __init__(self, name: str, params: Sequence[Pattern], body: Any = None):
        self.name = name
        self.params: Tuple[Pattern, ...] = tuple(params)
        self.body = body
        # Definition order inside the owning table, set on registration.
        self.ordinal: Optional[int] = None

    @property
    def arity(self) -> int:
        return len(self.params)

    def names(self) -> Tuple[str, ...]:
        return bound_names(self.params)

    def __repr__(self) -> str:
        from casper.casper_printer import Printer
        return Printer().pformat(self)


class FunctionGroup:
    """All definitions sharing a name, kept in definition order per arity."""
    def __init__(self, name: str):
        self.name = name
        self.by_arity: Dict[int, List[FunctionDefinition]] = {}

    def add(self, definition: FunctionDefinition):
        self.by_arity.setdefault(definition.arity, []).append(definition)

    def with_arity(self, arity: int) -> Tuple[FunctionDefinition, ...]:
        return tuple(self.by_arity.get(arity, ()))

    @property
    def definitions(self) -> List[FunctionDefinition]:
        out = [d for defs in self.by_arity.values() for d in defs]
        out.sort(key=lambda d: d.ordinal if d.ordinal is not None else 0)
        return out

    def __len__(self) -> int:
        return sum(len(defs) for defs in self.by_arity.values())

    def __repr__(self) -> str:
        arities = sorted(self.by_arity)
        return f"<FunctionGroup name={self.name!r} arities={arities} definitions={len(self)}>"


class FunctionTable:
    """Name -> FunctionGroup, append-only until frozen."""
    def __init__(self):
        self.groups: Dict[str, FunctionGroup] = {}
        self._count = 0
        self._frozen = False

    def add(self, definition: FunctionDefinition) -> FunctionDefinition:
        if self._frozen:
            raise RegistryFrozenError(f"cannot add a definition of '{definition.name}': the function table is frozen")
        dup = first_duplicate(definition.names())
        if dup is not None:
            raise DuplicateBindingError(definition.name, dup)
        group = self.groups.get(definition.name)
        if group is not None and is_constructor_name(definition.name) and len(group):
            raise DuplicateConstructorError(definition.name)
        if group is None:
            group = self.groups[definition.name] = FunctionGroup(definition.name)
        definition.ordinal = self._count
        self._count += 1
        group.add(definition)
        return definition

    def define(self, name: str, params: Sequence[Pattern], body: Any = None) -> FunctionDefinition:
        return self.add(FunctionDefinition(name, params, body))

    def group(self, name: str) -> Optional[FunctionGroup]:
        return self.groups.get(name)

    def checkpoint(self) -> int:
        return self._count

    def rollback(self, mark: int):
        """Drop every definition added since `checkpoint` returned `mark`."""
        for name in list(self.groups):
            group = self.groups[name]
            for arity in list(group.by_arity):
                kept = [d for d in group.by_arity[arity] if d.ordinal < mark]
                if kept:
                    group.by_arity[arity] = kept
                else:
                    del group.by_arity[arity]
            if not len(group):
                del self.groups[name]
        self._count = mark

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: str) -> bool:
        return name in self.groups

    def __iter__(self) -> Iterator[FunctionGroup]:
        return iter(self.groups.values())

    def __len__(self) -> int:
        return len(self.groups)
