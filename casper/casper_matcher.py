"""
The structural pattern matcher.

Matching one pattern against one value either fails with NoMatch or yields
the names it bound and a score vector. Lower components and longer vectors
mean a more specific match.

The traversal runs on an explicit work stack so that deeply nested values
cannot exhaust the interpreter's recursion limit.
"""
from typing import Any, Dict, List, Sequence, Tuple

from casper.casper_errors import NoMatch
from casper.casper_datatypes import (
    Value, ListValue, DictValue, ConstructedValue, ClosureValue
)
from casper.casper_patterns import (
    Pattern, Wildcard, Binding, TagMatch, NamedTagMatch, ContainerMatch, ArityMatch,
    LIST_KIND
)
from casper.casper_tags import TagRegistry

Score = Tuple[int, ...]


class MatchResult:
    """Bindings (name -> value, in binding order) and the score vector."""
    def __init__(self, bindings: Dict[str, Value], score: Score):
        self.bindings = bindings
        self.score = score

    def __repr__(self) -> str:
        return f"<MatchResult score={list(self.score)} bindings={list(self.bindings)}>"

    def __eq__(self, other):
        if not isinstance(other, MatchResult):
            return NotImplemented
        return self.score == other.score and self.bindings == other.bindings


def worst_case(scores: Sequence[Score]) -> Score:
    """Component-wise maximum over item scores.

    Vectors of different lengths (nested containers where some are empty) are
    cut to the shortest, the least specific shape among the items.
    """
    width = min(len(s) for s in scores)
    return tuple(max(s[i] for s in scores) for i in range(width))


def _distinct(names: Sequence[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(names))


# Work stack instructions.
_VISIT = 0
_CONCAT = 1
_GATHER = 2


class Matcher:
    """Matches patterns against values using the tags of one registry."""
    def __init__(self, registry: TagRegistry):
        self.registry = registry

    def match(self, pattern: Pattern, value: Value) -> MatchResult:
        bindings, score = self._run(pattern, value)
        return MatchResult(bindings, score)

    def match_params(self, patterns: Sequence[Pattern], args: Sequence[Value]) -> MatchResult:
        """Match parameters positionally, concatenating scores in argument order."""
        if len(patterns) != len(args):
            raise NoMatch(f"expected {len(patterns)} argument(s), got {len(args)}")
        bindings: Dict[str, Value] = {}
        score: List[int] = []
        for pattern, arg in zip(patterns, args):
            b, s = self._run(pattern, arg)
            bindings.update(b)
            score.extend(s)
        return MatchResult(bindings, tuple(score))

    def matches(self, pattern: Pattern, value: Value) -> bool:
        try:
            self._run(pattern, value)
        except NoMatch:
            return False
        return True

    def _run(self, pattern: Pattern, value: Value) -> Tuple[Dict[str, Value], Score]:
        work: List[Tuple[Any, ...]] = [(_VISIT, pattern, value)]
        results: List[Tuple[Dict[str, Value], Score]] = []
        while work:
            op = work.pop()
            if op[0] == _VISIT:
                self._visit(op[1], op[2], work, results)
            elif op[0] == _CONCAT:
                _, head_bindings, head_score, n = op
                parts = results[len(results) - n:]
                del results[len(results) - n:]
                bindings = dict(head_bindings)
                score = list(head_score)
                for b, s in parts:
                    bindings.update(b)
                    score.extend(s)
                results.append((bindings, tuple(score)))
            else:
                _, kind, keys, names, n = op
                parts = results[len(results) - n:]
                del results[len(results) - n:]
                results.append((
                    self._gather(kind, keys, names, [b for b, _ in parts]),
                    (0,) + worst_case([s for _, s in parts]),
                ))
        return results[0]

    def _visit(self, pattern: Pattern, value: Value, work: list, results: list):
        match pattern:
            case Wildcard():
                results.append(({}, ()))

            case Binding(name=name):
                results.append(({name: value}, ()))

            case TagMatch():
                d = self._distance(value, pattern)
                own = {pattern.name: value} if isinstance(pattern, NamedTagMatch) else {}
                if not pattern.fields:
                    results.append((own, (d,)))
                    return
                if not isinstance(value, ConstructedValue) or value.tag != pattern.tag:
                    raise NoMatch(f"{type(value).__name__} is not built with {pattern.tag.name}")
                if len(value.fields) != len(pattern.fields):
                    raise NoMatch(
                        f"{pattern.tag.name} has {len(value.fields)} field(s), pattern expects {len(pattern.fields)}"
                    )
                work.append((_CONCAT, own, (d,), len(pattern.fields)))
                for sub, field in reversed(list(zip(pattern.fields, value.fields))):
                    work.append((_VISIT, sub, field))

            case ContainerMatch(kind=kind, element=element):
                expected = ListValue if kind == LIST_KIND else DictValue
                if not isinstance(value, expected):
                    raise NoMatch(f"{type(value).__name__} is not a {kind}")
                if element is None:
                    results.append(({}, (0,)))
                    return
                names = _distinct(element.names())
                if isinstance(value, ListValue):
                    keys = None
                    items = list(value.items)
                else:
                    keys = list(value.entries.keys())
                    items = list(value.entries.values())
                if not items:
                    results.append((self._gather(kind, keys, names, []), (0,)))
                    return
                work.append((_GATHER, kind, keys, names, len(items)))
                for item in reversed(items):
                    work.append((_VISIT, element, item))

            case ArityMatch(arity=arity):
                if not isinstance(value, ClosureValue) or value.arity != arity:
                    raise NoMatch(f"{type(value).__name__} is not a closure of arity {arity}")
                results.append(({}, (0,)))

            case _:
                raise TypeError(f"not a pattern: {pattern!r}")

    def _distance(self, value: Value, pattern: TagMatch) -> int:
        own = value.own_tag(self.registry)
        if own is None:
            raise NoMatch(f"{type(value).__name__} has no tag")
        d = self.registry.distance(own, pattern.tag)
        if d is None:
            raise NoMatch(f"{own.name} is not a {pattern.tag.name}")
        return d

    @staticmethod
    def _gather(kind: str, keys, names: Sequence[str], per_item: List[Dict[str, Value]]) -> Dict[str, Value]:
        """Collect each element capture into a container shaped like the input."""
        out: Dict[str, Value] = {}
        for name in names:
            captured = [b[name] for b in per_item]
            if kind == LIST_KIND:
                out[name] = ListValue(captured)
            else:
                out[name] = DictValue(zip(keys, captured))
        return out
