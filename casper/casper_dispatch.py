"""
Runtime dispatch: picks the one definition that applies to a call.

Candidates are filtered by arity, matched positionally, then ranked: the
longest score vector wins, and among equally long vectors the candidate that
dominates every other one wins. Anything else is an error naming the call.
"""
import os
import sys
from typing import Dict, List, Optional, Sequence, Tuple

from casper.casper_errors import NoMatch, NoSuchFunction, NoMatchingOverload, AmbiguousDispatch
from casper.casper_datatypes import Value
from casper.casper_functions import FunctionDefinition, FunctionTable
from casper.casper_matcher import Matcher, Score
from casper.casper_tags import TagRegistry


def _dbg(*parts):
    if os.environ.get("CASPER_DEBUG"):
        try:
            print("[DBG]", *parts, file=sys.stderr)
        except Exception:
            pass


def dominates(a: Score, b: Score) -> bool:
    """True if `a` is <= `b` everywhere and < somewhere. Lengths must agree."""
    if len(a) != len(b):
        return False
    strictly = False
    for x, y in zip(a, b):
        if x > y:
            return False
        if x < y:
            strictly = True
    return strictly


class Candidate:
    """A definition that matched a call, with its bindings and score."""
    def __init__(self, definition: FunctionDefinition, bindings: Dict[str, Value], score: Score):
        self.definition = definition
        self.bindings = bindings
        self.score = score

    def __repr__(self) -> str:
        return f"<Candidate {self.definition.name}#{self.definition.ordinal} score={list(self.score)}>"


class Resolution:
    """The outcome of a successful dispatch."""
    def __init__(self, definition: FunctionDefinition, bindings: Dict[str, Value], score: Score):
        self.definition = definition
        self.bindings = bindings
        self.score = score

    @property
    def body(self):
        return self.definition.body

    def __iter__(self):
        # Allows `definition, bindings = resolver.resolve(...)`.
        return iter((self.definition, self.bindings))

    def __repr__(self) -> str:
        return f"<Resolution {self.definition.name}#{self.definition.ordinal} score={list(self.score)} bindings={list(self.bindings)}>"


def select_best(candidates: Sequence[Candidate]) -> Tuple[Optional[Candidate], List[Candidate]]:
    """Return (winner, []) or (None, tied) following the ranking rules."""
    if not candidates:
        return None, []
    longest = max(len(c.score) for c in candidates)
    finalists = [c for c in candidates if len(c.score) == longest]
    if len(finalists) == 1:
        return finalists[0], []
    for c in finalists:
        if all(other is c or dominates(c.score, other.score) for other in finalists):
            return c, []
    return None, finalists


class Resolver:
    """Resolves calls against a function table using one tag registry.

    Both are only read here, so a resolver over frozen tables may be shared
    between threads.
    """
    def __init__(self, registry: TagRegistry, functions: FunctionTable):
        self.registry = registry
        self.functions = functions
        self.matcher = Matcher(registry)

    def arity_candidates(self, name: str, argc: int) -> Tuple[FunctionDefinition, ...]:
        group = self.functions.group(name)
        if group is None:
            return ()
        return group.with_arity(argc)

    def candidates(self, name: str, args: Sequence[Value]) -> List[Candidate]:
        """Every definition of `name` that matches `args`, in definition order."""
        out = []
        for definition in self.arity_candidates(name, len(args)):
            try:
                m = self.matcher.match_params(definition.params, args)
            except NoMatch as e:
                _dbg("dispatch", name, "reject", definition.ordinal, str(e))
                continue
            _dbg("dispatch", name, "accept", definition.ordinal, "score", list(m.score))
            out.append(Candidate(definition, m.bindings, m.score))
        return out

    def resolve(self, name: str, args: Sequence[Value]) -> Resolution:
        args = tuple(args)
        _dbg("resolve", name, "argc", len(args))
        if not self.arity_candidates(name, len(args)):
            raise NoSuchFunction(name, args, detail=self._describe_call(name, args))
        found = self.candidates(name, args)
        if not found:
            raise NoMatchingOverload(name, args, detail=self._describe_call(name, args))
        winner, tied = select_best(found)
        if winner is None:
            pairs = [(c.definition, c.score) for c in tied]
            raise AmbiguousDispatch(name, args, pairs, detail=self._describe_tie(name, args, tied))
        _dbg("resolve", name, "winner", winner.definition.ordinal, "score", list(winner.score))
        return Resolution(winner.definition, winner.bindings, winner.score)

    def _describe_call(self, name: str, args: Sequence[Value]) -> str:
        from casper.casper_printer import Printer
        p = Printer()
        lines = [f"call: {p.pformat_call(name, args)}"]
        group = self.functions.group(name)
        if group is not None and len(group):
            lines.append("defined:")
            for d in group.definitions:
                lines.append(f"  {p.pformat(d)}")
        return "\n".join(lines)

    def _describe_tie(self, name: str, args: Sequence[Value], tied: Sequence[Candidate]) -> str:
        from casper.casper_printer import Printer
        p = Printer()
        lines = [f"call: {p.pformat_call(name, args)}", "tied candidates:"]
        for c in tied:
            lines.append(f"  {p.pformat(c.definition)}  score {p.pformat_score(c.score)}")
        lines.append("add a more specific definition to disambiguate")
        return "\n".join(lines)
