"""
The host-facing runtime: one tag registry and function table, a load phase,
and a frozen dispatch phase.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Literal, Optional, Sequence

from casper.casper_errors import CasperError, DispatchError, LoadError
from casper.casper_datatypes import Value
from casper.casper_dispatch import Resolver, Resolution, _dbg
from casper.casper_functions import FunctionTable
from casper.casper_loader import ModuleLoader, parse_yaml
from casper.casper_tags import TagRegistry


@dataclass
class ExecutionResult:
    """The structured result of a load or a dispatch."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    error_detail: Optional[str] = None

    def format_error(self) -> str:
        """Formats the error as 'Kind: message' followed by any detail."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_kind and not msg.startswith(self.error_kind):
            msg = f"{self.error_kind}: {msg}"
        if self.error_detail:
            msg = f"{msg}\n{self.error_detail}"
        return msg

    @classmethod
    def from_error(cls, e: CasperError) -> 'ExecutionResult':
        if isinstance(e, DispatchError):
            kind = e.kind
        else:
            kind = type(e).__name__
        return cls('error', error_message=str(e), error_kind=kind, error_detail=getattr(e, 'detail', None))


class Runtime:
    """Loads modules, then resolves calls against everything loaded.

    The first dispatch freezes the registry and function table; loading
    anything afterwards fails with RegistryFrozenError.
    """

    _prelude_doc: Any = None

    def __init__(self, load_prelude: bool = True):
        self.registry = TagRegistry()
        self.functions = FunctionTable()
        self.loader = ModuleLoader(self.registry, self.functions)
        self.resolver = Resolver(self.registry, self.functions)
        if load_prelude:
            self._load_prelude()

    def _load_prelude(self):
        # The document is read once and cached on the class.
        if Runtime._prelude_doc is None:
            prelude_path = Path(__file__).parent / "prelude.yaml"
            Runtime._prelude_doc = parse_yaml(prelude_path.read_text(encoding="utf-8"))
        self.loader.load_document(Runtime._prelude_doc)

    # --- load phase ---

    def load(self, text: str) -> ExecutionResult:
        try:
            added = self.loader.load_text(text)
        except LoadError as e:
            return ExecutionResult.from_error(e)
        return ExecutionResult('success', value=added)

    def load_file(self, path) -> ExecutionResult:
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ExecutionResult('error', error_message=f"file not found: {path}", error_kind="LoadError")
        except (OSError, UnicodeDecodeError) as e:
            return ExecutionResult('error', error_message=f"cannot read {path}: {e}", error_kind="LoadError")
        return self.load(text)

    def freeze(self):
        if not self.frozen:
            _dbg("runtime", "freeze", "tags", len(self.registry), "functions", len(self.functions))
        self.registry.freeze()
        self.functions.freeze()

    @property
    def frozen(self) -> bool:
        return self.registry.frozen and self.functions.frozen

    # --- dispatch phase ---

    def resolve(self, name: str, args: Sequence[Value]) -> Resolution:
        """Resolve a call, raising DispatchError subclasses on failure."""
        self.freeze()
        return self.resolver.resolve(name, args)

    def dispatch(self, name: str, args: Sequence[Value]) -> ExecutionResult:
        try:
            resolution = self.resolve(name, args)
        except DispatchError as e:
            return ExecutionResult.from_error(e)
        return ExecutionResult('success', value=resolution)

    def handle_call(self, line: str) -> ExecutionResult:
        """Resolve a call written as `name arg, arg, ...` with YAML flow arguments."""
        name, _, rest = line.strip().partition(" ")
        if not name:
            return ExecutionResult('error', error_message="empty call", error_kind="CallError")
        try:
            args = self.loader.parse_values(rest)
        except LoadError as e:
            return ExecutionResult.from_error(e)
        return self.dispatch(name, args)

    # --- introspection ---

    def value(self, obj: Any) -> Value:
        """Build a value from plain data or YAML-style Tagged nodes."""
        return self.loader.to_value(obj)

    def values(self, text: str) -> List[Value]:
        return self.loader.parse_values(text)

    def is_instance(self, value: Value, tag_name: str) -> bool:
        own = value.own_tag(self.registry)
        if own is None:
            return False
        return self.registry.is_a(own, self.registry.lookup(tag_name))
