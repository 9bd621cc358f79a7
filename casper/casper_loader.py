"""
Loads structured module documents (YAML) into a tag registry and a function table.

A module document is a mapping with optional `tags`, `constructors` and
`definitions` sections. Patterns use a compact string notation:

    _            wildcard
    x            binds x
    Suit         matches anything whose tag chain contains Suit
    x::Suit      the same, binding x to the whole value

and one-key mappings for the structured forms:

    {tag: Vec2, fields: [a::Float, b::Float], as: v}
    {list: Int}      {list: null}
    {dict: String}   {dict: null}
    {arity: 2}

Values use plain YAML scalars, sequences and mappings, plus `!Tag [fields]`
for constructed values and `!closure n` for closures.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from casper.casper_errors import ModuleFormatError
from casper.casper_datatypes import (
    Value, IntValue, FloatValue, StringValue, ListValue, DictValue, ConstructedValue, ClosureValue
)
from casper.casper_patterns import (
    Pattern, Wildcard, Binding, TagMatch, NamedTagMatch, ContainerMatch, ArityMatch,
    LIST_KIND, DICT_KIND
)
from casper.casper_functions import FunctionDefinition, FunctionTable
from casper.casper_tags import ANY, Tag, TagRegistry
from casper.casper_dispatch import _dbg


# =================================================================
# YAML plumbing
# =================================================================

class Tagged:
    """A `!Name payload` node, kept symbolic until tags can be resolved."""
    def __init__(self, name: str, payload: Any):
        self.name = name
        self.payload = payload

    def __repr__(self) -> str:
        return f"Tagged({self.name!r}, {self.payload!r})"

    def __eq__(self, other):
        return isinstance(other, Tagged) and self.name == other.name and self.payload == other.payload


class CasperYamlLoader(yaml.SafeLoader):
    """SafeLoader without implicit booleans, so `True` and `False` stay tag names."""
    pass


CasperYamlLoader.yaml_implicit_resolvers = {
    first: [r for r in resolvers if r[0] != "tag:yaml.org,2002:bool"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _construct_tagged(loader: yaml.SafeLoader, suffix: str, node: yaml.Node) -> Tagged:
    if isinstance(node, yaml.SequenceNode):
        payload = loader.construct_sequence(node, deep=True)
    elif isinstance(node, yaml.MappingNode):
        payload = loader.construct_mapping(node, deep=True)
    else:
        text = loader.construct_scalar(node)
        payload = None if text == "" else loader.construct_object(_resolve_scalar(loader, node), deep=True)
    return Tagged(suffix, payload)


def _resolve_scalar(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> yaml.ScalarNode:
    """Re-resolve a scalar that carried an explicit tag as if it were untagged."""
    tag = loader.resolve(yaml.ScalarNode, node.value, (node.style is None, True))
    return yaml.ScalarNode(tag, node.value, node.start_mark, node.end_mark, node.style)


CasperYamlLoader.add_multi_constructor("!", _construct_tagged)


def parse_yaml(text: str) -> Any:
    try:
        return yaml.load(text, Loader=CasperYamlLoader)
    except yaml.YAMLError as e:
        raise ModuleFormatError(f"invalid YAML: {e}") from e


# =================================================================
# Constructor bodies
# =================================================================

class ConstructorBody:
    """Default body of a constructor definition.

    Dispatch hands bodies back untouched; an evaluator that resolves a call to
    a constructor calls `construct` with the matched field values.
    """
    def __init__(self, tag: Tag, field_names: List[Optional[str]]):
        self.tag = tag
        self.field_names = field_names

    def construct(self, fields) -> ConstructedValue:
        return ConstructedValue(self.tag, fields)

    def __repr__(self) -> str:
        return f"<constructor {self.tag.name}/{len(self.field_names)}>"


# =================================================================
# The loader
# =================================================================

class ModuleLoader:
    """Feeds module documents into a registry and function table."""

    SECTIONS = ("tags", "constructors", "definitions")

    def __init__(self, registry: TagRegistry, functions: FunctionTable):
        self.registry = registry
        self.functions = functions

    # --- entry points ---

    def load_file(self, path) -> List[FunctionDefinition]:
        p = Path(path)
        return self.load_text(p.read_text(encoding="utf-8"))

    def load_text(self, text: str) -> List[FunctionDefinition]:
        return self.load_document(parse_yaml(text))

    def load_document(self, doc: Any) -> List[FunctionDefinition]:
        """Declare tags, then constructors, then definitions, in document order.

        A document loads completely or not at all: on any error the registry
        and function table are put back as they were before the call.
        """
        if doc is None:
            return []
        if not isinstance(doc, dict):
            raise ModuleFormatError("a module document must be a mapping")
        unknown = [k for k in doc if k not in self.SECTIONS]
        if unknown:
            raise ModuleFormatError(f"unknown module section(s): {', '.join(map(str, unknown))}")
        tag_mark = self.registry.checkpoint()
        definition_mark = self.functions.checkpoint()
        added: List[FunctionDefinition] = []
        try:
            for entry in self._section(doc, "tags"):
                self.declare_tag(entry)
            for entry in self._section(doc, "constructors"):
                added.append(self.declare_constructor(entry))
            for entry in self._section(doc, "definitions"):
                added.append(self.declare_definition(entry))
        except Exception as e:
            _dbg("load", "rollback", type(e).__name__, "tags", tag_mark, "definitions", definition_mark)
            self.functions.rollback(definition_mark)
            self.registry.rollback(tag_mark)
            raise
        return added

    # --- sections ---

    def declare_tag(self, entry: Any) -> Tag:
        if isinstance(entry, str):
            name, parent = entry, ANY
        elif isinstance(entry, dict) and "name" in entry:
            self._check_keys(entry, ("name", "parent"), "tag")
            name, parent = entry["name"], entry.get("parent", ANY)
        elif isinstance(entry, dict) and len(entry) == 1:
            (name, parent), = entry.items()
        else:
            raise ModuleFormatError(f"cannot read tag declaration {entry!r}")
        name, parent = self._name(name, "tag"), self._name(parent, "parent tag")
        if not name[0].isupper():
            raise ModuleFormatError(f"tag name '{name}' must be capitalized")
        _dbg("load", "tag", name, "parent", parent)
        return self.registry.declare(name, parent)

    def declare_constructor(self, entry: Any) -> FunctionDefinition:
        if not isinstance(entry, dict) or "name" not in entry:
            raise ModuleFormatError(f"cannot read constructor {entry!r}")
        self._check_keys(entry, ("name", "parent", "fields", "body"), "constructor")
        name = self._name(entry["name"], "constructor")
        if not name[0].isupper():
            raise ModuleFormatError(f"constructor name '{name}' must be capitalized")
        fields = entry.get("fields") or []
        if not isinstance(fields, list):
            raise ModuleFormatError(f"fields of constructor '{name}' must be a list")
        tag = self.registry.declare(name, self._name(entry.get("parent", ANY), "parent tag"))
        params = [self.parse_pattern(f) for f in fields]
        body = entry.get("body")
        if body is None:
            body = ConstructorBody(tag, [getattr(p, "name", None) for p in params])
        _dbg("load", "constructor", name, "fields", len(params))
        return self.functions.add(FunctionDefinition(name, params, body))

    def declare_definition(self, entry: Any) -> FunctionDefinition:
        if not isinstance(entry, dict) or "name" not in entry:
            raise ModuleFormatError(f"cannot read definition {entry!r}")
        self._check_keys(entry, ("name", "params", "body"), "definition")
        name = self._name(entry["name"], "function")
        params = entry.get("params") or []
        if not isinstance(params, list):
            raise ModuleFormatError(f"params of '{name}' must be a list")
        definition = FunctionDefinition(name, [self.parse_pattern(p) for p in params], entry.get("body"))
        _dbg("load", "definition", name, "arity", definition.arity)
        return self.functions.add(definition)

    # --- patterns ---

    def parse_pattern(self, obj: Any) -> Pattern:
        if isinstance(obj, str):
            return self._parse_pattern_text(obj.strip())
        if isinstance(obj, dict):
            if "tag" in obj:
                self._check_keys(obj, ("tag", "fields", "as"), "tag pattern")
                tag = self.registry.lookup(self._name(obj["tag"], "tag"))
                fields = obj.get("fields") or []
                if not isinstance(fields, list):
                    raise ModuleFormatError(f"fields of pattern {obj!r} must be a list")
                subs = [self.parse_pattern(f) for f in fields]
                if obj.get("as") is not None:
                    return NamedTagMatch(self._name(obj["as"], "binding"), tag, subs)
                return TagMatch(tag, subs)
            if len(obj) == 1:
                (key, arg), = obj.items()
                if key in ("list", "dict"):
                    kind = LIST_KIND if key == "list" else DICT_KIND
                    return ContainerMatch(kind, None if arg is None else self.parse_pattern(arg))
                if key == "arity":
                    try:
                        return ArityMatch(arg)
                    except ValueError as e:
                        raise ModuleFormatError(str(e)) from e
        raise ModuleFormatError(f"cannot read pattern {obj!r}")

    def _parse_pattern_text(self, text: str) -> Pattern:
        if not text:
            raise ModuleFormatError("empty pattern")
        if text == "_":
            return Wildcard()
        if "::" in text:
            name, _, tag_name = text.partition("::")
            return NamedTagMatch(self._name(name, "binding"), self.registry.lookup(self._name(tag_name, "tag")))
        if text[0].isupper():
            return TagMatch(self.registry.lookup(text))
        if not (text[0].isalpha() or text[0] == "_"):
            raise ModuleFormatError(f"cannot read pattern {text!r}")
        return Binding(text)

    # --- values ---

    def to_value(self, obj: Any) -> Value:
        """Turn loaded YAML data into a casperlang value."""
        if isinstance(obj, Value):
            return obj
        if isinstance(obj, Tagged):
            if obj.name == "closure":
                return self._closure(obj.payload)
            tag = self.registry.lookup(obj.name)
            payload = obj.payload
            if payload is None:
                fields = []
            elif isinstance(payload, list):
                fields = payload
            else:
                fields = [payload]
            return ConstructedValue(tag, [self.to_value(f) for f in fields])
        # Only reachable from host data: the YAML loader reads true/false as strings.
        if isinstance(obj, bool) or obj is None:
            raise ModuleFormatError(f"{obj!r} is not a casperlang value")
        if isinstance(obj, (int, float)):
            try:
                return IntValue(obj) if isinstance(obj, int) else FloatValue(obj)
            except (TypeError, ValueError, OverflowError) as e:
                raise ModuleFormatError(str(e)) from e
        if isinstance(obj, str):
            return StringValue(obj)
        if isinstance(obj, list):
            return ListValue(self.to_value(x) for x in obj)
        if isinstance(obj, dict):
            for k in obj:
                if not isinstance(k, str):
                    raise ModuleFormatError(f"dict keys must be strings, got {k!r}")
            return DictValue((k, self.to_value(v)) for k, v in obj.items())
        raise ModuleFormatError(f"cannot read value {obj!r}")

    def parse_values(self, text: str) -> List[Value]:
        """Read a comma-separated run of YAML flow values, e.g. `!Club, 3`."""
        if not text.strip():
            return []
        loaded = parse_yaml(f"[{text}]")
        return [self.to_value(x) for x in loaded]

    def _closure(self, payload: Any) -> ClosureValue:
        if isinstance(payload, dict):
            arity, body = payload.get("arity"), payload.get("body")
        else:
            arity, body = payload, None
        try:
            return ClosureValue(arity, body=body)
        except ValueError as e:
            raise ModuleFormatError(str(e)) from e

    # --- helpers ---

    @staticmethod
    def _section(doc: Dict[str, Any], key: str) -> list:
        entries = doc.get(key) or []
        if not isinstance(entries, list):
            raise ModuleFormatError(f"section '{key}' must be a list")
        return entries

    @staticmethod
    def _check_keys(entry: Dict[str, Any], allowed, what: str):
        extra = [k for k in entry if k not in allowed]
        if extra:
            raise ModuleFormatError(f"unexpected key(s) in {what}: {', '.join(map(str, extra))}")

    @staticmethod
    def _name(obj: Any, what: str) -> str:
        if not isinstance(obj, str) or not obj.strip():
            raise ModuleFormatError(f"{what} name must be a non-empty string, got {obj!r}")
        return obj.strip()
