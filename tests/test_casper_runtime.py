import textwrap
import pytest
from casper import Runtime, ExecutionResult
from casper.casper_datatypes import FloatValue, IntValue, ConstructedValue
from casper.casper_errors import AmbiguousDispatch, NoMatchingOverload, RegistryFrozenError, DuplicateTagError

MODULE = textwrap.dedent("""
    tags:
      - {name: Suit, parent: Any}
      - Club: Suit
      - Heart: Suit
    constructors:
      - {name: Vec2, parent: Any, fields: [a::Float, b::Float], body: "[a, b]"}
    definitions:
      - {name: show, params: [True], body: '"true"'}
      - {name: show, params: [False], body: '"false"'}
      - {name: "==", params: [Club, Club], body: "True"}
      - {name: "==", params: [Suit, Suit], body: "False"}
      - {name: mag, params: [{tag: Vec2, fields: [a::Float, b::Float]}], body: "typed"}
      - {name: mag, params: [{tag: Vec2, fields: [a, b]}], body: "untyped"}
      - {name: pick, params: [{tag: Vec2, fields: [x::Float, _]}, Any], body: "left"}
      - {name: pick, params: [{tag: Vec2, fields: [_, y::Float]}, Any], body: "right"}
""")


@pytest.fixture
def runtime():
    rt = Runtime()
    res = rt.load(MODULE)
    assert res.status == 'success', res.format_error()
    return rt


def test_prelude_defines_booleans():
    rt = Runtime()
    reg = rt.registry
    assert [t.name for t in reg.ancestor_chain(reg.lookup("True"))] == ["True", "Bool", "Any"]
    assert "False" in reg


def test_runtime_without_prelude():
    rt = Runtime(load_prelude=False)
    assert "Bool" not in rt.registry
    res = rt.load("tags: [Bool]")
    assert res.status == 'success'


def test_dispatch_show_true(runtime):
    res = runtime.handle_call("show !True")
    assert res.status == 'success', res.format_error()
    assert res.value.body == '"true"'
    assert res.value.score == (0,)


def test_dispatch_suit_equality(runtime):
    assert runtime.handle_call("== !Club, !Club").value.body == "True"
    assert runtime.handle_call("== !Club, !Heart").value.body == "False"


def test_dispatch_vec2(runtime):
    res = runtime.handle_call("mag !Vec2 [1.0, 1.0]")
    assert res.status == 'success'
    assert res.value.body == "typed"
    assert res.value.bindings == {"a": FloatValue(1.0), "b": FloatValue(1.0)}


def test_ambiguous_dispatch_is_reported(runtime):
    res = runtime.handle_call("pick !Vec2 [1.0, 2.0], 3")
    assert res.status == 'error'
    assert res.error_kind == "AmbiguousDispatch"
    text = res.format_error()
    assert text.startswith("AmbiguousDispatch: ")
    assert "tied candidates:" in text
    assert "= left" in text and "= right" in text


def test_no_matching_overload_is_reported(runtime):
    res = runtime.handle_call("show 1")
    assert res.error_kind == "NoMatchingOverload"


def test_no_such_function_is_reported(runtime):
    res = runtime.handle_call("show !True, !False")
    assert res.error_kind == "NoSuchFunction"
    assert "takes 2 argument(s)" in res.format_error()


def test_bad_call_arguments_are_reported(runtime):
    res = runtime.handle_call("show !Nope")
    assert res.status == 'error'
    assert res.error_kind == "UnknownTagError"
    assert runtime.handle_call("   ").error_kind == "CallError"


def test_resolve_raises(runtime):
    with pytest.raises(NoMatchingOverload):
        runtime.resolve("show", [IntValue(1)])
    with pytest.raises(AmbiguousDispatch):
        runtime.resolve("pick", runtime.values("!Vec2 [1.0, 2.0], 3"))


def test_first_dispatch_freezes_runtime(runtime):
    assert not runtime.frozen
    runtime.handle_call("show !True")
    assert runtime.frozen
    res = runtime.load("tags: [Spade]")
    assert res.status == 'error'
    assert res.error_kind == "RegistryFrozenError"
    with pytest.raises(RegistryFrozenError):
        runtime.loader.load_text("definitions: [{name: show, params: [x]}]")


def test_load_errors_become_results(runtime):
    res = runtime.load("tags: [Club]")
    assert res.status == 'error'
    assert res.error_kind == "DuplicateTagError"
    assert "Club" in res.format_error()


def test_load_file(tmp_path):
    path = tmp_path / "mod.yaml"
    path.write_text(MODULE, encoding="utf-8")
    rt = Runtime()
    res = rt.load_file(path)
    assert res.status == 'success'
    assert len(res.value) == 9
    missing = rt.load_file(tmp_path / "missing.yaml")
    assert missing.status == 'error'
    assert "file not found" in missing.format_error()


def test_is_instance(runtime):
    club = runtime.value(runtime.values("!Club")[0])
    assert runtime.is_instance(club, "Suit")
    assert runtime.is_instance(club, "Any")
    assert not runtime.is_instance(club, "Bool")
    assert runtime.is_instance(IntValue(1), "Int")
    assert not runtime.is_instance(runtime.values("!closure 1")[0], "Any")


def test_value_from_plain_data(runtime):
    assert runtime.value([1, 2.0]) == runtime.values("[1, 2.0]")[0]


def test_execution_result_format():
    ok = ExecutionResult('success', value=1)
    assert ok.format_error() == ""
    err = ExecutionResult.from_error(DuplicateTagError("X"))
    assert err.format_error() == "DuplicateTagError: tag 'X' is already defined"


def test_reload_after_failed_load(runtime):
    bad = "tags: [{name: Spade, parent: Suit}]\ndefinitions: [{name: f, params: [Nope]}]"
    assert runtime.load(bad).error_kind == "UnknownTagError"
    res = runtime.load(bad.replace("Nope", "Spade"))
    assert res.status == 'success', res.format_error()
    assert runtime.handle_call("f !Spade").status == 'success'


def test_out_of_range_int_argument_is_reported(runtime):
    res = runtime.handle_call("show 99999999999999999999")
    assert res.status == 'error'
    assert res.error_kind == "ModuleFormatError"
    assert "64-bit" in res.format_error()


def test_unreadable_files_are_reported(tmp_path):
    rt = Runtime()
    res = rt.load_file(tmp_path)
    assert res.status == 'error'
    assert res.error_kind == "LoadError"
    binary = tmp_path / "mod.yaml"
    binary.write_bytes(b"tags: [\xff\xfe]")
    res = rt.load_file(binary)
    assert res.status == 'error'
    assert "cannot read" in res.format_error()
