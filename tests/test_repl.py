import importlib.util
import sys
import textwrap
from pathlib import Path
import uuid
import pytest

MODULE = textwrap.dedent("""
    tags:
      - {name: Suit, parent: Any}
      - Club: Suit
      - Heart: Suit
    definitions:
      - {name: "==", params: [Club, Club], body: "True"}
      - {name: "==", params: [a::Suit, b::Suit], body: "False"}
""")

def _load_repl_module():
    """Dynamically load the top-level casper.py (REPL) as a module with a unique name."""
    repl_path = Path(__file__).resolve().parents[1] / "casper.py"
    mod_name = f"casper_repl_for_test_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(mod_name, str(repl_path))
    mod = importlib.util.module_from_spec(spec)
    sys.modules[mod_name] = mod
    assert spec.loader is not None
    spec.loader.exec_module(mod)
    return mod

@pytest.fixture
def module_file(tmp_path):
    path = tmp_path / "suits.yaml"
    path.write_text(MODULE, encoding="utf-8")
    return path

@pytest.mark.asyncio
async def test_repl_exit_immediately(monkeypatch, capsys):
    repl = _load_repl_module()

    async def fake_ainput(prompt: str) -> str:
        return "exit"
    monkeypatch.setattr(repl, "ainput", fake_ainput)
    monkeypatch.setattr(sys, "argv", ["casper.py"])

    await repl.main()
    out = capsys.readouterr().out
    assert "casperlang dispatch REPL v0.1" in out
    assert "Type 'exit' or press Ctrl+D to quit." in out

@pytest.mark.asyncio
async def test_repl_resolves_calls_and_reports_errors(monkeypatch, capsys, module_file):
    repl = _load_repl_module()
    lines = iter([
        "== !Club, !Heart",
        "",
        "== !Club, !Club",
        "== 1",
        ":load " + str(module_file),
        "exit",
    ])

    async def fake_ainput(prompt: str) -> str:
        return next(lines)
    monkeypatch.setattr(repl, "ainput", fake_ainput)
    monkeypatch.setattr(sys, "argv", ["casper.py", str(module_file)])

    await repl.main()
    out, err = capsys.readouterr()
    assert "== a::Suit b::Suit = False  score [1, 1]" in out
    assert "  a = Club" in out
    assert "  b = Heart" in out
    assert "== Club Club = True  score [0, 0]" in out
    assert "NoSuchFunction" in err
    # The runtime froze on the first call, so a second load is refused.
    assert "RegistryFrozenError" in err

@pytest.mark.asyncio
async def test_repl_exits_on_eof(monkeypatch, capsys):
    repl = _load_repl_module()

    async def fake_ainput(prompt: str) -> str:
        return ""
    monkeypatch.setattr(repl, "ainput", fake_ainput)
    monkeypatch.setattr(sys, "argv", ["casper.py"])

    await repl.main()
    assert "Exiting." in capsys.readouterr().out

def test_run_calls_from_command_line(capsys, module_file):
    repl = _load_repl_module()
    status = repl.run_calls(str(module_file), ["== !Club, !Club", "== !Club, !Heart"])
    assert status == 0
    out = capsys.readouterr().out
    assert "score [0, 0]" in out
    assert "score [1, 1]" in out

def test_run_calls_reports_failures(capsys, module_file, tmp_path):
    repl = _load_repl_module()
    assert repl.run_calls(str(module_file), ["== 1, 2"]) == 1
    assert "NoMatchingOverload" in capsys.readouterr().err
    assert repl.run_calls(str(tmp_path / "missing.yaml"), []) == 1
    assert "file not found" in capsys.readouterr().err

def test_run_calls_reports_bad_arguments(capsys, module_file):
    repl = _load_repl_module()
    assert repl.run_calls(str(module_file), ["== 99999999999999999999, 1"]) == 1
    assert "ModuleFormatError" in capsys.readouterr().err
