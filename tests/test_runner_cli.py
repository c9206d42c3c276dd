from __future__ import annotations

import time
from pathlib import Path

import pytest

from mcp_servers.mcp_test import main as runner


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(runner, "configure_logging", lambda *args, **kwargs: None)


def _script(tmp_path: Path, text: str, name: str = "t.dsl") -> str:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_no_script_prints_usage(capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main([]) == 1
    err = capsys.readouterr().err
    assert "usage: mcp-test" in err
    assert "-validate" in err


def test_validate(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main(["-validate", _script(tmp_path, "set x = 1\nprint x\n")]) == 0
    assert capsys.readouterr().out == "Script is valid\n"

    assert runner.main(["--validate", _script(tmp_path, "print 1\noops\n", "bad.dsl")]) == 1
    assert capsys.readouterr().err == "Validation failed: unexpected identifier 'oops' at line 2\n"


def test_format_to_stdout_and_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    src = _script(tmp_path, "set   x=1+2\nprint x")
    assert runner.main(["-format", src]) == 0
    assert capsys.readouterr().out == "set x = (1 + 2)\n\nprint x\n"

    dest = tmp_path / "out.dsl"
    assert runner.main(["-format", "-o", str(dest), src]) == 0
    assert capsys.readouterr().out == f"Formatted script written to {dest}\n"
    assert dest.read_text(encoding="utf-8") == "set x = (1 + 2)\n\nprint x\n"


def test_format_reports_parse_failure(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main(["-format", _script(tmp_path, "set = 1")]) == 1
    assert capsys.readouterr().err.startswith("Failed to format script: expected variable name")


def test_execute_prints_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main([_script(tmp_path, 'set who = "world"\nprint "hello " + who\n')]) == 0
    assert capsys.readouterr().out == "hello world\n"


def test_execution_failure(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main([_script(tmp_path, 'assert false, "nope"\n')]) == 1
    assert capsys.readouterr().err == "Execution failed: runtime error: assertion error: nope\n"


def test_missing_script_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main([str(tmp_path / "absent.dsl")]) == 1
    assert capsys.readouterr().err.startswith("Execution failed: failed to read file:")


def test_execution_timeout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    started = time.monotonic()
    assert runner.main(["-timeout", "200ms", _script(tmp_path, "wait false, 10\n")]) == 1
    assert time.monotonic() - started < 5.0
    assert "execution timeout after 0.2s" in capsys.readouterr().err


def test_invalid_timeout_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        runner.main(["-timeout", "soon", _script(tmp_path, "print 1")])
    assert exc_info.value.code == 2


def test_self_recursive_automation_fails_cleanly(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main([_script(tmp_path, "define f { run f }\nrun f\n")]) == 1
    assert capsys.readouterr().err == (
        "Execution failed: runtime error: maximum automation call depth exceeded (64) in 'f'\n"
    )
