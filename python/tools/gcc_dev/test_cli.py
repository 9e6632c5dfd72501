import json

import pytest
from loguru import logger
from typer.testing import CliRunner

from . import __version__, commands
from .cli import app
from .conftest import make_gcc_tree
from .core_types import CommandResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logger():
    """The CLI points loguru at the runner's streams; drop those sinks afterwards."""
    yield
    logger.remove()


def invoke(*args):
    return runner.invoke(app, ["-q", *[str(arg) for arg in args]])


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_resolve_json(gcc_tree):
    result = invoke("-C", gcc_tree.source_root / "gcc" / "cp", "resolve", "--json")

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {
        "source_root": str(gcc_tree.source_root),
        "build_root": str(gcc_tree.build_root),
        "target_id": "x86_64-pc-linux-gnu",
    }


def test_resolve_plain(gcc_tree):
    result = invoke("-C", gcc_tree.source_root, "resolve")

    assert result.exit_code == 0
    assert "x86_64-pc-linux-gnu" in result.stdout


def test_resolve_outside_source_tree(tmp_path):
    result = invoke("-C", tmp_path, "resolve")

    assert result.exit_code == 1
    assert "Could not find GCC source directory" in result.output


def test_resolve_same_ancestor_policy(tmp_path):
    tree = make_gcc_tree(tmp_path, build="sibling")

    assert invoke("-C", tree.source_root, "resolve").exit_code == 0
    assert invoke("-C", tree.source_root, "--policy", "same-ancestor", "resolve").exit_code == 1


def test_invalid_config_file(gcc_tree, tmp_path):
    config_file = tmp_path / "bad.json"
    config_file.write_text("{broken")

    result = invoke("--config", config_file, "-C", gcc_tree.source_root, "resolve")

    assert result.exit_code == 1
    assert "Invalid JSON" in result.output


def test_options(tmp_path):
    test_file = tmp_path / "t.C"
    test_file.write_text(
        '// { dg-options "-O2" }\n/* { dg-require-effective-target c++20 } */\n'
    )

    result = invoke("options", test_file)

    assert result.exit_code == 0
    assert result.stdout.strip() == "-O2 -std=c++20"


def test_options_none_found(tmp_path):
    test_file = tmp_path / "plain.C"
    test_file.write_text("int main() {}\n")

    result = invoke("options", test_file)

    assert result.exit_code == 0
    assert "No DejaGNU options found" in result.output


def test_find(gcc_tree):
    suite = gcc_tree.source_root / "gcc" / "testsuite" / "g++.dg" / "cpp26"
    suite.mkdir()
    (suite / "constexpr-new1.C").write_text("")

    result = invoke("-C", gcc_tree.source_root, "find", "cpp26/const")

    assert result.exit_code == 0
    assert result.stdout.strip() == str(suite / "constexpr-new1.C")


def test_find_no_match(gcc_tree):
    result = invoke("-C", gcc_tree.source_root, "find", "nosuchpattern")

    assert result.exit_code == 1
    assert "No tests found" in result.output


def test_cc1plus_passes_extra_flags(gcc_tree, mocker, monkeypatch):
    run = mocker.patch.object(
        commands.ProcessManager,
        "run_command",
        return_value=CommandResult(return_code=0, stderr=" /b/gcc/cc1plus -quiet t.C -O2\n"),
    )

    monkeypatch.chdir(gcc_tree.source_root)
    test_file = "gcc/testsuite/g++.dg/t.C"

    result = invoke("cc1plus", test_file, "-O2")

    assert result.exit_code == 0
    assert result.stdout.strip() == "/b/gcc/cc1plus -quiet t.C -O2"
    argv = run.call_args.args[0]
    assert argv[-3:] == ["-O2", "-v", str(gcc_tree.source_root / test_file)]


def test_gdb_print_only(gcc_tree, mocker):
    mocker.patch.object(
        commands.ProcessManager,
        "run_command",
        return_value=CommandResult(return_code=0, stderr=" /b/gcc/cc1plus -quiet t.C\n"),
    )

    result = invoke("-C", gcc_tree.source_root, "gdb", "--print-only", "t.C", "-O2")

    assert result.exit_code == 0
    assert result.stdout.strip() == (
        f"gdb -cd={gcc_tree.build_root / 'gcc'} -x .gdbinit --args /b/gcc/cc1plus -quiet t.C"
    )


def test_gdb_runs_debugger_in_build_dir(gcc_tree, mocker):
    run = mocker.patch.object(
        commands.ProcessManager,
        "run_command",
        side_effect=[
            CommandResult(return_code=0, stderr=" /b/gcc/cc1plus -quiet t.C\n"),
            CommandResult(return_code=0),
        ],
    )

    result = invoke("-C", gcc_tree.source_root, "gdb", "t.C")

    assert result.exit_code == 0
    gdb_call = run.call_args_list[1]
    assert gdb_call.args[0][0] == "gdb"
    assert gdb_call.kwargs["cwd"] == gcc_tree.build_root / "gcc"


def test_gdb_extraction_failure(gcc_tree, mocker):
    mocker.patch.object(
        commands.ProcessManager,
        "run_command",
        return_value=CommandResult(return_code=1, stderr="xg++: fatal error\n"),
    )

    result = invoke("-C", gcc_tree.source_root, "gdb", "t.C")

    assert result.exit_code == 1
    assert "Failed to extract cc1plus command" in result.output


def test_compile_print_only(gcc_tree, tmp_path):
    test_file = tmp_path / "t.C"
    test_file.write_text('// { dg-options "-fsyntax-only" }\n')

    result = invoke("-C", gcc_tree.source_root, "compile", "--print-only", test_file)

    assert result.exit_code == 0
    line = result.stdout.strip()
    assert line.startswith(str(gcc_tree.build_root / "gcc" / "xg++"))
    assert line.endswith(f"-fsyntax-only {test_file}")


def test_testsuite_print_only(gcc_tree):
    result = invoke("-C", gcc_tree.source_root, "testsuite", "--print-only", "a/b/pr1234.C")

    assert result.exit_code == 0
    assert result.stdout.strip() == "make check-g++ RUNTESTFLAGS=dg.exp=pr1234.C"


def test_testsuite_exit_code_propagates(gcc_tree, mocker):
    run = mocker.patch.object(
        commands.ProcessManager, "run_command", return_value=CommandResult(return_code=2)
    )

    result = invoke("-C", gcc_tree.source_root, "testsuite", "pr1234.C")

    assert result.exit_code == 2
    assert run.call_args.kwargs["cwd"] == gcc_tree.build_root / "gcc"


def test_log(gcc_tree):
    log_dir = gcc_tree.build_root / "gcc" / "testsuite" / "g++"
    log_dir.mkdir(parents=True)
    (log_dir / "g++.log").write_text("PASS: g++.dg/pr1234.C\n")

    result = invoke("-C", gcc_tree.source_root, "log")

    assert result.exit_code == 0
    assert "PASS: g++.dg/pr1234.C" in result.stdout


def test_log_missing(gcc_tree):
    result = invoke("-C", gcc_tree.source_root, "log")

    assert result.exit_code == 1
    assert "Could not find test log" in result.output


def test_check_all_ok(gcc_tree):
    result = invoke("-C", gcc_tree.source_root, "check")

    assert result.exit_code == 0
    assert "All checks passed" in result.stdout


def test_check_reports_missing_binaries(tmp_path):
    tree = make_gcc_tree(tmp_path, cc1plus=False)

    result = invoke("-C", tree.source_root, "check")

    assert result.exit_code == 1
    assert "Some checks failed" in result.stdout


def test_guide():
    result = invoke("guide")

    assert result.exit_code == 0
    assert "Quick start" in result.stdout


def test_compile_unbalanced_quote_in_directive(gcc_tree, tmp_path):
    test_file = tmp_path / "quote.C"
    test_file.write_text("// { dg-options \"-DMSG=it's\" }\n")

    result = invoke("-C", gcc_tree.source_root, "compile", "--print-only", test_file)

    assert result.exit_code == 0
    assert result.stdout.strip().endswith(f"-DMSG=it's {test_file}")
