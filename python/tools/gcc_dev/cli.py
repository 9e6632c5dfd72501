#!/usr/bin/env python3
"""
Command-line interface for the GCC development helper, powered by Typer.

Every command re-resolves the layout from the working directory (or
``--directory``); nothing is remembered between invocations.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from . import __version__
from .commands import (
    ProcessManager,
    compile_argv,
    debugger_argv,
    find_tests,
    get_cc1plus_command,
    locate_test_log,
    testsuite_argv,
)
from .config import BuildRootPolicy, GccDevConfig, load_config
from .core_types import GccDevError, NotFound, ProjectLayout
from .directives import parse_test_options
from .layout import check_environment, validate_environment
from .logging_config import setup_logging

app = typer.Typer(
    name="gcc-dev",
    help="Debug, compile and run GCC C++ testsuite files from a GCC source tree.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()
err_console = Console(stderr=True)

PASSTHROUGH = {"ignore_unknown_options": True}

GUIDE = """
# GCC Development Helper

Streamlines GCC C++ compiler development: debug, compile and run testsuite
files straight from the source tree.

## Quick start

1. Run from anywhere inside your GCC source tree
2. `gcc-dev check` verifies the environment
3. `gcc-dev find constexpr` searches the testsuite
4. `gcc-dev gdb <test>` debugs cc1plus on a test

## Commands

- `find PATTERN`: search `gcc/testsuite/g++.dg` for `*PATTERN*.C` / `*PATTERN*.cc`,
  matched against the path below `g++.dg`, e.g. `find cpp26/const`
- `gdb TEST [FLAGS...]`: extract the cc1plus command from `xg++ -v` and start
  gdb on it in `build/gcc` with `.gdbinit` loaded
- `cc1plus TEST [FLAGS...]`: print the cc1plus command only
- `compile TEST`: compile with xg++, the in-tree libstdc++ and the test's
  DejaGNU options
- `testsuite TEST`: run `make check-g++ RUNTESTFLAGS=dg.exp=<name>`; results go
  to `build/gcc/testsuite/g++/g++.log`
- `options TEST`: show the DejaGNU options found in a test
- `log`: show the g++.log of the last testsuite run
- `check`: verify xg++, cc1plus and the libstdc++ paths
- `resolve`: print the detected source root, build root and target

## Setup requirements

- GCC source tree with a `gcc/` directory
- `build/` either inside the source tree or next to it
- Compiled `xg++` and `cc1plus` in `build/gcc/`
- `libstdc++-v3` built in `build/<target-triplet>/`

## DejaGNU directives parsed

- `dg-options`, `dg-additional-options`: compiler options
- `dg-add-options`: feature options (pthread, tls, openmp, ...)
- `dg-require-effective-target`: c++NN and fopenmp requirements
- `{ target c++NN }` selectors: language version

## Troubleshooting

- *GCC source not found*: run from inside your GCC source tree
- *Build directory not found*: ensure build/ exists in or next to the source
- *xg++ not found*: run `make` in your build directory
- *Target architecture not detected*: ensure libstdc++ is built
- *No tests found*: check the search pattern
"""


@dataclass
class CliState:
    config: GccDevConfig
    directory: Path


def version_callback(value: bool) -> None:
    if value:
        console.print(f"gcc-dev version: {__version__}")
        raise typer.Exit()


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False, soft_wrap=True)
    return typer.Exit(code=1)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


def _require_layout(state: CliState) -> ProjectLayout:
    layout = validate_environment(state.directory, state.config)
    if not isinstance(layout, ProjectLayout):
        raise _fail(layout.message)
    return layout


def _run(argv: List[str], cwd: Path) -> None:
    logger.info(f"Running in {cwd}: {' '.join(argv)}")
    try:
        result = ProcessManager.run_command(argv, cwd=cwd, capture=False)
    except GccDevError as e:
        raise _fail(str(e))
    raise typer.Exit(code=result.return_code)


@app.callback()
def main_options(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help="JSON/YAML configuration file. [env: GCC_DEV_CONFIG]"
    ),
    policy: Optional[BuildRootPolicy] = typer.Option(
        None, "--policy", help="Build directory discovery policy."
    ),
    directory: Optional[Path] = typer.Option(
        None, "--directory", "-C", help="Start discovery here instead of the current directory."
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    """Manage global options."""
    level = "DEBUG" if verbose else "WARNING" if quiet else "INFO"
    setup_logging(level, log_file)

    try:
        config = load_config(config_file)
    except GccDevError as e:
        raise _fail(str(e))
    if policy is not None:
        config.build_root_policy = policy

    ctx.obj = CliState(config=config, directory=directory or Path.cwd())


@app.command("check")
def check_command(ctx: typer.Context) -> None:
    """Verify the GCC environment is set up correctly."""
    state = _state(ctx)
    report = check_environment(state.directory, state.config)

    if report.failure is not None:
        raise _fail(report.failure.message)

    table = Table(title="GCC Environment Check", show_header=True)
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")
    for item in report.items:
        status = "[green]✓[/green]" if item.ok else "[red]✗[/red]"
        table.add_row(item.description, status, item.note or str(item.path or ""))

    console.print(f"GCC Source: {report.source_root}", highlight=False, soft_wrap=True)
    console.print(f"Build Root: {report.build_root}", highlight=False, soft_wrap=True)
    console.print(f"Target:     {report.target_id or 'NOT DETECTED'}", highlight=False, soft_wrap=True)
    console.print(table)

    if report.all_ok:
        console.print("[green]✓ All checks passed! GCC is correctly built and configured.[/green]")
    else:
        console.print(
            '[yellow]✗ Some checks failed. You may need to run "make" in your build directory.[/yellow]'
        )
        raise typer.Exit(code=1)


@app.command("resolve")
def resolve_command(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print the layout as JSON."),
) -> None:
    """Print the detected source root, build root and target."""
    layout = _require_layout(_state(ctx))
    if as_json:
        console.out(json.dumps(layout.to_dict(), indent=2))
        return
    for key, value in layout.to_dict().items():
        console.print(f"[bold]{key.replace('_', ' ').title()}:[/bold] {escape(value)}", highlight=False, soft_wrap=True)


@app.command("options")
def options_command(
    ctx: typer.Context,
    test_file: Path = typer.Argument(..., help="Test file to inspect."),
) -> None:
    """Display the DejaGNU options found in a test file."""
    options = parse_test_options(test_file, _state(ctx).config)
    if options:
        console.out(options, highlight=False)
    else:
        logger.warning(f"No DejaGNU options found in: {test_file.name}")


@app.command("find")
def find_command(
    ctx: typer.Context,
    pattern: str = typer.Argument(..., help="Path pattern, e.g. constexpr or cpp26/const."),
) -> None:
    """Search the g++.dg testsuite for test files."""
    layout = _require_layout(_state(ctx))
    logger.info(f"Searching for tests matching: {pattern}")
    tests = find_tests(pattern, layout.source_root)
    if not tests:
        logger.warning(f"No tests found matching: {pattern}")
        raise typer.Exit(code=1)
    for test in tests:
        console.out(str(test), highlight=False)
    logger.info(f"Found {len(tests)} tests.")


def _cc1plus(state: CliState, test_file: Path, flags: Optional[List[str]]) -> tuple[ProjectLayout, str]:
    layout = _require_layout(state)
    extra = " ".join(flags or [])
    logger.info("Extracting cc1plus command...")
    try:
        return layout, get_cc1plus_command(test_file, layout, extra, state.config)
    except GccDevError as e:
        raise _fail(str(e))


@app.command("cc1plus", context_settings=PASSTHROUGH)
def cc1plus_command(
    ctx: typer.Context,
    test_file: Path = typer.Argument(..., help="Test file to compile."),
    flags: Optional[List[str]] = typer.Argument(None, help="Extra compiler flags."),
) -> None:
    """Print the cc1plus command xg++ would run for a test."""
    _, command = _cc1plus(_state(ctx), test_file, flags)
    console.out(command, highlight=False)


@app.command("gdb", context_settings=PASSTHROUGH)
def gdb_command(
    ctx: typer.Context,
    test_file: Path = typer.Argument(..., help="Test file to debug."),
    flags: Optional[List[str]] = typer.Argument(None, help="Extra compiler flags."),
    print_only: bool = typer.Option(False, "--print-only", help="Print the gdb command instead of running it."),
) -> None:
    """Debug cc1plus on a test file with GDB."""
    state = _state(ctx)
    layout, command = _cc1plus(state, test_file, flags)
    argv = debugger_argv(command, layout, state.config)
    if print_only:
        console.out(" ".join(argv), highlight=False)
        return
    logger.info(f"Starting GDB session for: {test_file.name}")
    _run(argv, layout.gcc_build_dir)


@app.command("compile")
def compile_command(
    ctx: typer.Context,
    test_file: Path = typer.Argument(..., help="Test file to compile."),
    print_only: bool = typer.Option(False, "--print-only", help="Print the command instead of running it."),
) -> None:
    """Compile a test file with xg++ and the in-tree libstdc++."""
    state = _state(ctx)
    layout = _require_layout(state)
    argv = compile_argv(test_file, layout, state.config)
    if print_only:
        console.out(" ".join(argv), highlight=False)
        return
    logger.info(f"Compiling: {test_file.name}")
    _run(argv, layout.gcc_build_dir)


@app.command("testsuite")
def testsuite_command(
    ctx: typer.Context,
    test_file: Path = typer.Argument(..., help="Test file to run through DejaGNU."),
    print_only: bool = typer.Option(False, "--print-only", help="Print the command instead of running it."),
) -> None:
    """Run a single test via make check-g++."""
    state = _state(ctx)
    try:
        argv = testsuite_argv(test_file, state.config)
    except GccDevError as e:
        raise _fail(str(e))
    layout = _require_layout(state)
    if print_only:
        console.out(" ".join(argv), highlight=False)
        return
    _run(argv, layout.gcc_build_dir)


@app.command("log")
def log_command(ctx: typer.Context) -> None:
    """Display the g++.log from the last testsuite run."""
    layout = _require_layout(_state(ctx))
    log_file = locate_test_log(layout)
    if isinstance(log_file, NotFound):
        logger.warning(log_file.message)
        raise typer.Exit(code=1)
    try:
        content = log_file.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise _fail(f"Failed to read {log_file}: {e}")
    console.out(content, highlight=False)


@app.command("guide")
def guide_command() -> None:
    """Show the usage guide."""
    console.print(Markdown(GUIDE))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
