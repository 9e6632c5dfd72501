#!/usr/bin/env python3
"""
Command construction on top of a resolved project layout.

This layer turns a ``ProjectLayout`` and a test file's directive flags into
argv lists for xg++, gdb and make, and parses the driver's ``-v`` output.
Running the commands is left to ``ProcessManager``, which blocks until the
child exits.
"""

from __future__ import annotations

import fnmatch
import os
import shlex
import subprocess
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from loguru import logger

from .config import GccDevConfig
from .core_types import (
    CommandResult,
    ExtractionFailure,
    GccDevError,
    NotFound,
    PathLike,
    ProjectLayout,
    SubprocessFailure,
)
from .directives import extract_flags, split_flags

TESTSUITE_SUBDIR = Path("gcc") / "testsuite" / "g++.dg"
TEST_SUFFIXES = (".C", ".cc")
TEST_LOG_CANDIDATES = (
    Path("gcc") / "testsuite" / "g++" / "g++.log",
    Path("gcc") / "testsuite" / "g++.log",
)

CC1_PROGRAMS = ("cc1plus", "cc1")


class ProcessManager:
    """Synchronous process execution."""

    @staticmethod
    def run_command(
        command: Sequence[str],
        cwd: Optional[PathLike] = None,
        env: Optional[Dict[str, str]] = None,
        capture: bool = True,
    ) -> CommandResult:
        """
        Run a command to completion.

        Args:
            command: Command and arguments to execute
            cwd: Working directory for the command
            env: Extra environment variables
            capture: Collect stdout and stderr instead of inheriting them

        Returns:
            CommandResult with execution details

        Raises:
            SubprocessFailure: If the program cannot be launched
        """
        command = list(command)
        start_time = time.time()
        logger.debug(f"Executing command: {shlex.join(command)}")

        final_env = os.environ.copy()
        if env:
            final_env.update(env)

        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.PIPE if capture else None,
                cwd=cwd,
                env=final_env,
                check=False,
            )
        except OSError as e:
            raise SubprocessFailure(
                f"Could not launch {command[0]}: {e}", command=command
            ) from e

        execution_time = time.time() - start_time
        cmd_result = CommandResult(
            return_code=result.returncode,
            stdout=(result.stdout or b"").decode("utf-8", errors="replace"),
            stderr=(result.stderr or b"").decode("utf-8", errors="replace"),
            command=command,
            execution_time=execution_time,
        )

        if cmd_result.success:
            logger.debug(f"Command completed successfully in {execution_time:.2f}s")
        else:
            logger.debug(
                f"Command exited with code {cmd_result.return_code} in {execution_time:.2f}s"
            )
        return cmd_result


def build_compiler_argv(
    test_file: PathLike,
    layout: ProjectLayout,
    flags: str = "",
    verbose: bool = False,
) -> List[str]:
    """
    Build the xg++ command line for a testsuite file.

    The include paths point at the in-tree libstdc++ build and sources so
    the freshly built compiler never sees a system C++ library.
    """
    argv = [
        str(layout.compiler_driver),
        f"-B{layout.gcc_build_dir}",
        "-nostdinc++",
        f"-I{layout.libstdcxx_build}/include/{layout.target_id}",
        f"-I{layout.libstdcxx_build}/include",
        f"-I{layout.libstdcxx_source}/libsupc++",
        f"-I{layout.libstdcxx_source}/include/backward",
        f"-I{layout.libstdcxx_source}/testsuite/util",
    ]
    argv.extend(split_flags(flags))
    if verbose:
        argv.append("-v")
    argv.append(str(test_file))
    return argv


def extract_cc1plus_line(output: str) -> Optional[str]:
    """Return the trimmed cc1plus (or cc1) invocation from ``xg++ -v`` output."""
    for line in output.splitlines():
        tokens = line.split()
        if tokens and Path(tokens[0]).name in CC1_PROGRAMS:
            return line.strip()
    return None


def get_cc1plus_command(
    test_file: PathLike,
    layout: ProjectLayout,
    extra_flags: str = "",
    config: Optional[GccDevConfig] = None,
    runner: Optional[ProcessManager] = None,
) -> str:
    """
    Ask the driver which cc1plus command it would run for ``test_file``.

    Directive flags from the file come first, ``extra_flags`` after them.
    The test path is made absolute so the resulting command still works
    when gdb runs it from build/gcc.
    The driver's exit status is ignored; a failed compile still prints the
    cc1plus line before the error.

    Raises:
        ExtractionFailure: If the output has no cc1plus line
        SubprocessFailure: If xg++ cannot be launched
    """
    runner = runner or ProcessManager()
    absolute = Path(test_file).expanduser().absolute()
    flags = extract_flags(absolute, extra_flags, config)
    if flags:
        logger.info(f"Parsed test options: {flags}")

    argv = build_compiler_argv(absolute, layout, str(flags), verbose=True)
    result = runner.run_command(argv)

    cc1plus = extract_cc1plus_line(result.output)
    if cc1plus is None:
        raise ExtractionFailure(
            f"Failed to extract cc1plus command for {test_file}. "
            "Check if xg++ can compile the test.",
            test_file=test_file,
            return_code=result.return_code,
        )
    logger.debug(f"cc1plus command: {cc1plus}")
    return cc1plus


def debugger_argv(
    cc1plus_command: str,
    layout: ProjectLayout,
    config: Optional[GccDevConfig] = None,
) -> List[str]:
    """Wrap a cc1plus command line in a gdb session rooted at build/gcc."""
    config = config or GccDevConfig()
    return [
        config.gdb_command,
        f"-cd={layout.gcc_build_dir}",
        "-x",
        config.gdbinit,
        "--args",
        *split_flags(cc1plus_command),
    ]


def compile_argv(
    test_file: PathLike,
    layout: ProjectLayout,
    config: Optional[GccDevConfig] = None,
) -> List[str]:
    """Compile a test with its directive flags; run it from build/gcc."""
    absolute = Path(test_file).expanduser().absolute()
    flags = extract_flags(absolute, config=config)
    return build_compiler_argv(absolute, layout, str(flags))


def testsuite_argv(
    test_file: PathLike, config: Optional[GccDevConfig] = None
) -> List[str]:
    """Run one test through DejaGNU; run it from build/gcc."""
    config = config or GccDevConfig()
    name = Path(test_file).name
    if not name:
        raise GccDevError(
            f"Invalid test file path: {test_file!s}", error_code="INVALID_TEST_PATH"
        )
    return [config.make_command, config.check_target, f"RUNTESTFLAGS=dg.exp={name}"]


def find_tests(pattern: str, source_root: PathLike) -> List[Path]:
    """
    Find testsuite files whose path below g++.dg matches ``*pattern*.C`` or
    ``*pattern*.cc``.

    ``pattern`` may itself contain glob characters and path separators, for
    example ``cpp26/const``. The checkout's own location never takes part in
    the match. Results are absolute and sorted.
    """
    testsuite = Path(source_root) / TESTSUITE_SUBDIR
    globs = [f"*{pattern}*{suffix}" for suffix in TEST_SUFFIXES]
    matches: List[Path] = []

    for dirpath, dirnames, filenames in os.walk(testsuite):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            relative = path.relative_to(testsuite).as_posix()
            if any(fnmatch.fnmatchcase(relative, glob) for glob in globs):
                matches.append(path.absolute())

    logger.debug(f"Found {len(matches)} tests matching {pattern!r} under {testsuite}")
    return matches


def locate_test_log(layout: ProjectLayout) -> Union[Path, NotFound]:
    """Find the g++.log written by the last testsuite run."""
    candidates = tuple(layout.build_root / candidate for candidate in TEST_LOG_CANDIDATES)
    for candidate in candidates:
        if candidate.is_file() and os.access(candidate, os.R_OK):
            return candidate
    return NotFound(
        what="test log",
        probed=candidates,
        hint="Run the testsuite first to generate logs.",
    )
