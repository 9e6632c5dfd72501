#!/usr/bin/env python3
"""
GCC Development Helper

Automates the everyday loop of GCC C++ front-end development from inside a
GCC source tree:

- Discovery of the source root, build root and target triplet
- DejaGNU directive parsing (dg-options, dg-additional-options,
  dg-add-options, dg-require-effective-target)
- Extraction of the cc1plus command line from ``xg++ -v`` for debugging
- Command lines for compiling a test, debugging it under gdb and running it
  through ``make check-g++``
- Testsuite search and test log lookup
"""

from .logging_config import initialize, setup_logging
from .core_types import (
    CommandResult,
    ConfigurationError,
    DirectiveKind,
    DirectiveMatch,
    EnvironmentFailure,
    ExtractionFailure,
    GccDevError,
    MissingFact,
    NotFound,
    ProjectLayout,
    SubprocessFailure,
)
from .config import BuildRootPolicy, GccDevConfig, load_config
from .layout import (
    EnvironmentReport,
    check_environment,
    detect_target_id,
    find_build_root,
    find_source_root,
    validate_environment,
)
from .directives import FlagSet, extract_flags, parse_test_options
from .commands import (
    ProcessManager,
    build_compiler_argv,
    compile_argv,
    debugger_argv,
    extract_cc1plus_line,
    find_tests,
    get_cc1plus_command,
    locate_test_log,
    testsuite_argv,
)

# Module metadata
__version__ = "1.0.0"
__author__ = "Max Qian"
__license__ = "GPL-3.0-or-later"

initialize()

__all__ = [
    # Core types
    "ProjectLayout",
    "NotFound",
    "EnvironmentFailure",
    "MissingFact",
    "DirectiveKind",
    "DirectiveMatch",
    "CommandResult",
    "GccDevError",
    "ExtractionFailure",
    "SubprocessFailure",
    "ConfigurationError",
    # Configuration
    "BuildRootPolicy",
    "GccDevConfig",
    "load_config",
    # Layout discovery
    "find_source_root",
    "find_build_root",
    "detect_target_id",
    "validate_environment",
    "check_environment",
    "EnvironmentReport",
    # Directives
    "FlagSet",
    "extract_flags",
    "parse_test_options",
    # Commands
    "ProcessManager",
    "build_compiler_argv",
    "extract_cc1plus_line",
    "get_cc1plus_command",
    "debugger_argv",
    "compile_argv",
    "testsuite_argv",
    "find_tests",
    "locate_test_log",
    # Logging
    "initialize",
    "setup_logging",
]
