#!/usr/bin/env python3
"""
Core types and data models for the GCC development helper.

Probe failures (a missing directory, an undetectable target) are ordinary
outcomes and are returned as values. Exceptions are reserved for conditions
the caller cannot continue from: a driver that produced no cc1plus line, a
program that could not be launched, a broken configuration file.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TypeAlias, Union

from loguru import logger

PathLike: TypeAlias = Union[str, Path]


class MissingFact(StrEnum):
    """The environment fact that could not be established, in check order."""

    SOURCE_ROOT = "source_root"
    BUILD_ROOT = "build_root"
    COMPILER_DRIVER = "compiler_driver"
    TARGET_ID = "target_id"

    def __str__(self) -> str:
        descriptions = {
            self.SOURCE_ROOT: "GCC source directory",
            self.BUILD_ROOT: "build directory",
            self.COMPILER_DRIVER: "xg++ compiler driver",
            self.TARGET_ID: "target architecture",
        }
        return descriptions.get(self, self.value)


class DirectiveKind(StrEnum):
    """Kinds of DejaGNU directives that contribute compiler flags."""

    OPTIONS = "dg-options"
    ADDITIONAL_OPTIONS = "dg-additional-options"
    ADD_OPTIONS = "dg-add-options"
    REQUIRE_OPENMP = "dg-require-effective-target fopenmp"
    STD_REQUIREMENT = "c++ version requirement"


@dataclass(frozen=True, slots=True)
class ProjectLayout:
    """Fully resolved source root, build root and target triplet."""

    source_root: Path
    build_root: Path
    target_id: str

    @property
    def gcc_build_dir(self) -> Path:
        return self.build_root / "gcc"

    @property
    def compiler_driver(self) -> Path:
        return self.gcc_build_dir / "xg++"

    @property
    def cc1plus(self) -> Path:
        return self.gcc_build_dir / "cc1plus"

    @property
    def libstdcxx_build(self) -> Path:
        return self.build_root / self.target_id / "libstdc++-v3"

    @property
    def libstdcxx_source(self) -> Path:
        return self.source_root / "libstdc++-v3"

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for serialization."""
        return {
            "source_root": str(self.source_root),
            "build_root": str(self.build_root),
            "target_id": self.target_id,
        }


@dataclass(frozen=True, slots=True)
class NotFound:
    """
    Result of a filesystem probe that found nothing.

    ``probed`` lists every path that was looked at, in the order tried, so the
    caller can tell the user exactly where the tool looked.
    """

    what: str
    probed: Tuple[Path, ...] = ()
    hint: str = ""

    @property
    def message(self) -> str:
        lines = [f"Could not find {self.what}."]
        if self.probed:
            lines.append("Looked for:")
            lines.extend(f"  - {path}" for path in self.probed)
        if self.hint:
            lines.append(self.hint)
        return "\n".join(lines)

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class EnvironmentFailure:
    """The first environment fact that could not be established."""

    missing: MissingFact
    probed: Tuple[Path, ...] = ()
    message: str = ""

    @classmethod
    def from_not_found(
        cls, missing: MissingFact, not_found: NotFound
    ) -> EnvironmentFailure:
        return cls(missing=missing, probed=not_found.probed, message=not_found.message)

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class DirectiveMatch:
    """A directive recognised in a comment line, before it becomes a flag."""

    kind: DirectiveKind
    payload: str
    line_number: int = 0


@dataclass(frozen=True, slots=True)
class CommandResult:
    """
    Immutable result of a finished external command.

    Commands are fire-and-collect: the output is only available once the
    process has exited.
    """

    return_code: int
    stdout: str = ""
    stderr: str = ""
    command: List[str] = field(default_factory=list)
    execution_time: float = 0.0
    timestamp: float = field(default_factory=time.time)

    @property
    def success(self) -> bool:
        return self.return_code == 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    @property
    def command_str(self) -> str:
        return " ".join(self.command)


class GccDevError(Exception):
    """Base exception for GCC development helper errors."""

    def __init__(
        self, message: str, *, error_code: Optional[str] = None, **kwargs: Any
    ):
        super().__init__(message)
        self.error_code = error_code
        self.context = kwargs

        logger.bind(error_code=error_code, context=kwargs).debug(
            f"{type(self).__name__}: {message}"
        )


class ExtractionFailure(GccDevError):
    """Raised when driver output holds no cc1plus invocation."""

    def __init__(self, message: str, *, test_file: Optional[PathLike] = None, **kwargs: Any):
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "CC1PLUS_NOT_FOUND"),
            test_file=str(test_file) if test_file else None,
            **kwargs,
        )
        self.test_file = Path(test_file) if test_file else None


class SubprocessFailure(GccDevError):
    """Raised when an external program cannot be launched."""

    def __init__(self, message: str, *, command: Optional[List[str]] = None, **kwargs: Any):
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "LAUNCH_FAILED"),
            command=command,
            **kwargs,
        )
        self.command = command or []


class ConfigurationError(GccDevError):
    """Raised when a configuration file cannot be loaded or validated."""

    def __init__(self, message: str, *, config_file: Optional[PathLike] = None, **kwargs: Any):
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "INVALID_CONFIGURATION"),
            config_file=str(config_file) if config_file else None,
            **kwargs,
        )
        self.config_file = Path(config_file) if config_file else None
