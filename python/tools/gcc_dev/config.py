#!/usr/bin/env python3
"""
Configuration for the GCC development helper.

The defaults reproduce the fixed discovery policy; a JSON or YAML file can
override them, for instance to switch the build-root policy or the debugger.
"""

from __future__ import annotations

import json
import os
from enum import StrEnum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .core_types import ConfigurationError, PathLike

CONFIG_ENV_VAR = "GCC_DEV_CONFIG"

SOURCE_MARKER = "gcc"
BUILD_DIR_NAME = "build"
ARTIFACT_MARKER = "libstdc++-v3"

DEFAULT_TARGET_CANDIDATES = (
    "x86_64-pc-linux-gnu",
    "x86_64-linux-gnu",
    "aarch64-linux-gnu",
    "arm-linux-gnueabihf",
    "powerpc64le-linux-gnu",
    "riscv64-linux-gnu",
    "s390x-linux-gnu",
    "i686-pc-linux-gnu",
    "i686-linux-gnu",
)


class BuildRootPolicy(StrEnum):
    """How the build directory is located relative to the source root."""

    # gcc_root/build first, then a build/ next to gcc_root
    NESTED_OR_SIBLING = "nested-or-sibling"
    # one ancestor must hold both gcc/ and build/
    SAME_ANCESTOR = "same-ancestor"

    def __str__(self) -> str:
        descriptions = {
            self.NESTED_OR_SIBLING: "build/ inside the source root, else beside it",
            self.SAME_ANCESTOR: "build/ and gcc/ under the same ancestor",
        }
        return descriptions.get(self, self.value)


class GccDevConfig(BaseModel):
    """Settings for layout discovery and the commands built on top of it."""

    model_config = ConfigDict(
        extra="forbid", validate_assignment=True, str_strip_whitespace=True
    )

    build_root_policy: BuildRootPolicy = Field(
        default=BuildRootPolicy.NESTED_OR_SIBLING,
        description="Build directory discovery policy",
    )
    target_candidates: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TARGET_CANDIDATES),
        description="Target triplets probed before the fallback scan",
    )
    scan_limit_bytes: int = Field(
        default=2000,
        ge=0,
        description="Stop scanning for directives past this offset once a flag is found",
    )
    gdb_command: str = Field(default="gdb", description="Debugger executable")
    gdbinit: str = Field(
        default=".gdbinit", description="Debugger script, relative to build/gcc"
    )
    make_command: str = Field(default="make", description="Make executable")
    check_target: str = Field(
        default="check-g++", description="Make target that runs the C++ testsuite"
    )

    @field_validator("target_candidates")
    @classmethod
    def validate_target_candidates(cls, v: List[str]) -> List[str]:
        """Reject triplets that would escape the build directory."""
        for target in v:
            if not target or "/" in target or target in (".", ".."):
                raise ValueError(f"Invalid target triplet: {target!r}")
        return v

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[Path] = None) -> GccDevConfig:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {source or '<dict>'}: {e}",
                config_file=source,
                validation_errors=e.errors(),
            ) from e


def load_config(file_path: Optional[PathLike] = None) -> GccDevConfig:
    """
    Load configuration from a JSON or YAML file.

    Args:
        file_path: Explicit configuration file. When omitted the file named by
            the ``GCC_DEV_CONFIG`` environment variable is used, and when that
            is unset too the defaults are returned.

    Returns:
        Validated configuration object

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    if file_path is None:
        file_path = os.environ.get(CONFIG_ENV_VAR) or None
        if file_path is None:
            return GccDevConfig()

    path = Path(file_path).expanduser()
    if not path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            config_file=path,
            error_code="FILE_NOT_FOUND",
        )

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(
            f"Failed to read configuration file {path}: {e}",
            config_file=path,
            error_code="FILE_READ_ERROR",
        ) from e

    suffix = path.suffix.lower()
    logger.debug(f"Loading configuration from {path}")
    try:
        match suffix:
            case ".json":
                data = json.loads(content)
            case ".yaml" | ".yml":
                data = yaml.safe_load(content)
            case _:
                raise ConfigurationError(
                    f"Unsupported configuration file format: {suffix or '<none>'}. "
                    "Supported formats: .json, .yaml, .yml",
                    config_file=path,
                    error_code="UNSUPPORTED_FORMAT",
                )
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in {path}: {e}", config_file=path, line=e.lineno
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", config_file=path) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration in {path} must be a mapping", config_file=path
        )

    return GccDevConfig.from_dict(data, path)
