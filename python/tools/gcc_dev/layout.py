#!/usr/bin/env python3
"""
Layout discovery for a GCC source and build tree.

Everything here is a read-only filesystem probe. A probe that finds nothing
returns a ``NotFound`` naming the paths it tried; nothing is cached, so every
call sees the tree as it is now.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from .config import (
    ARTIFACT_MARKER,
    BUILD_DIR_NAME,
    SOURCE_MARKER,
    BuildRootPolicy,
    GccDevConfig,
)
from .core_types import (
    EnvironmentFailure,
    MissingFact,
    NotFound,
    PathLike,
    ProjectLayout,
)


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _ancestors(start_dir: PathLike) -> List[Path]:
    start = Path(start_dir).expanduser().resolve()
    return [start, *start.parents]


def find_source_root(
    start_dir: PathLike,
    policy: BuildRootPolicy = BuildRootPolicy.NESTED_OR_SIBLING,
) -> Union[Path, NotFound]:
    """
    Walk upward from ``start_dir`` to the directory that contains ``gcc/``.

    With the same-ancestor policy the ancestor must also contain ``build/``;
    ancestors that only hold ``gcc/`` are skipped.
    """
    probed: List[Path] = []
    for directory in _ancestors(start_dir):
        marker = directory / SOURCE_MARKER
        probed.append(marker)
        if not marker.is_dir():
            continue
        if policy == BuildRootPolicy.SAME_ANCESTOR:
            build_dir = directory / BUILD_DIR_NAME
            probed.append(build_dir)
            if not build_dir.is_dir():
                continue
        logger.debug(f"Found GCC source root: {directory}")
        return directory

    required = "gcc/ and build/" if policy == BuildRootPolicy.SAME_ANCESTOR else "gcc/"
    return NotFound(
        what="GCC source directory",
        probed=tuple(probed),
        hint=(
            f"Run from within your GCC source tree (anywhere inside the "
            f"directory containing {required})."
        ),
    )


def find_build_root(
    source_root: PathLike,
    policy: BuildRootPolicy = BuildRootPolicy.NESTED_OR_SIBLING,
) -> Union[Path, NotFound]:
    """
    Locate the build directory for ``source_root``.

    ``source_root/build`` always wins over ``parent(source_root)/build``.
    The same-ancestor policy only accepts ``source_root/build``.
    """
    root = Path(source_root)
    candidates = [root / BUILD_DIR_NAME]
    if policy == BuildRootPolicy.NESTED_OR_SIBLING:
        candidates.append(root.parent / BUILD_DIR_NAME)

    for candidate in candidates:
        if candidate.is_dir():
            logger.debug(f"Found build root: {candidate}")
            return candidate

    return NotFound(
        what="build directory",
        probed=tuple(candidates),
        hint="Expected build/ either inside the GCC source directory or as a sibling to it.",
    )


def detect_target_id(
    build_root: PathLike, candidates: Optional[List[str]] = None
) -> Union[str, NotFound]:
    """
    Detect the target triplet whose libstdc++-v3 has been built.

    The fixed candidate list is probed first; only when none of them holds a
    ``libstdc++-v3`` directory are the immediate subdirectories of the build
    root scanned, in name order.
    """
    root = Path(build_root)
    if candidates is None:
        candidates = GccDevConfig().target_candidates

    probed: List[Path] = []
    for target in candidates:
        artifact_dir = root / target / ARTIFACT_MARKER
        probed.append(artifact_dir)
        if artifact_dir.is_dir():
            logger.debug(f"Detected target from candidate list: {target}")
            return target

    try:
        children = sorted(child for child in root.iterdir() if child.is_dir())
    except OSError as e:
        logger.debug(f"Cannot scan {root}: {e}")
        children = []

    for child in children:
        if (child / ARTIFACT_MARKER).is_dir():
            logger.debug(f"Detected target by scanning {root}: {child.name}")
            return child.name
    probed.append(root / "*" / ARTIFACT_MARKER)

    return NotFound(
        what="target architecture",
        probed=tuple(probed),
        hint=(
            f"Expected to find {ARTIFACT_MARKER} in build/<target-triplet>/. "
            "Please ensure libstdc++ has been built."
        ),
    )


def validate_environment(
    start_dir: PathLike, config: Optional[GccDevConfig] = None
) -> Union[ProjectLayout, EnvironmentFailure]:
    """
    Resolve the full project layout or report the first missing fact.

    Facts are checked in order: source root, build root, compiler driver,
    target id. Target detection is skipped when an earlier fact is missing.
    """
    config = config or GccDevConfig()
    policy = config.build_root_policy

    source_root = find_source_root(start_dir, policy)
    if isinstance(source_root, NotFound):
        return EnvironmentFailure.from_not_found(MissingFact.SOURCE_ROOT, source_root)

    build_root = find_build_root(source_root, policy)
    if isinstance(build_root, NotFound):
        return EnvironmentFailure.from_not_found(MissingFact.BUILD_ROOT, build_root)

    driver = build_root / "gcc" / "xg++"
    if not _is_executable(driver):
        return EnvironmentFailure(
            missing=MissingFact.COMPILER_DRIVER,
            probed=(driver,),
            message=(
                "GCC build not found or incomplete.\n"
                f"Expected xg++ at: {driver}\n"
                'Please run "make" in your build directory first.'
            ),
        )

    target_id = detect_target_id(build_root, config.target_candidates)
    if isinstance(target_id, NotFound):
        return EnvironmentFailure.from_not_found(MissingFact.TARGET_ID, target_id)

    layout = ProjectLayout(
        source_root=source_root, build_root=build_root, target_id=target_id
    )
    logger.debug(f"Resolved layout: {layout}")
    return layout


@dataclass(frozen=True, slots=True)
class CheckItem:
    description: str
    path: Optional[Path]
    ok: bool
    note: str = ""


@dataclass
class EnvironmentReport:
    """Checklist of everything the commands need, without short-circuiting."""

    source_root: Optional[Path] = None
    build_root: Optional[Path] = None
    target_id: Optional[str] = None
    failure: Optional[NotFound] = None
    items: List[CheckItem] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return self.failure is None and all(item.ok for item in self.items)


def check_environment(
    start_dir: PathLike, config: Optional[GccDevConfig] = None
) -> EnvironmentReport:
    """
    Inspect the environment and report on every required path.

    Unlike ``validate_environment`` this keeps going after a missing driver
    or target, so the user sees the complete picture at once. Only a missing
    source or build root stops the checklist, since every other path hangs
    off them.
    """
    config = config or GccDevConfig()
    policy = config.build_root_policy
    report = EnvironmentReport()

    source_root = find_source_root(start_dir, policy)
    if isinstance(source_root, NotFound):
        report.failure = source_root
        return report
    report.source_root = source_root

    build_root = find_build_root(source_root, policy)
    if isinstance(build_root, NotFound):
        report.failure = build_root
        return report
    report.build_root = build_root

    target_id = detect_target_id(build_root, config.target_candidates)
    if not isinstance(target_id, NotFound):
        report.target_id = target_id

    def directory_item(description: str, path: Path) -> CheckItem:
        ok = path.is_dir() or path.is_file()
        return CheckItem(description, path, ok, "" if ok else f"not found: {path}")

    def executable_item(description: str, path: Path) -> CheckItem:
        ok = _is_executable(path)
        return CheckItem(description, path, ok, "" if ok else f"not found: {path}")

    report.items = [
        directory_item("GCC source directory", source_root / SOURCE_MARKER),
        directory_item("Build directory", build_root),
        executable_item("xg++ compiler", build_root / "gcc" / "xg++"),
        executable_item("cc1plus binary", build_root / "gcc" / "cc1plus"),
    ]
    if report.target_id:
        report.items.append(
            directory_item(
                "libstdc++ build", build_root / report.target_id / ARTIFACT_MARKER
            )
        )
    else:
        report.items.append(
            CheckItem("libstdc++ build", None, False, "architecture not detected")
        )
    report.items.append(
        directory_item("libstdc++ source", source_root / ARTIFACT_MARKER)
    )

    for item in report.items:
        logger.debug(f"{'ok' if item.ok else 'FAILED'}: {item.description}")
    return report
