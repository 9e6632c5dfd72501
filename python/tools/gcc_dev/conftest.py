from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytest

from .config import CONFIG_ENV_VAR
from .core_types import ProjectLayout


@dataclass
class FakeTree:
    source_root: Path
    build_root: Optional[Path]
    target_id: Optional[str]

    @property
    def layout(self) -> ProjectLayout:
        return ProjectLayout(self.source_root, self.build_root, self.target_id)


def make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


def make_gcc_tree(
    base: Path,
    *,
    build: Optional[str] = "nested",
    driver: bool = True,
    cc1plus: bool = True,
    target: Optional[str] = "x86_64-pc-linux-gnu",
) -> FakeTree:
    """
    Lay out a fake GCC checkout under ``base/src``.

    ``build`` is "nested" for src/build, "sibling" for base/build or None
    for no build directory at all.
    """
    source_root = base.resolve() / "src"
    (source_root / "gcc" / "cp").mkdir(parents=True)
    (source_root / "gcc" / "testsuite" / "g++.dg").mkdir(parents=True)
    (source_root / "libstdc++-v3").mkdir()

    build_root = None
    if build == "nested":
        build_root = source_root / "build"
    elif build == "sibling":
        build_root = base.resolve() / "build"

    if build_root is not None:
        (build_root / "gcc").mkdir(parents=True)
        if driver:
            make_executable(build_root / "gcc" / "xg++")
        if cc1plus:
            make_executable(build_root / "gcc" / "cc1plus")
        if target:
            (build_root / target / "libstdc++-v3").mkdir(parents=True)

    return FakeTree(source_root, build_root, target)


@pytest.fixture(autouse=True)
def no_config_env(monkeypatch):
    """Keep a developer's own configuration out of the tests."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


@pytest.fixture
def gcc_tree(tmp_path):
    """A fully built tree with build/ inside the source root."""
    return make_gcc_tree(tmp_path)
