#!/usr/bin/env python3
"""
DejaGNU directive extraction for GCC testsuite files.

Test files carry their compiler configuration in comments such as::

    // { dg-options "-O2 -fno-exceptions" }
    /* { dg-require-effective-target c++20 } */

Only the few directives that translate into compiler flags are recognised.
Directive syntax is not validated beyond what the flag extraction needs.
"""

from __future__ import annotations

import re
import shlex
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from loguru import logger

from .config import GccDevConfig
from .core_types import DirectiveKind, DirectiveMatch, PathLike

# dg-add-options feature name -> flag
FEATURE_FLAGS = {
    "pthread": "-pthread",
    "tls": "-ftls-model=global-dynamic",
    "bind_pic_locally": "-fPIE",
    "c99_runtime": "-std=c99",
    "ieee": "-fno-unsafe-math-optimizations",
    "openmp": "-fopenmp",
}

OPENMP_FLAG = "-fopenmp"
STD_MARKER = "-std="

_QUOTED = r"""(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')"""

OPTIONS_PATTERN = re.compile(r"\{\s*dg-options\s+" + _QUOTED)
ADDITIONAL_OPTIONS_PATTERN = re.compile(r"\{\s*dg-additional-options\s+" + _QUOTED)
ADD_OPTIONS_PATTERN = re.compile(r"\{\s*dg-add-options\s+(?P<feature>[^\s}]+)")
OPENMP_PATTERN = re.compile(r"\{\s*dg-require-effective-target\s+fopenmp\s*\}")
STD_PATTERN = re.compile(
    r"\{\s*dg-require-effective-target\s+c\+\+(?P<required>\d+)"
    r"|\btarget\s+c\+\+(?P<selector>\d+)"
)

LINE_COMMENT = re.compile(r"^\s*//(?P<text>.*)$")
BLOCK_OPEN = "/*"
BLOCK_CLOSE = "*/"


def split_flags(flags: str) -> List[str]:
    """
    Split a flag string the way a shell would.

    Payloads with an unbalanced quote, such as ``-DMSG=it's``, fall back to
    plain whitespace splitting.
    """
    try:
        return shlex.split(flags)
    except ValueError as e:
        logger.debug(f"Splitting {flags!r} on whitespace: {e}")
        return flags.split()


def _is_std(arg: str) -> bool:
    return arg.startswith(STD_MARKER)


def _quoted_payload(match: re.Match) -> str:
    dq = match.group("dq")
    return dq if dq is not None else match.group("sq")


def match_directives(comment: str, line_number: int = 0) -> List[DirectiveMatch]:
    """
    Recognise every flag-bearing directive in one comment's text.

    Matches come back in a fixed order: options, additional options, feature
    request, OpenMP requirement, language version requirement. A version
    requirement on a line that also sets ``dg-options`` is a target selector
    for those options and is ignored.
    """
    matches: List[DirectiveMatch] = []

    options = OPTIONS_PATTERN.search(comment)
    if options:
        matches.append(
            DirectiveMatch(DirectiveKind.OPTIONS, _quoted_payload(options), line_number)
        )

    additional = ADDITIONAL_OPTIONS_PATTERN.search(comment)
    if additional:
        matches.append(
            DirectiveMatch(
                DirectiveKind.ADDITIONAL_OPTIONS, _quoted_payload(additional), line_number
            )
        )

    feature = ADD_OPTIONS_PATTERN.search(comment)
    if feature:
        matches.append(
            DirectiveMatch(DirectiveKind.ADD_OPTIONS, feature.group("feature"), line_number)
        )

    if OPENMP_PATTERN.search(comment):
        matches.append(DirectiveMatch(DirectiveKind.REQUIRE_OPENMP, OPENMP_FLAG, line_number))

    version = STD_PATTERN.search(comment)
    if version and not options:
        number = version.group("required") or version.group("selector")
        matches.append(DirectiveMatch(DirectiveKind.STD_REQUIREMENT, number, line_number))

    return matches


class FlagSet:
    """
    Ordered compiler flag tokens collected from one test file.

    Each directive payload is kept as one token, so a ``dg-options`` string
    such as ``"-O2 -g"`` stays together. At most one ``-std=`` argument is
    kept: later ones are dropped, whether they come from a version
    requirement, an options payload or caller-supplied flags.
    """

    def __init__(self, tokens: Optional[Iterable[str]] = None) -> None:
        self._tokens: List[str] = []
        for token in tokens or ():
            self.add(token)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __bool__(self) -> bool:
        return bool(self._tokens)

    def __str__(self) -> str:
        return " ".join(self._tokens)

    def __repr__(self) -> str:
        return f"FlagSet({self._tokens!r})"

    @property
    def tokens(self) -> List[str]:
        return list(self._tokens)

    @property
    def has_std(self) -> bool:
        return any(_is_std(arg) for token in self._tokens for arg in split_flags(token))

    def add(self, token: str) -> None:
        """Append a flag token; empty tokens are ignored."""
        if STD_MARKER in token:
            token = self._drop_extra_std(token)
        if token:
            self._tokens.append(token)

    def _drop_extra_std(self, token: str) -> str:
        args = split_flags(token)
        seen = self.has_std
        kept: List[str] = []
        for arg in args:
            if _is_std(arg):
                if seen:
                    logger.debug(f"Ignoring {arg}: a -std= flag is already set")
                    continue
                seen = True
            kept.append(arg)
        if len(kept) == len(args):
            return token
        return shlex.join(kept)

    def add_std(self, flag: str) -> bool:
        """Append a ``-std=`` flag unless one is already present."""
        if self.has_std:
            logger.debug(f"Ignoring {flag}: a -std= flag is already set")
            return False
        self._tokens.append(flag)
        return True

    def apply(self, directive: DirectiveMatch) -> None:
        """Fold one directive into the flag set."""
        match directive.kind:
            case DirectiveKind.OPTIONS | DirectiveKind.ADDITIONAL_OPTIONS:
                self.add(directive.payload)
            case DirectiveKind.ADD_OPTIONS:
                flag = FEATURE_FLAGS.get(directive.payload)
                if flag is None:
                    logger.debug(f"No flag mapping for dg-add-options {directive.payload}")
                elif STD_MARKER in flag:
                    self.add_std(flag)
                else:
                    self.add(flag)
            case DirectiveKind.REQUIRE_OPENMP:
                self.add(directive.payload)
            case DirectiveKind.STD_REQUIREMENT:
                self.add_std(f"-std=c++{directive.payload}")

    def extend(self, extra_flags: str) -> None:
        """Append caller-supplied flags after the directive flags."""
        self.add(extra_flags.strip())

    def to_argv(self) -> List[str]:
        """Split the flag tokens into individual command-line arguments."""
        return split_flags(str(self))


def scan_comments(raw_lines: Iterable[bytes]) -> Iterator[tuple[int, int, Optional[str]]]:
    """
    Yield ``(line_number, bytes_consumed, comment_text)`` for every line.

    A ``//`` line yields the text after the slashes and never opens a block,
    though a ``*/`` on it still closes one. Any other line yields in full
    while a block comment is open, the opening and closing lines of the
    block included. Lines outside comments yield ``None``.
    """
    consumed = 0
    in_block = False
    for number, raw in enumerate(raw_lines, start=1):
        consumed += len(raw)
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")

        line_comment = LINE_COMMENT.match(line)
        if line_comment:
            yield number, consumed, line_comment.group("text")
            if BLOCK_CLOSE in line:
                in_block = False
            continue

        if BLOCK_OPEN in line:
            in_block = True
        yield number, consumed, (line if in_block else None)
        if BLOCK_CLOSE in line:
            in_block = False


def extract_flags(
    test_file: PathLike,
    extra_flags: str = "",
    config: Optional[GccDevConfig] = None,
) -> FlagSet:
    """
    Collect the compiler flags a test file asks for.

    Scanning stops once a flag has been found and more than
    ``scan_limit_bytes`` have been read. A file that cannot be opened yields
    an empty flag set. ``extra_flags`` are appended after the directives.
    """
    config = config or GccDevConfig()
    flags = FlagSet()
    path = Path(test_file)

    try:
        handle = path.open("rb")
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        flags.extend(extra_flags)
        return flags

    with handle:
        for number, consumed, comment in scan_comments(handle):
            if comment is not None:
                for match in match_directives(comment, number):
                    logger.trace(f"{path.name}:{number}: {match.kind} {match.payload}")
                    flags.apply(match)

            if flags and consumed > config.scan_limit_bytes:
                break

    if flags:
        logger.debug(f"Parsed test options from {path.name}: {flags}")
    flags.extend(extra_flags)
    return flags


def parse_test_options(
    test_file: PathLike, config: Optional[GccDevConfig] = None
) -> str:
    """Return the space-joined directive flags of ``test_file``, possibly empty."""
    return str(extract_flags(test_file, config=config))
