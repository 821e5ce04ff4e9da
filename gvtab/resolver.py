"""Target resolution — turn CLI path arguments into a bounded list of files."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from gvtab.types import Paths, frozen_slots

LOG = logging.getLogger("gvtab.resolver")


@frozen_slots
class ExpansionLimits:
    """Hard caps applied while expanding a directory argument."""

    max_files: int = 30
    max_total_size: int = 1024 * 300  # bytes
    max_depth: int = 8


class ResolutionError(Exception):
    """Base class for failures that abort before anything is dispatched."""


class TargetNotFound(ResolutionError):
    """A literal path argument does not exist or cannot be opened as a file."""

    def __init__(self, path: str, reason: str = "does not exist") -> None:
        super().__init__(f"path '{path}' {reason}")
        self.path = path
        self.reason = reason


class NoTargets(ResolutionError):
    """Nothing to open: no arguments, or an empty directory."""


class TooManyTargets(ResolutionError):
    """Directory expansion found more files than allowed."""

    def __init__(self, root: str, limit: int) -> None:
        super().__init__(
            f"'{root}' contains more than {limit} files (max-files = {limit})"
        )
        self.root = root
        self.limit = limit


class ExpansionTooLarge(ResolutionError):
    """Directory expansion exceeded the size or depth bound."""

    def __init__(self, root: str, bound: str, limit: int) -> None:
        if bound == "max-size":
            detail = f"files under '{root}' total more than {limit} bytes"
        else:
            detail = f"'{root}' is nested deeper than {limit} levels"
        super().__init__(f"{detail} ({bound} = {limit})")
        self.root = root
        self.bound = bound
        self.limit = limit


def resolve(args: Paths, limits: ExpansionLimits) -> tuple[Path, ...]:
    """Resolve CLI arguments into ordered, deduplicated absolute file paths.

    A single directory argument is expanded recursively. Any other argument
    list is taken literally: every entry must be an existing file. Expansion
    is all-or-nothing; when a limit is hit no partial result is returned.

    Args:
        args: Raw path arguments in the order given.
        limits: Bounds for directory expansion.

    Returns:
        Absolute file paths, in argument order or directory-walk order.

    Raises:
        ResolutionError: If any argument is unusable or a limit is exceeded.
    """
    if not args:
        raise NoTargets("no paths given")

    if len(args) == 1 and os.path.isdir(args[0]):
        files = _expand_directory(args[0], limits)
        if not files:
            raise NoTargets(f"no files found under '{args[0]}'")
    else:
        files = [_literal_file(arg) for arg in args]

    return tuple(dict.fromkeys(files))


def _literal_file(arg: str) -> Path:
    """Validate a single literal argument and return its absolute path."""
    if not os.path.exists(arg):
        raise TargetNotFound(arg)
    if os.path.isdir(arg):
        raise TargetNotFound(
            arg, "is a directory (only a single directory argument is expanded)"
        )
    return Path(os.path.abspath(arg))


class _Walk:
    """Running totals for one directory expansion.

    The file count is the primary bound and aborts the walk the moment it is
    exceeded. A size or depth breach is only recorded: the walk keeps counting
    (without collecting) so an over-count tree still reports TooManyTargets.
    """

    def __init__(self, root: str, limits: ExpansionLimits) -> None:
        self.root = root
        self.limits = limits
        self.files: list[Path] = []
        self.count = 0
        self.total_size = 0
        self.breach: ExpansionTooLarge | None = None

    def note_breach(self, bound: str, limit: int) -> None:
        if self.breach is None:
            self.breach = ExpansionTooLarge(self.root, bound, limit)

    def add(self, path: Path, size: int) -> None:
        self.count += 1
        if self.count > self.limits.max_files:
            raise TooManyTargets(self.root, self.limits.max_files)
        if self.breach is not None:
            return
        self.total_size += size
        if self.total_size > self.limits.max_total_size:
            self.note_breach("max-size", self.limits.max_total_size)
            return
        self.files.append(path)


def _expand_directory(root: str, limits: ExpansionLimits) -> list[Path]:
    """Collect regular files under *root*, depth-first in name order."""
    walk = _Walk(root, limits)
    root_path = Path(os.path.abspath(root))
    try:
        entries = _sorted_entries(root_path)
    except OSError as exc:
        raise TargetNotFound(root, f"cannot be read ({exc.strerror})") from None
    _visit(entries, 0, walk)
    if walk.breach is not None:
        raise walk.breach
    LOG.info(
        "expanded %s into %d file(s), %d bytes",
        root,
        len(walk.files),
        walk.total_size,
    )
    return walk.files


def _visit(entries: list[os.DirEntry[str]], depth: int, walk: _Walk) -> None:
    for entry in entries:
        path = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            if depth + 1 > walk.limits.max_depth:
                walk.note_breach("max-depth", walk.limits.max_depth)
            try:
                children = _sorted_entries(path)
            except OSError as exc:
                LOG.warning("skipping unreadable directory %s: %s", path, exc.strerror)
                continue
            _visit(children, depth + 1, walk)
            continue
        try:
            info = entry.stat()  # follows symlinks to files
        except OSError:
            LOG.debug("skipping dangling entry %s", path)
            continue
        if stat.S_ISREG(info.st_mode):
            walk.add(path, info.st_size)


def _sorted_entries(directory: Path) -> list[os.DirEntry[str]]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda e: e.name)
