"""Tests for the target resolver."""

import logging
import os
from pathlib import Path

import pytest

from gvtab import resolver
from gvtab.resolver import (
    ExpansionLimits,
    ExpansionTooLarge,
    NoTargets,
    TargetNotFound,
    TooManyTargets,
    resolve,
)

SMALLDIR = Path(__file__).parent / "fixtures" / "smalldir"
LIMITS = ExpansionLimits()


def _touch(path: Path, size: int = 0) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


class TestLiteralArguments:
    def test_preserves_argument_order(self, tmp_path):
        a = _touch(tmp_path / "a.txt")
        b = _touch(tmp_path / "b.txt")
        targets = resolve((str(b), str(a)), LIMITS)
        assert targets == (b, a)

    def test_relative_paths_become_absolute(self, tmp_path, monkeypatch):
        _touch(tmp_path / "a.txt")
        monkeypatch.chdir(tmp_path)
        targets = resolve(("a.txt",), LIMITS)
        assert targets == (tmp_path / "a.txt",)
        assert targets[0].is_absolute()

    def test_duplicates_removed_keeping_first(self, tmp_path):
        a = _touch(tmp_path / "a.txt")
        b = _touch(tmp_path / "b.txt")
        targets = resolve((str(a), str(b), str(a)), LIMITS)
        assert targets == (a, b)

    def test_literal_list_ignores_expansion_limits(self, tmp_path):
        files = [_touch(tmp_path / f"f{i}.txt", size=10) for i in range(5)]
        limits = ExpansionLimits(max_files=2, max_total_size=1)
        targets = resolve(tuple(str(f) for f in files), limits)
        assert targets == tuple(files)

    def test_missing_path_named_in_error(self, tmp_path):
        a = _touch(tmp_path / "a.txt")
        missing = str(tmp_path / "missing.txt")
        with pytest.raises(TargetNotFound, match="missing.txt") as info:
            resolve((str(a), missing), LIMITS)
        assert info.value.path == missing

    def test_directory_among_several_arguments_rejected(self, tmp_path):
        a = _touch(tmp_path / "a.txt")
        with pytest.raises(TargetNotFound, match="is a directory"):
            resolve((str(a), str(SMALLDIR)), LIMITS)

    def test_no_arguments(self):
        with pytest.raises(NoTargets, match="no paths given"):
            resolve((), LIMITS)


class TestDirectoryExpansion:
    def test_walk_order_is_depth_first_by_name(self):
        targets = resolve((str(SMALLDIR),), LIMITS)
        assert [t.relative_to(SMALLDIR).as_posix() for t in targets] == [
            "a.txt",
            "sub/b.txt",
            "z.txt",
        ]

    def test_repeated_runs_are_identical(self):
        first = resolve((str(SMALLDIR),), LIMITS)
        second = resolve((str(SMALLDIR),), LIMITS)
        assert first == second

    def test_files_and_directories_interleave_by_name(self, tmp_path):
        _touch(tmp_path / "b.txt")
        _touch(tmp_path / "a" / "inner.txt")
        _touch(tmp_path / "c" / "d" / "deep.txt")
        _touch(tmp_path / "a.txt")
        targets = resolve((str(tmp_path),), LIMITS)
        assert [t.relative_to(tmp_path).as_posix() for t in targets] == [
            "a/inner.txt",
            "a.txt",
            "b.txt",
            "c/d/deep.txt",
        ]

    def test_too_many_files_fails_without_partial_result(self, tmp_path):
        for i in range(600):
            _touch(tmp_path / f"file_{i:04d}.bin")
        with pytest.raises(TooManyTargets) as info:
            resolve((str(tmp_path),), ExpansionLimits(max_files=500))
        assert info.value.limit == 500
        assert "500" in str(info.value)

    def test_exactly_max_files_is_allowed(self, tmp_path):
        for i in range(3):
            _touch(tmp_path / f"f{i}.txt")
        targets = resolve((str(tmp_path),), ExpansionLimits(max_files=3))
        assert len(targets) == 3

    def test_aggregate_size_limit(self, tmp_path):
        _touch(tmp_path / "a.bin", size=600)
        _touch(tmp_path / "b.bin", size=600)
        with pytest.raises(ExpansionTooLarge) as info:
            resolve((str(tmp_path),), ExpansionLimits(max_total_size=1000))
        assert info.value.bound == "max-size"
        assert info.value.limit == 1000

    def test_depth_limit(self, tmp_path):
        _touch(tmp_path / "one" / "two" / "three" / "f.txt")
        with pytest.raises(ExpansionTooLarge) as info:
            resolve((str(tmp_path),), ExpansionLimits(max_depth=2))
        assert info.value.bound == "max-depth"

    def test_depth_within_limit(self, tmp_path):
        _touch(tmp_path / "one" / "two" / "f.txt")
        targets = resolve((str(tmp_path),), ExpansionLimits(max_depth=2))
        assert len(targets) == 1

    def test_empty_directory(self, tmp_path):
        (tmp_path / "empty").mkdir()
        with pytest.raises(NoTargets, match="no files found"):
            resolve((str(tmp_path / "empty"),), LIMITS)

    @pytest.mark.skipif(os.name != "posix", reason="symlinks need POSIX")
    def test_symlinked_directories_not_followed(self, tmp_path):
        root = tmp_path / "root"
        _touch(root / "a.txt")
        (root / "loop").symlink_to(root, target_is_directory=True)
        targets = resolve((str(root),), LIMITS)
        assert targets == (root / "a.txt",)

    @pytest.mark.skipif(os.name != "posix", reason="symlinks need POSIX")
    def test_symlinked_files_included(self, tmp_path):
        real = _touch(tmp_path / "real.txt")
        root = tmp_path / "root"
        root.mkdir()
        (root / "link.txt").symlink_to(real)
        targets = resolve((str(root),), LIMITS)
        assert targets == (root / "link.txt",)


class TestLimitPrecedence:
    def test_count_wins_over_size_for_large_tree(self, tmp_path):
        for i in range(600):
            _touch(tmp_path / f"file_{i:04d}.bin", size=1024)
        with pytest.raises(TooManyTargets) as info:
            resolve((str(tmp_path),), ExpansionLimits(max_files=500))
        assert info.value.limit == 500

    def test_count_wins_over_early_deep_directory(self, tmp_path):
        _touch(tmp_path / "a" / "b" / "c" / "deep.txt")
        for i in range(10):
            _touch(tmp_path / f"z{i}.txt")
        with pytest.raises(TooManyTargets):
            resolve((str(tmp_path),), ExpansionLimits(max_files=5, max_depth=1))

    def test_size_reported_when_count_within_limit(self, tmp_path):
        for i in range(5):
            _touch(tmp_path / f"f{i}.bin", size=1024)
        with pytest.raises(ExpansionTooLarge) as info:
            resolve((str(tmp_path),), ExpansionLimits(max_files=10, max_total_size=2048))
        assert info.value.bound == "max-size"

    def test_depth_reported_when_count_within_limit(self, tmp_path):
        _touch(tmp_path / "a" / "b" / "c" / "deep.txt")
        _touch(tmp_path / "top.txt")
        with pytest.raises(ExpansionTooLarge) as info:
            resolve((str(tmp_path),), ExpansionLimits(max_files=10, max_depth=1))
        assert info.value.bound == "max-depth"


class TestUnusableEntries:
    def _fail_for(self, monkeypatch, bad: Path):
        real = resolver._sorted_entries

        def sorted_entries(directory):
            if Path(directory) == bad:
                raise PermissionError(13, "Permission denied")
            return real(directory)

        monkeypatch.setattr(resolver, "_sorted_entries", sorted_entries)

    def test_unreadable_subdirectory_skipped_with_warning(
        self, tmp_path, monkeypatch, caplog
    ):
        a = _touch(tmp_path / "a.txt")
        _touch(tmp_path / "locked" / "hidden.txt")
        z = _touch(tmp_path / "z.txt")
        self._fail_for(monkeypatch, tmp_path / "locked")
        with caplog.at_level(logging.WARNING, logger="gvtab.resolver"):
            targets = resolve((str(tmp_path),), LIMITS)
        assert targets == (a, z)
        assert "skipping unreadable directory" in caplog.text
        assert "locked" in caplog.text

    def test_unreadable_root_fails(self, tmp_path, monkeypatch):
        _touch(tmp_path / "a.txt")
        self._fail_for(monkeypatch, tmp_path)
        with pytest.raises(TargetNotFound, match="cannot be read"):
            resolve((str(tmp_path),), LIMITS)

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs os.mkfifo")
    def test_fifo_skipped(self, tmp_path):
        a = _touch(tmp_path / "a.txt")
        os.mkfifo(tmp_path / "b.pipe")
        c = _touch(tmp_path / "c.txt")
        targets = resolve((str(tmp_path),), LIMITS)
        assert targets == (a, c)
