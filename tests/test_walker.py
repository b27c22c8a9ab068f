# tests/test_walker.py
"""Tests for recursive traversal, pruning, single-path checks and cancellation."""

import asyncio
import os
import threading
from pathlib import Path
from typing import List, Tuple
from unittest.mock import MagicMock, patch

import pytest

from conftest import create_tree
from pathsift.config.settings import FilterConfig
from pathsift.core.discovery import walker as walker_module
from pathsift.core.discovery.walker import TreeWalker, WalkResult
from pathsift.exceptions import DiscoveryError, PatternTypeError


def relative_set(result: WalkResult, root: Path) -> set:
    return {p.relative_to(root).as_posix() for p in result}


def make_walker(**options) -> TreeWalker:
    return TreeWalker(FilterConfig.from_options(options), trace_sink=None)


class TestParse:
    def test_ignore_dirs_prunes_subtree(self, sample_tree: Path):
        walker = make_walker(ignoreDirs=["node_modules"])
        result = walker.parse(sample_tree)

        assert relative_set(result, sample_tree) == {"a.txt", "sub/b.md"}
        assert not result.aborted
        # node_modules itself is decided, but nothing below it is ever visited.
        assert not any("c.js" in r.message for r in walker.log)
        assert any(r.message == "   => ignore dir via: node_modules" for r in walker.log)

    def test_results_are_absolute_and_sorted(self, sample_tree: Path):
        result = make_walker().parse(sample_tree)
        assert all(p.is_absolute() for p in result)
        assert list(result.files) == sorted(result.files)
        assert len(result) == 3
        assert sample_tree / "a.txt" in result
        assert str(sample_tree / "sub" / "b.md") in result

    def test_ignore_files_by_default_with_allow_files(self, tmp_path: Path):
        create_tree(tmp_path, {"README.md": "", "notes.txt": ""})
        result = make_walker(ignoreFilesByDefault=True, allowFiles=["README"]).parse(tmp_path)
        assert relative_set(result, tmp_path) == {"README.md"}

    def test_ignore_exts(self, tmp_path: Path):
        create_tree(tmp_path, {"a.txt": "", "a.md": ""})
        result = make_walker(ignoreExts=[".txt"]).parse(tmp_path)
        assert relative_set(result, tmp_path) == {"a.md"}

    def test_only_files_prefix_match(self, tmp_path: Path):
        create_tree(tmp_path, {"readme.md": "", "readme2.txt": "", "other.md": ""})
        result = make_walker(onlyFiles=["readme"]).parse(tmp_path)
        assert relative_set(result, tmp_path) == {"readme.md", "readme2.txt"}

    def test_allow_paths_is_prefix_match(self, tmp_path: Path):
        create_tree(tmp_path, {"docs/x.md": "", "docsx/z.md": "", "src/y.py": ""})
        result = make_walker(ignorePathsByDefault=True, allowPaths=["docs"]).parse(tmp_path)
        assert relative_set(result, tmp_path) == {"docs/x.md", "docsx/z.md"}

    def test_denied_directory_is_never_descended(self, tmp_path: Path):
        create_tree(tmp_path, {"keep.txt": "", "sub/deep/inner.txt": "", "sub/b.txt": ""})
        walker = make_walker(ignorePaths=["sub"], allowPaths=["sub/deep"])
        result = walker.parse(tmp_path)

        # sub/deep would be allowed, but its parent was pruned first.
        assert relative_set(result, tmp_path) == {"keep.txt"}
        assert not any("inner.txt" in r.message or "/sub/deep" in r.message for r in walker.log)

    def test_path_rules_use_base_dir(self, tmp_path: Path):
        root = create_tree(tmp_path / "proj", {"sub/a.txt": "", "b.txt": ""})
        walker = TreeWalker(FilterConfig(ignore_paths=("proj/sub",)), base_dir=tmp_path, trace_sink=None)
        result = walker.parse(root)
        assert relative_set(result, root) == {"b.txt"}

    def test_parse_twice_is_idempotent(self, sample_tree: Path):
        walker = make_walker(ignoreExts=["md"])
        first = walker.parse(sample_tree)
        first_log = walker.log
        second = walker.parse(sample_tree)

        assert set(first) == set(second)
        assert len(walker.log) == len(first_log)

    def test_aparse_from_event_loop(self, sample_tree: Path):
        walker = make_walker(ignoreDirs=["sub", "node_modules"])
        result = asyncio.run(walker.aparse(sample_tree))
        assert relative_set(result, sample_tree) == {"a.txt"}

    def test_bare_separator_rules_do_not_prune_or_select_everything(self, tmp_path: Path):
        create_tree(tmp_path, {"a.txt": "", "sub/b.md": ""})
        assert relative_set(make_walker(ignoreDirs=["/"]).parse(tmp_path), tmp_path) == {"a.txt", "sub/b.md"}
        assert relative_set(make_walker(onlyFiles=["/"]).parse(tmp_path), tmp_path) == {"a.txt", "sub/b.md"}
        assert relative_set(make_walker(ignoreFiles=[""]).parse(tmp_path), tmp_path) == {"a.txt", "sub/b.md"}

    def test_root_checks_run_off_the_event_loop(self, sample_tree: Path):
        real_to_thread = asyncio.to_thread
        offloaded = []

        def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func)
            return real_to_thread(func, *args, **kwargs)

        with patch.object(walker_module.asyncio, "to_thread", new_callable=MagicMock, side_effect=recording_to_thread):
            result = make_walker().parse(sample_tree)

        assert len(result) == 3
        assert os.path.isdir in offloaded
        assert os.stat in offloaded

    def test_non_text_rule_fails_before_traversal(self):
        with pytest.raises(PatternTypeError):
            TreeWalker(FilterConfig.from_options({"ignoreDirs": ["ok", 7]}))


class TestErrors:
    def test_missing_root_is_a_hard_failure(self, tmp_path: Path):
        with pytest.raises(DiscoveryError):
            make_walker().parse(tmp_path / "does-not-exist")

    def test_file_root_is_a_hard_failure(self, tmp_path: Path):
        (tmp_path / "f.txt").write_text("")
        with pytest.raises(DiscoveryError):
            make_walker().parse(tmp_path / "f.txt")

    def test_unlistable_root_is_a_hard_failure(self, sample_tree: Path):
        def deny(path):
            raise PermissionError(13, "Permission denied", path)

        with patch.object(walker_module.os, "listdir", side_effect=deny):
            with pytest.raises(DiscoveryError):
                make_walker().parse(sample_tree)

    def test_vanished_entry_is_skipped(self, sample_tree: Path):
        real_classify = walker_module.classify_entry

        def flaky_classify(path: str):
            if path.endswith("a.txt"):
                raise FileNotFoundError(2, "No such file or directory", path)
            return real_classify(path)

        walker = make_walker()
        with patch.object(walker_module, "classify_entry", side_effect=flaky_classify):
            result = walker.parse(sample_tree)

        assert relative_set(result, sample_tree) == {"sub/b.md", "node_modules/c.js"}
        assert any(r.message.startswith("Skipping unreadable entry: /a.txt") for r in walker.log)

    def test_unreadable_subdirectory_is_skipped(self, sample_tree: Path):
        real_listdir = os.listdir
        blocked = str(sample_tree / "sub")

        def guarded_listdir(path):
            if path == blocked:
                raise PermissionError(13, "Permission denied", path)
            return real_listdir(path)

        walker = make_walker()
        with patch.object(walker_module.os, "listdir", side_effect=guarded_listdir):
            result = walker.parse(sample_tree)

        assert relative_set(result, sample_tree) == {"a.txt", "node_modules/c.js"}
        assert any(r.message.startswith("Skipping unreadable directory: /sub") for r in walker.log)

    def test_failing_trace_sink_does_not_abort(self, sample_tree: Path):
        def broken_sink(component: str, message: str):
            raise RuntimeError("sink down")

        walker = TreeWalker(FilterConfig(), trace_sink=broken_sink)
        assert len(walker.parse(sample_tree)) == 3
        assert len(walker.log) > 0


@pytest.mark.skipif(not hasattr(os, "symlink") or os.name == "nt", reason="requires posix symlinks")
class TestSymlinks:
    def test_symlinked_directory_skipped_by_default(self, sample_tree: Path, tmp_path: Path):
        outside = create_tree(tmp_path / "outside", {"x.txt": ""})
        os.symlink(outside, sample_tree / "link")

        walker = make_walker()
        result = walker.parse(sample_tree)
        assert "link/x.txt" not in relative_set(result, sample_tree)
        assert any(r.message == "Skipping symlinked directory: /link" for r in walker.log)

    def test_symlinked_directory_followed_when_enabled(self, sample_tree: Path, tmp_path: Path):
        outside = create_tree(tmp_path / "outside", {"x.txt": ""})
        os.symlink(outside, sample_tree / "link")

        result = make_walker(followSymlinks=True).parse(sample_tree)
        assert "link/x.txt" in relative_set(result, sample_tree)

    def test_symlink_cycle_is_walked_once(self, sample_tree: Path):
        os.symlink(sample_tree, sample_tree / "sub" / "loop")

        walker = make_walker(followSymlinks=True)
        result = walker.parse(sample_tree)
        assert relative_set(result, sample_tree) == {"a.txt", "sub/b.md", "node_modules/c.js"}
        assert any(r.message == "Skipping already visited directory: /sub/loop" for r in walker.log)

    def test_symlinked_file_is_a_file(self, sample_tree: Path):
        os.symlink(sample_tree / "a.txt", sample_tree / "alias.txt")
        assert "alias.txt" in relative_set(make_walker().parse(sample_tree), sample_tree)


class TestFreeformCheckFile:
    def test_file_under_denied_parent_is_rejected(self):
        walker = make_walker(ignoreDirs=["node_modules"])
        assert walker.freeform_check_file("/root/node_modules/c.js") is False
        # the file-level decision is never reached.
        assert not any(r.component.endswith("decide_file") for r in walker.log)

    def test_file_under_allowed_parent_is_checked(self):
        walker = make_walker(ignoreDirs=["node_modules"], ignoreExts=["log"])
        assert walker.freeform_check_file("/root/sub/b.md") is True
        assert walker.freeform_check_file("/root/sub/debug.log") is False

    def test_uses_base_dir_for_path_rules(self, tmp_path: Path):
        walker = TreeWalker(FilterConfig(ignore_paths=("build",)), base_dir=tmp_path, trace_sink=None)
        assert walker.freeform_check_file(tmp_path / "build" / "out.js") is False
        assert walker.freeform_check_file(tmp_path / "src" / "main.js") is True

    def test_uses_last_parse_root(self, sample_tree: Path):
        walker = make_walker(ignorePaths=["sub"])
        walker.parse(sample_tree)
        assert walker.freeform_check_file(sample_tree / "sub" / "b.md") is False

    def test_agrees_with_traversal(self, sample_tree: Path):
        walker = make_walker(ignoreDirs=["node_modules"], ignoreExts=["txt"])
        accepted = set(walker.parse(sample_tree))
        for candidate in (sample_tree / "a.txt", sample_tree / "sub" / "b.md", sample_tree / "node_modules" / "c.js"):
            assert walker.freeform_check_file(candidate) == (candidate in accepted)


class TestCancellation:
    @pytest.fixture
    def big_tree(self, tmp_path: Path) -> Path:
        """100 directories x 100 files."""
        root = tmp_path / "big"
        for d in range(100):
            sub = root / f"d{d:03d}"
            sub.mkdir(parents=True)
            for f in range(100):
                (sub / f"f{f:03d}.txt").write_text("")
        return root

    def test_cancel_mid_walk_returns_partial_subset(self, big_tree: Path):
        full = TreeWalker(FilterConfig(), trace_sink=None).parse(big_tree)
        assert len(full) == 10_000

        cancel = threading.Event()
        seen: List[Tuple[str, str]] = []

        def counting_sink(component: str, message: str):
            seen.append((component, message))
            if len(seen) >= 50:
                cancel.set()

        walker = TreeWalker(FilterConfig(), trace_sink=counting_sink)
        partial = walker.parse(big_tree, cancel=cancel)

        assert partial.aborted
        assert set(partial) <= set(full)
        assert len(partial) < len(full)

        # every file collected lives in a directory that was decided before the abort.
        messages = [r.message for r in walker.log]
        abort_index = messages.index("Traversal aborted by cancellation request")
        decided_dirs = {m.split(": ", 1)[1] for m in messages[:abort_index] if m.startswith("Processing directory: ")}
        for path in partial:
            assert "/" + path.parent.name in decided_dirs

    def test_cancel_before_start_returns_empty_aborted_result(self, sample_tree: Path):
        cancel = threading.Event()
        cancel.set()
        result = make_walker().parse(sample_tree, cancel=cancel)
        assert result.aborted
        assert len(result) == 0

    def test_parse_after_cancelled_run_starts_fresh(self, sample_tree: Path):
        walker = make_walker()
        cancel = threading.Event()
        cancel.set()
        assert walker.parse(sample_tree, cancel=cancel).aborted

        result = walker.parse(sample_tree)
        assert not result.aborted
        assert len(result) == 3
