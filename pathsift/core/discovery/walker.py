# pathsift/core/discovery/walker.py
import asyncio
import os
import stat
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Set, Tuple, Union

import structlog

from pathsift.config.settings import FilterConfig
from pathsift.core.discovery.diagnostics import (
    DecisionRecord,
    DiagnosticsLog,
    TraceSink,
    structlog_trace_sink,
)
from pathsift.core.discovery.filters import Decision, FilterEngine
from pathsift.core.discovery.pattern_matching import CompiledPatternSet, compile_pattern_set
from pathsift.exceptions import DiscoveryError

log = structlog.get_logger(__name__)

WALK_COMPONENT = "TreeWalker._walk_dir"
FILE_COMPONENT = "TreeWalker._check_file"
DIR_COMPONENT = "TreeWalker._check_dir"

PathLike = Union[str, os.PathLike]

class CancelSignal(Protocol):
    # anything with is_set(), e.g. threading.Event or asyncio.Event.
    def is_set(self) -> bool: ...

class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK_DIRECTORY = "symlink_directory"
    OTHER = "other"

@dataclass(frozen=True)
class WalkResult:
    # sorted absolute paths of accepted files; aborted is True when cancellation stopped the walk.
    files: Tuple[Path, ...]
    aborted: bool = False

    def __iter__(self) -> Iterator[Path]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, item: object) -> bool:
        return Path(item) in self.files if isinstance(item, (str, os.PathLike)) else False

def classify_entry(path: str) -> Tuple[EntryKind, Optional[Tuple[int, int]]]:
    # stats one entry (following links); returns its kind and, for directories, a (dev, inode) key.
    st = os.stat(path)
    if stat.S_ISREG(st.st_mode):
        return EntryKind.FILE, None
    if stat.S_ISDIR(st.st_mode):
        kind = EntryKind.SYMLINK_DIRECTORY if os.path.islink(path) else EntryKind.DIRECTORY
        return kind, (st.st_dev, st.st_ino)
    return EntryKind.OTHER, None

class TreeWalker:
    """
    Recursively collects the files under a root that pass the configured rules.

    Rules are compiled once at construction; each ``parse()`` resets the result
    collection and the diagnostics log. Entries of one directory are stat'ed
    concurrently, and every subtree walk is awaited before its parent completes.
    """

    def __init__(
        self,
        config: Optional[FilterConfig] = None,
        base_dir: Optional[PathLike] = None,
        trace_sink: Optional[TraceSink] = structlog_trace_sink,
    ):
        self._config = config if config is not None else FilterConfig()
        self._compiled = compile_pattern_set(self._config)
        self._diagnostics = DiagnosticsLog(trace_sink)
        self._engine = FilterEngine(
            self._compiled,
            ignore_files_by_default=self._config.ignore_files_by_default,
            ignore_paths_by_default=self._config.ignore_paths_by_default,
            diagnostics=self._diagnostics,
        )
        self._base_dir: Optional[str] = os.path.abspath(os.fspath(base_dir)) if base_dir else None
        self._last_root: Optional[str] = None

        self._results: List[Path] = []
        self._results_lock = threading.Lock()
        self._visited: Set[Tuple[int, int]] = set()
        self._cancel: Optional[CancelSignal] = None
        self._aborted = False
        self._semaphore: Optional[asyncio.Semaphore] = None

    @property
    def config(self) -> FilterConfig:
        return self._config

    @property
    def compiled(self) -> CompiledPatternSet:
        return self._compiled

    @property
    def log(self) -> Tuple[DecisionRecord, ...]:
        return self._diagnostics.snapshot()

    def parse(self, root: PathLike, cancel: Optional[CancelSignal] = None) -> WalkResult:
        # synchronous entry point; must not be called from a running event loop.
        return asyncio.run(self.aparse(root, cancel))

    async def aparse(self, root: PathLike, cancel: Optional[CancelSignal] = None) -> WalkResult:
        root_path = os.path.abspath(os.fspath(root))
        if not await asyncio.to_thread(os.path.isdir, root_path):
            raise DiscoveryError(f"traversal root '{root}' does not exist or is not a directory.")

        with self._results_lock:
            self._results = []
        self._diagnostics.clear()
        self._visited = set()
        self._cancel = cancel
        self._aborted = False
        self._last_root = root_path
        self._semaphore = asyncio.Semaphore(self._config.max_concurrency)

        try:
            root_stat = await asyncio.to_thread(os.stat, root_path)
        except OSError as e:
            raise DiscoveryError(f"cannot stat traversal root '{root_path}': {e}") from e
        self._visited.add((root_stat.st_dev, root_stat.st_ino))

        log.info("tree_walk_started", root=root_path, base_dir=self._current_base())
        await self._walk_dir(root_path, is_root=True)

        with self._results_lock:
            files = tuple(sorted(self._results))
        log.info("tree_walk_finished", root=root_path, files=len(files), aborted=self._aborted)
        return WalkResult(files=files, aborted=self._aborted)

    def freeform_check_file(self, file: PathLike) -> bool:
        """
        Re-validates a single file outside a full traversal.

        The parent directory is checked on its own (not as a chain up to the
        root), then the file itself. Both must pass.
        """
        file_path = os.path.abspath(os.fspath(file))
        parent = os.path.dirname(file_path)
        entry = os.path.basename(parent)

        if not self._check_dir(parent, entry):
            return False
        return bool(self._check_file(file_path))

    def _current_base(self) -> Optional[str]:
        return self._base_dir or self._last_root

    def _relative(self, path: str) -> str:
        # root-relative path with a leading separator, as tested by the path rules.
        base = self._current_base()
        rel = path
        if base and path.startswith(base):
            rel = path[len(base):]
        if not rel.startswith(os.sep):
            rel = os.sep + rel
        return rel

    def _check_file(self, file_path: str) -> Decision:
        base = os.path.basename(file_path)
        ext = os.path.splitext(base)[1]
        self._diagnostics.record(FILE_COMPONENT, f"Processing file: {self._relative(file_path)}")
        return self._engine.decide_file(base, ext)

    def _check_dir(self, dir_path: str, entry: str) -> Decision:
        rel = self._relative(dir_path)
        self._diagnostics.record(DIR_COMPONENT, f"Processing directory: {rel}")
        return self._engine.decide_dir(rel, entry)

    def _is_cancelled(self) -> bool:
        if self._aborted:
            return True
        if self._cancel is not None and self._cancel.is_set():
            self._aborted = True
            self._diagnostics.record(WALK_COMPONENT, "Traversal aborted by cancellation request")
            log.warning("tree_walk_cancelled", root=self._last_root)
            return True
        return False

    def _add_result(self, file_path: str) -> None:
        with self._results_lock:
            self._results.append(Path(file_path))

    async def _walk_dir(self, dir_path: str, is_root: bool = False) -> None:
        if self._is_cancelled():
            return

        assert self._semaphore is not None
        try:
            async with self._semaphore:
                names = await asyncio.to_thread(os.listdir, dir_path)
        except OSError as e:
            if is_root:
                raise DiscoveryError(f"cannot list traversal root '{dir_path}': {e}") from e
            self._diagnostics.record(WALK_COMPONENT, f"Skipping unreadable directory: {self._relative(dir_path)} ({e})")
            log.warning("directory_listing_failed", path=dir_path, error=str(e))
            return

        await asyncio.gather(*(self._visit_entry(dir_path, name) for name in sorted(names)))

    async def _visit_entry(self, dir_path: str, name: str) -> None:
        entry_path = os.path.join(dir_path, name)
        assert self._semaphore is not None
        try:
            async with self._semaphore:
                kind, key = await asyncio.to_thread(classify_entry, entry_path)
        except OSError as e:
            # vanished or unreadable entries are skipped, never fatal.
            self._diagnostics.record(WALK_COMPONENT, f"Skipping unreadable entry: {self._relative(entry_path)} ({e})")
            log.warning("entry_stat_failed", path=entry_path, error=str(e))
            return

        if kind is EntryKind.FILE:
            if self._check_file(entry_path):
                self._add_result(entry_path)
            return

        if kind is EntryKind.OTHER:
            self._diagnostics.record(WALK_COMPONENT, f"Skipping special entry: {self._relative(entry_path)}")
            return

        if kind is EntryKind.SYMLINK_DIRECTORY and not self._config.follow_symlinks:
            self._diagnostics.record(WALK_COMPONENT, f"Skipping symlinked directory: {self._relative(entry_path)}")
            return

        if not self._check_dir(entry_path, name):
            return

        if key in self._visited:
            self._diagnostics.record(WALK_COMPONENT, f"Skipping already visited directory: {self._relative(entry_path)}")
            return
        self._visited.add(key)

        if self._is_cancelled():
            return
        await self._walk_dir(entry_path)
