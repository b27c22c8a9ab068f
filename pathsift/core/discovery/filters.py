# pathsift/core/discovery/filters.py
"""
Accept/reject decisions for files and directories.

Both decisions are pure functions of the tested name/path and the compiled
rules; the only side effect is a DecisionRecord describing which rule (or
default policy) decided the outcome.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

import structlog

from pathsift.config.settings import RuleCategory
from pathsift.core.discovery.diagnostics import DiagnosticsLog
from pathsift.core.discovery.pattern_matching import CompiledPatternSet

log = structlog.get_logger(__name__)

FILE_COMPONENT = "FilterEngine.decide_file"
DIR_COMPONENT = "FilterEngine.decide_dir"

@dataclass(frozen=True)
class Decision:
    allowed: bool
    category: Optional[RuleCategory] = None  # None means the default policy decided.
    matched: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

# (category, outcome, label) in precedence order, after the exclusive onlyFiles check.
_FILE_RULES: Tuple[Tuple[RuleCategory, bool, str], ...] = (
    (RuleCategory.IGNORE_FILES_FIRST, False, "ignore file first"),
    (RuleCategory.ALLOW_FILES, True, "allow file"),
    (RuleCategory.IGNORE_FILES, False, "ignore file"),
)

class FilterEngine:
    def __init__(
        self,
        compiled: CompiledPatternSet,
        ignore_files_by_default: bool = False,
        ignore_paths_by_default: bool = False,
        diagnostics: Optional[DiagnosticsLog] = None,
    ):
        self._compiled = compiled
        self._ignore_files_by_default = ignore_files_by_default is True
        self._ignore_paths_by_default = ignore_paths_by_default is True
        self._diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()

    @property
    def compiled(self) -> CompiledPatternSet:
        return self._compiled

    @property
    def diagnostics(self) -> DiagnosticsLog:
        return self._diagnostics

    def _match(self, category: RuleCategory, text: str) -> Optional[str]:
        pattern = self._compiled.get(category)
        if pattern is None:
            return None
        m = pattern.match(text)
        return m.group(0) if m else None

    def decide_file(self, basename: str, ext: str) -> Decision:
        """
        Decides whether a file is processed.

        Precedence: onlyFiles (exclusive), ignoreFilesFirst, allowFiles,
        ignoreFiles, ignoreExts, then the file default policy.
        """
        record = self._diagnostics.record

        if self._compiled.only_files is not None:
            matched = self._match(RuleCategory.ONLY_FILES, basename)
            if matched is not None:
                record(FILE_COMPONENT, f"   => only file first via: {matched}")
                return Decision(True, RuleCategory.ONLY_FILES, matched)
            record(FILE_COMPONENT, f"   => not in only files: {basename}")
            return Decision(False, RuleCategory.ONLY_FILES)

        for category, outcome, label in _FILE_RULES:
            matched = self._match(category, basename)
            if matched is not None:
                record(FILE_COMPONENT, f"   => {label} via: {matched}")
                return Decision(outcome, category, matched)

        matched = self._match(RuleCategory.IGNORE_EXTS, ext)
        if matched is not None:
            record(FILE_COMPONENT, f"   => ignore file extension via: {matched}")
            return Decision(False, RuleCategory.IGNORE_EXTS, matched)

        if self._ignore_files_by_default:
            record(FILE_COMPONENT, "   => ignore file by default")
            return Decision(False)
        record(FILE_COMPONENT, "   => allow file by default")
        return Decision(True)

    def decide_dir(self, rel_path: str, entry: str) -> Decision:
        """
        Decides whether a directory is descended.

        ``rel_path`` is root-relative with a leading separator and is tested
        against allowPaths/ignorePaths; ``entry`` is the bare directory name
        tested against ignoreDirs.
        """
        record = self._diagnostics.record

        matched = self._match(RuleCategory.ALLOW_PATHS, rel_path)
        if matched is not None:
            record(DIR_COMPONENT, f"   => allow path via: {matched}")
            return Decision(True, RuleCategory.ALLOW_PATHS, matched)

        matched = self._match(RuleCategory.IGNORE_PATHS, rel_path)
        if matched is not None:
            record(DIR_COMPONENT, f"   => ignore path via: {matched}")
            return Decision(False, RuleCategory.IGNORE_PATHS, matched)

        matched = self._match(RuleCategory.IGNORE_DIRS, entry)
        if matched is not None:
            record(DIR_COMPONENT, f"   => ignore dir via: {matched}")
            return Decision(False, RuleCategory.IGNORE_DIRS, matched)

        if self._ignore_paths_by_default:
            record(DIR_COMPONENT, "   => ignore dir by default")
            return Decision(False)
        record(DIR_COMPONENT, "   => allow dir by default")
        return Decision(True)
