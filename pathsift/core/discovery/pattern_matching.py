# pathsift/core/discovery/pattern_matching.py
"""
Compiles rule categories into anchored, case-insensitive matchers.

Fragments are literal text: they are escaped before being joined into a
single alternation, so ``a.b`` only ever matches a dot. Matchers are anchored
at the start only (prefix match) unless ``MatchMode.FULL`` is selected.
"""
import os
import re
from re import Pattern
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence

import structlog

from pathsift.config.settings import (
    EXT_CATEGORIES,
    FILE_CATEGORIES,
    PATH_CATEGORIES,
    FilterConfig,
    MatchMode,
    RuleCategory,
)
from pathsift.exceptions import PatternTypeError

log = structlog.get_logger(__name__)

def _require_text(fragment: Any) -> str:
    if not isinstance(fragment, str):
        raise PatternTypeError(f"pattern fragments must be strings, got {type(fragment).__name__}: {fragment!r}.")
    return fragment

def escape_fragment(fragment: Any) -> str:
    # escapes regex metacharacters so the fragment is matched literally.
    return re.escape(_require_text(fragment))

def sanitize_ext_fragment(fragment: Any) -> str:
    # extensions always start with a dot.
    fragment = _require_text(fragment)
    if not fragment.startswith("."):
        fragment = "." + fragment
    return escape_fragment(fragment)

def sanitize_file_fragment(fragment: Any) -> str:
    # basenames never carry a leading separator.
    fragment = _require_text(fragment)
    if fragment.startswith(os.sep):
        fragment = fragment[1:]
    return escape_fragment(fragment)

def sanitize_path_fragment(fragment: Any) -> str:
    # root-relative paths always start with a separator.
    fragment = _require_text(fragment)
    if not fragment.startswith(os.sep):
        fragment = os.sep + fragment
    return escape_fragment(fragment)

def _sanitizer_for(category: RuleCategory):
    if category in PATH_CATEGORIES:
        return sanitize_path_fragment
    if category in EXT_CATEGORIES:
        return sanitize_ext_fragment
    if category in FILE_CATEGORIES:
        return sanitize_file_fragment
    raise ValueError(f"no sanitizer registered for rule category {category!r}")

def compile_rule(
    category: RuleCategory,
    fragments: Sequence[Any],
    match_mode: MatchMode = MatchMode.PREFIX,
) -> Optional[Pattern[str]]:
    """
    Compiles one rule category into a single matcher.

    Returns None when the fragments produce no text (an empty list, or only
    entries that sanitize to nothing such as ``""`` or a bare separator); the
    category is then absent and never matches. Raises PatternTypeError for a
    fragment that is not text.
    """
    if not fragments:
        return None
    sanitize = _sanitizer_for(category)
    alternation = ""
    for fragment in fragments:
        escaped = sanitize(fragment)
        # an empty alternative would match every name.
        if not escaped:
            continue
        if alternation:
            alternation += "|"
        alternation += escaped
    if not alternation:
        log.debug("rule_empty_after_sanitizing", category=category.value)
        return None
    source = "^(" + alternation + ")"
    if match_mode is MatchMode.FULL:
        source += r"\Z"
    log.debug("rule_compiled", category=category.value, pattern=source)
    return re.compile(source, re.IGNORECASE)

@dataclass(frozen=True)
class CompiledPatternSet:
    # one compiled matcher per rule category, None where the category is absent.
    allow_paths: Optional[Pattern[str]] = None
    ignore_paths: Optional[Pattern[str]] = None
    ignore_dirs: Optional[Pattern[str]] = None
    only_files: Optional[Pattern[str]] = None
    allow_files: Optional[Pattern[str]] = None
    ignore_files: Optional[Pattern[str]] = None
    ignore_files_first: Optional[Pattern[str]] = None
    ignore_exts: Optional[Pattern[str]] = None

    def get(self, category: RuleCategory) -> Optional[Pattern[str]]:
        return getattr(self, category.attr)

    def present(self) -> Iterable[RuleCategory]:
        return (c for c in RuleCategory if self.get(c) is not None)

def compile_pattern_set(config: FilterConfig) -> CompiledPatternSet:
    # compiles every category of a config once; errors surface before any traversal.
    compiled: Dict[str, Optional[Pattern[str]]] = {}
    for category in RuleCategory:
        compiled[category.attr] = compile_rule(category, config.rules(category), config.match_mode)
    pattern_set = CompiledPatternSet(**compiled)
    log.debug("pattern_set_compiled", categories=[c.value for c in pattern_set.present()])
    return pattern_set
