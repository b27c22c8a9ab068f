from dataclasses import dataclass, fields as dataclass_fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple
import structlog

from pathsift.exceptions import ConfigError
from pathsift.util import make_list

log = structlog.get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 32

class MatchMode(Enum):
    # how a compiled rule is anchored against the tested string.
    PREFIX = "prefix"
    FULL = "full"

    @classmethod
    def from_string(cls, s: Optional[str]) -> Optional["MatchMode"]:
        if not s:
            return None
        try:
            return cls(s.lower())
        except ValueError:
            log.warning("invalid_match_mode_string", input_string=s)
            return None

class RuleCategory(Enum):
    # one named list of literal fragments, compiled into a single matcher.
    ALLOW_PATHS = "allowPaths"
    IGNORE_PATHS = "ignorePaths"
    IGNORE_DIRS = "ignoreDirs"
    ONLY_FILES = "onlyFiles"
    ALLOW_FILES = "allowFiles"
    IGNORE_FILES = "ignoreFiles"
    IGNORE_FILES_FIRST = "ignoreFilesFirst"
    IGNORE_EXTS = "ignoreExts"

    @property
    def attr(self) -> str:
        # snake_case attribute name on FilterConfig.
        return OPTION_KEY_TO_ATTR[self.value]

PATH_CATEGORIES = (RuleCategory.ALLOW_PATHS, RuleCategory.IGNORE_PATHS)
FILE_CATEGORIES = (
    RuleCategory.ONLY_FILES,
    RuleCategory.ALLOW_FILES,
    RuleCategory.IGNORE_FILES,
    RuleCategory.IGNORE_FILES_FIRST,
    RuleCategory.IGNORE_DIRS,
)
EXT_CATEGORIES = (RuleCategory.IGNORE_EXTS,)

OPTION_KEY_TO_ATTR: Dict[str, str] = {
    "allowPaths": "allow_paths",
    "ignorePaths": "ignore_paths",
    "ignoreDirs": "ignore_dirs",
    "onlyFiles": "only_files",
    "allowFiles": "allow_files",
    "ignoreFiles": "ignore_files",
    "ignoreFilesFirst": "ignore_files_first",
    "ignoreExts": "ignore_exts",
    "ignoreFilesByDefault": "ignore_files_by_default",
    "ignorePathsByDefault": "ignore_paths_by_default",
    "matchMode": "match_mode",
    "followSymlinks": "follow_symlinks",
    "maxConcurrency": "max_concurrency",
}

RULE_ATTRS: Tuple[str, ...] = tuple(c.attr for c in RuleCategory)

@dataclass(frozen=True)
class FilterConfig:
    # immutable rule configuration for one TreeWalker.
    allow_paths: Tuple[Any, ...] = ()
    ignore_paths: Tuple[Any, ...] = ()
    ignore_dirs: Tuple[Any, ...] = ()
    only_files: Tuple[Any, ...] = ()
    allow_files: Tuple[Any, ...] = ()
    ignore_files: Tuple[Any, ...] = ()
    ignore_files_first: Tuple[Any, ...] = ()
    ignore_exts: Tuple[Any, ...] = ()
    ignore_files_by_default: bool = False
    ignore_paths_by_default: bool = False
    match_mode: MatchMode = MatchMode.PREFIX
    follow_symlinks: bool = False
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    def __post_init__(self):
        # normalizes scalars and lists into tuples; a falsy value leaves the category empty.
        for attr in RULE_ATTRS:
            value = getattr(self, attr)
            object.__setattr__(self, attr, tuple(make_list(value)) if value else ())
        for attr in ("ignore_files_by_default", "ignore_paths_by_default", "follow_symlinks"):
            if not isinstance(getattr(self, attr), bool):
                raise ConfigError(f"'{attr}' must be a boolean, got {type(getattr(self, attr)).__name__}.")
        if isinstance(self.match_mode, str):
            parsed = MatchMode.from_string(self.match_mode)
            if parsed is None:
                raise ConfigError(f"invalid match mode '{self.match_mode}'.")
            object.__setattr__(self, "match_mode", parsed)
        if not isinstance(self.max_concurrency, int) or self.max_concurrency < 1:
            raise ConfigError(f"'max_concurrency' must be a positive integer, got {self.max_concurrency!r}.")

    def rules(self, category: RuleCategory) -> Tuple[Any, ...]:
        return getattr(self, category.attr)

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]]) -> "FilterConfig":
        """
        Builds a FilterConfig from a plain mapping.

        Accepts both the camelCase option names (``ignoreDirs``,
        ``ignoreFilesByDefault``...) and the snake_case field names. Unknown
        keys are logged and dropped.
        """
        if not options:
            return cls()
        valid = {f.name for f in dataclass_fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            attr = OPTION_KEY_TO_ATTR.get(key, key)
            if attr not in valid:
                log.warning("unknown_filter_option_ignored", option=key)
                continue
            kwargs[attr] = value
        return cls(**kwargs)

    def to_options(self) -> Dict[str, Any]:
        # snake_case mapping suitable for toml serialization.
        out: Dict[str, Any] = {}
        for f in dataclass_fields(self):
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                out[f.name] = list(value)
            elif isinstance(value, Enum):
                out[f.name] = value.value
            else:
                out[f.name] = value
        return out
