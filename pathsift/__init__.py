"""pathsift: collect the files of a directory tree that pass layered include/exclude rules."""

__version__ = "0.1.0"

from pathsift.config.settings import FilterConfig, MatchMode, RuleCategory
from pathsift.core.discovery import DecisionRecord, TreeWalker, WalkResult
from pathsift.exceptions import ConfigError, DiscoveryError, PathSiftError, PatternTypeError

__all__ = [
    "ConfigError",
    "DecisionRecord",
    "DiscoveryError",
    "FilterConfig",
    "MatchMode",
    "PathSiftError",
    "PatternTypeError",
    "RuleCategory",
    "TreeWalker",
    "WalkResult",
    "__version__",
]
