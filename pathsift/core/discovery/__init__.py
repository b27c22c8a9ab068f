# pathsift/core/discovery/__init__.py
"""
Selective filesystem traversal for pathsift.

This package compiles include/exclude rules into matchers, decides which
files and directories are processed, and walks directory trees collecting
the accepted files together with a diagnostic trail of every decision.
"""
from .diagnostics import DecisionRecord, DiagnosticsLog
from .filters import Decision, FilterEngine
from .pattern_matching import CompiledPatternSet, compile_pattern_set, compile_rule
from .walker import TreeWalker, WalkResult

__all__ = [
    "CompiledPatternSet",
    "Decision",
    "DecisionRecord",
    "DiagnosticsLog",
    "FilterEngine",
    "TreeWalker",
    "WalkResult",
    "compile_pattern_set",
    "compile_rule",
]
