"""Compilation, scanning and rule inspection on top of the native bindings."""

from .compiler import RuleCompiler
from .extractor import CallbackGuard, MatchExtractor
from .inspector import iter_rules
from .ruleset import CompiledRuleSet, compile_source
from .scanner import Scanner, SessionState, normalize_input, scan_once

__all__ = [
    "RuleCompiler",
    "CallbackGuard",
    "MatchExtractor",
    "iter_rules",
    "CompiledRuleSet",
    "compile_source",
    "Scanner",
    "SessionState",
    "normalize_input",
    "scan_once",
]
