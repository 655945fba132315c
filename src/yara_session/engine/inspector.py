"""Iteration over the rules of a compiled rule set, independent of scanning."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Optional

from yara_session.domain.entities import Rule
from yara_session.domain.errors import NotCompiledError, SessionClosedError
from yara_session.infrastructure.native import check_scan
from yara_session.infrastructure.native.types import RULE_CALLBACK

from .extractor import CallbackGuard, MatchExtractor

if TYPE_CHECKING:
    from .ruleset import CompiledRuleSet


def iter_rules(ruleset: Optional["CompiledRuleSet"]) -> Iterator[Rule]:
    """
    Yield every rule of ``ruleset`` with its namespace, metadata and tags.

    The native iteration runs to completion before the first rule is yielded,
    so no native callback is pending while the caller's loop body runs.

    Raises:
        NotCompiledError: No rule set, or the rule set was already released
    """
    if ruleset is None:
        raise NotCompiledError("Rules not compiled. Call compile() first.")
    if ruleset.released:
        raise SessionClosedError("Rule set has been released")

    library = ruleset.library
    extractor = MatchExtractor(library)
    rules: list[Rule] = []
    guard = CallbackGuard()

    @guard.wrap
    def on_rule(rule: Optional[int], _user_data: Optional[int]) -> None:
        if rule:
            rules.append(extractor.rule(rule))

    callback = RULE_CALLBACK(on_rule)
    result = library.yrx_rules_iter(ruleset.handle, callback, None)
    guard.raise_if_failed()
    check_scan(library, result, "Failed to iterate rules")
    return iter(rules)
