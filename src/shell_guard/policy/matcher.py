"""Policy matcher -- evaluate one command against allow and deny rules.

Deny rules are checked in policy order and the first match wins:

* :class:`LiteralDenyRule` compares its name with the exact base command.
* :class:`PatternDenyRule` searches its regular expression in the text
  selected by :class:`PatternScope` (the base command by default).

Allow rules are looked up by base command name; the matched rule's
subcommand policy then decides whether the second token is acceptable.
"""
from __future__ import annotations

from collections.abc import Iterable

from shell_guard.core.types import (
    AllowList,
    DenialKind,
    DenyList,
    LiteralDenyRule,
    PatternDenyRule,
    PatternScope,
    PolicyConfig,
    ScopedAllowRule,
    SimpleAllowRule,
)
from shell_guard.parsing.tokenizer import base_command_of
from shell_guard.policy.pattern_engine import PatternEngine


class PolicyMatcher:
    """Matches commands against the rules of a :class:`PolicyConfig`.

    Stateless apart from the compiled-pattern cache, so one instance may be
    shared by any number of concurrent callers and policies.

    Parameters
    ----------
    pattern_engine:
        Optional :class:`PatternEngine`.  Defaults to an engine without a
        timeout.
    pattern_scope:
        Text that pattern deny rules are searched against.
    """

    def __init__(
        self,
        pattern_engine: PatternEngine | None = None,
        *,
        pattern_scope: PatternScope = PatternScope.BASE_COMMAND,
    ) -> None:
        self._engine = pattern_engine or PatternEngine()
        self._scope = pattern_scope

    @property
    def pattern_scope(self) -> PatternScope:
        return self._scope

    # -- deny ---------------------------------------------------------------

    def match_deny(
        self,
        text: str,
        rules: Iterable[LiteralDenyRule | PatternDenyRule],
    ) -> LiteralDenyRule | PatternDenyRule | None:
        """Return the first deny rule matching command *text*, or ``None``."""
        base = base_command_of(text)
        target = base if self._scope is PatternScope.BASE_COMMAND else text.strip()
        for rule in rules:
            if isinstance(rule, LiteralDenyRule):
                if rule.name == base:
                    return rule
            elif self._engine.search(rule.pattern, target):
                return rule
        return None

    # -- allow --------------------------------------------------------------

    @staticmethod
    def match_allow(
        base_command: str,
        rules: Iterable[SimpleAllowRule | ScopedAllowRule],
    ) -> SimpleAllowRule | ScopedAllowRule | None:
        """Return the first allow rule named *base_command*, or ``None``."""
        for rule in rules:
            if rule.name == base_command:
                return rule
        return None

    @staticmethod
    def check_subcommand(
        rule: SimpleAllowRule | ScopedAllowRule,
        subcommand: str | None,
    ) -> DenialKind | None:
        """Apply *rule*'s subcommand policy.

        Returns ``None`` when *subcommand* is acceptable, otherwise
        :attr:`DenialKind.SUBCOMMAND_DENIED` or
        :attr:`DenialKind.SUBCOMMAND_NOT_IN_ALLOWLIST`.  A command without
        a second token always passes.
        """
        if subcommand is None or isinstance(rule, SimpleAllowRule):
            return None
        policy = rule.subcommands
        if isinstance(policy, DenyList):
            if subcommand in policy.names:
                return DenialKind.SUBCOMMAND_DENIED
        elif isinstance(policy, AllowList):
            if subcommand not in policy.names:
                return DenialKind.SUBCOMMAND_NOT_IN_ALLOWLIST
        return None

    # -- messages -----------------------------------------------------------

    @staticmethod
    def deny_message(
        rule: LiteralDenyRule | PatternDenyRule, policy: PolicyConfig
    ) -> str:
        """Return the rule's own message, falling back to the policy default."""
        return rule.message or policy.default_error_message

    @staticmethod
    def deny_kind(rule: LiteralDenyRule | PatternDenyRule) -> DenialKind:
        if isinstance(rule, LiteralDenyRule):
            return DenialKind.DENIED_BY_LITERAL_RULE
        return DenialKind.DENIED_BY_PATTERN_RULE
