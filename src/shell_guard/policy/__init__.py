"""shell-guard policy evaluation.

* **PolicyMatcher** -- deny-rule and allow-rule matching, including
  subcommand policies.
* **PatternEngine** -- cached regular-expression matching with an optional
  fail-closed timeout.
* **ExecIntroducerHandler** -- validates the program launched through
  ``xargs`` or ``find -exec``.
"""
from __future__ import annotations

from shell_guard.policy.exec_introducers import (
    ExecIntroducerHandler,
    extract_nested_commands,
)
from shell_guard.policy.matcher import PolicyMatcher
from shell_guard.policy.pattern_engine import PatternEngine

__all__ = [
    "ExecIntroducerHandler",
    "PatternEngine",
    "PolicyMatcher",
    "extract_nested_commands",
]
