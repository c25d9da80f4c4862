"""Shared fixtures for shell-guard conformance tests.

Provides the reference policies and a default validator used by every
property test.
"""
from __future__ import annotations

import pytest

from shell_guard.core.types import (
    AllowList,
    LiteralDenyRule,
    PolicyConfig,
    ScopedAllowRule,
    SimpleAllowRule,
)
from shell_guard.validator import CommandValidator

# ---------------------------------------------------------------------------
# Common rules used across tests
# ---------------------------------------------------------------------------
RM_RULE = LiteralDenyRule(name="rm", message="use trash")


# ---------------------------------------------------------------------------
# Policy fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def ls_policy() -> PolicyConfig:
    """Allows only ``ls``."""
    return PolicyConfig(allow_rules=(SimpleAllowRule(name="ls"),))


@pytest.fixture()
def rm_denied_policy() -> PolicyConfig:
    """Allows ``ls``; denies ``rm`` with message ``use trash``."""
    return PolicyConfig(
        allow_rules=(SimpleAllowRule(name="ls"),),
        deny_rules=(RM_RULE,),
    )


@pytest.fixture()
def exec_policy() -> PolicyConfig:
    """Allows ``xargs``, ``find`` and ``ls``; denies ``rm``."""
    return PolicyConfig(
        allow_rules=(
            SimpleAllowRule(name="xargs"),
            SimpleAllowRule(name="find"),
            SimpleAllowRule(name="ls"),
        ),
        deny_rules=(RM_RULE,),
    )


@pytest.fixture()
def git_policy() -> PolicyConfig:
    """Allows ``git`` restricted to ``status`` and ``log``."""
    return PolicyConfig(
        allow_rules=(
            ScopedAllowRule(
                name="git",
                subcommands=AllowList(names=frozenset({"status", "log"})),
            ),
        ),
    )


@pytest.fixture()
def echo_policy() -> PolicyConfig:
    return PolicyConfig(
        allow_rules=(SimpleAllowRule(name="echo"), SimpleAllowRule(name="ls")),
    )


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def validator() -> CommandValidator:
    return CommandValidator()
